"""Lint orchestrator: request, parse, store and publish one document at a time."""

import asyncio
import fnmatch
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import PurePosixPath

from llm_lint.config import ReviewSettings
from llm_lint.llm_client import LLMRequestError, LMStudioClient
from llm_lint.models.document import Document
from llm_lint.models.findings import Finding
from llm_lint.parser import FindingParser
from llm_lint.sinks import DiagnosticsSink, findings_to_diagnostics
from llm_lint.store import ResultStore

logger = logging.getLogger(__name__)

TRIGGERS = ("open", "save")

PROGRAMMING_LANGUAGES = frozenset(
    {
        "javascript",
        "typescript",
        "python",
        "java",
        "c",
        "cpp",
        "csharp",
        "ruby",
        "go",
        "php",
        "swift",
        "kotlin",
        "rust",
        "scala",
        "perl",
        "dart",
        "haskell",
        "elixir",
        "clojure",
        "shellscript",
        "bash",
        "powershell",
        "objective-c",
        "groovy",
        "lua",
        "coffeescript",
        "jsonc",
        "vue",
        "jsx",
        "tsx",
    }
)


def is_programming_language(language_id: str) -> bool:
    return language_id in PROGRAMMING_LANGUAGES


def _glob_match(relative_path: str, pattern: str) -> bool:
    # Patterns without a slash match the base name, like minimatch's matchBase
    if "/" not in pattern:
        return fnmatch.fnmatchcase(PurePosixPath(relative_path).name, pattern)
    if fnmatch.fnmatchcase(relative_path, pattern):
        return True
    return pattern.startswith("**/") and fnmatch.fnmatchcase(relative_path, pattern[3:])


def should_exclude(
    path: str,
    workspace_folders: Sequence[str],
    include_patterns: Sequence[str] = (),
    exclude_patterns: Sequence[str] = (),
) -> bool:
    """Whether ``path`` is filtered out by the include/exclude globs.

    Files outside every workspace folder are never excluded.
    """
    normalized = path.replace("\\", "/")
    relative_path = None
    for folder in workspace_folders:
        folder = folder.replace("\\", "/").rstrip("/")
        if normalized.startswith(folder + "/"):
            relative_path = normalized[len(folder) + 1 :]
            break

    if relative_path is None:
        return False

    if include_patterns and not any(_glob_match(relative_path, p) for p in include_patterns):
        logger.info(f"Excluding {path} (does not match include patterns)")
        return True

    return any(_glob_match(relative_path, p) for p in exclude_patterns)


@dataclass
class LintResult:
    """Outcome of one completed lint run."""

    uri: str
    findings: list[Finding]
    elapsed_ms: int

    @property
    def is_clean(self) -> bool:
        return not self.findings


class LintOrchestrator:
    """Serializes review requests and fans results out to the store and sinks."""

    def __init__(
        self,
        client: LMStudioClient,
        store: ResultStore,
        settings: ReviewSettings | None = None,
        diagnostics: DiagnosticsSink | None = None,
        parser: FindingParser | None = None,
        workspace_folders: Sequence[str] = (),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: Model server client
            store: Result store for this session
            settings: Review settings (filters, cooldown, problems tab)
            diagnostics: Optional diagnostics sink
            parser: Optional parser override
            workspace_folders: Workspace roots used by the glob filters
            clock: Monotonic clock used for the cooldown
        """
        self.client = client
        self.store = store
        self.settings = settings or ReviewSettings()
        self.diagnostics = diagnostics
        self.parser = parser or FindingParser()
        self.workspace_folders = list(workspace_folders)
        self._clock = clock
        self._last_run: dict[str, float] = {}
        self._slot = asyncio.Lock()

    def skip_reason(self, document: Document) -> str | None:
        """Why ``document`` is not eligible for review, or None if it is."""
        if document.is_untitled:
            return "untitled"
        if not is_programming_language(document.language_id):
            return "unsupported language"
        if should_exclude(
            document.path,
            self.workspace_folders,
            self.settings.include_patterns,
            self.settings.exclude_patterns,
        ):
            return "excluded by pattern"
        return None

    def in_cooldown(self, uri: str) -> bool:
        last = self._last_run.get(uri)
        if last is None:
            return False
        return self._clock() - last < self.settings.cooldown_seconds

    def auto_review_enabled(self, trigger: str) -> bool:
        if trigger == "open":
            return self.settings.auto_review_on_open
        if trigger == "save":
            return self.settings.auto_review_on_save
        raise ValueError(f"Unknown review trigger: {trigger!r} (expected one of {TRIGGERS})")

    async def lint_if_needed(self, document: Document, trigger: str = "save") -> LintResult | str:
        """Automatic trigger. Honors the auto-review toggles, filters and the cooldown.

        Args:
            document: Document that was opened or saved
            trigger: "open" or "save"

        Returns:
            The lint result, or the reason the document was skipped

        Raises:
            ValueError: If ``trigger`` is not a known trigger
        """
        if not self.auto_review_enabled(trigger):
            logger.debug(f"Auto review on {trigger} disabled; skipping {document.path}")
            return "auto review disabled"

        reason = self.skip_reason(document)
        if reason is None and self.in_cooldown(document.uri):
            reason = "cooldown"
        if reason is not None:
            logger.info(f"Skipping lint for {document.path} ({reason})")
            return reason

        self._last_run[document.uri] = self._clock()
        result = await self.lint_document(document)
        return result if result is not None else "request failed"

    async def review_now(self, document: Document) -> LintResult | str:
        """Manual trigger. Honors filters but resets the cooldown."""
        reason = self.skip_reason(document)
        if reason is not None:
            logger.info(f"Cannot review {document.path} ({reason})")
            return reason

        self._last_run[document.uri] = self._clock()
        result = await self.lint_document(document)
        return result if result is not None else "request failed"

    async def lint_document(self, document: Document) -> LintResult | None:
        """Review one document. At most one review runs at a time.

        On upstream failure the previous results for the document are kept
        and None is returned.
        """
        async with self._slot:
            logger.info(f"Start lint -> {document.path}")
            start_time = time.monotonic()

            try:
                response = await self.client.request_review(document)
            except LLMRequestError as e:
                logger.error(f"LLM request failed for {document.path}: {e}")
                return None

            findings = self.parser.parse_response(response, document.text)
            self.store.update(document.uri, findings)

            if self.diagnostics is not None:
                if self.settings.show_in_problems_tab:
                    self.diagnostics.set(
                        document.uri, findings_to_diagnostics(findings, document.text)
                    )
                else:
                    logger.info("Problems tab disabled by settings; diagnostics skipped")

            result = LintResult(
                uri=document.uri,
                findings=findings,
                elapsed_ms=int((time.monotonic() - start_time) * 1000),
            )
            if result.is_clean:
                logger.info(f"Review complete for {document.path}: no findings")
            else:
                logger.info(f"Review complete for {document.path}: {len(findings)} findings")

            return result

    def close_document(self, uri: str) -> None:
        """Forget everything about a closed document."""
        self.store.clear(uri)
        if self.diagnostics is not None:
            self.diagnostics.delete(uri)
        self._last_run.pop(uri, None)
