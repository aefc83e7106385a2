"""Turn raw model responses into ordered, deduplicated findings.

Two input shapes are accepted:

- Structured: the ``reviewCode`` tool arguments, ``{"reviews": [...]}`` where
  each entry has ``severity``, ``message`` and an optional ``codeSnippet``.
  Positions come from resolving the snippet against the document.
- Freeform: plain assistant text. Only lines shaped like
  ``[SEVERITY]: message [Ln X, Col Y]`` are extracted; everything else is
  prose and is ignored. Positions come only from the inline ``[Ln, Col]``.
"""

import json
import logging
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from llm_lint.models.document import ModelResponse
from llm_lint.models.findings import Finding, Position, Severity
from llm_lint.resolver import resolve_snippet

logger = logging.getLogger(__name__)

Resolver = Callable[[str | None, str], Position | None]

THINK_BLOCK = re.compile(r"<think>[\s\S]*?</think>")

FINDING_LINE = re.compile(
    r"^\[(?P<severity>ERROR|WARNING|INFO|HINT)\]\s*:?\s*"
    r"(?P<message>.+?)"
    r"(?:\s+\[Ln\s+(?P<line>\d+)(?:,\s*Col\s+(?P<column>\d+))?\])?$",
    re.IGNORECASE,
)

LINE_LABEL_ONLY = re.compile(r"^(?:L|Line|行)\s*\d+:?\s*$", re.IGNORECASE)
LIST_MARKER = re.compile(r"^(?:[•\-*+・]|\d+[.)])\s*")

BOILERPLATE_PREFIXES = (
    "here are",
    "below are",
    "review results",
    "code review",
    "findings",
    "以下に",
    "レビュー結果",
    "コードレビュー",
    "指摘事項",
)
STRUCTURAL_MARKERS = ("---", "===", "###", "```")


def dedupe_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Drop findings whose identity key was already seen, keeping the first."""
    seen: set[tuple[Severity, str, int, int]] = set()
    unique = []
    for finding in findings:
        key = finding.identity_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(finding)
    return unique


def sort_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Order by line ascending, positionless last; ties keep their order."""
    return sorted(
        findings,
        key=lambda f: (f.position is None, f.position.line if f.position else 0),
    )


def _is_noise(line: str) -> bool:
    if not line:
        return True
    if line.startswith("<think>") or line.startswith("think "):
        return True
    lowered = line.lower()
    if lowered.startswith(BOILERPLATE_PREFIXES):
        return True
    if line.startswith("#") or any(marker in line for marker in STRUCTURAL_MARKERS):
        return True
    return bool(LINE_LABEL_ONLY.match(line))


def _candidate_lines(text: str) -> list[str]:
    text = THINK_BLOCK.sub("", text)
    lines = (line.strip() for line in text.split("\n"))
    return [LIST_MARKER.sub("", line, count=1).strip() for line in lines if not _is_noise(line)]


def extract_json_payload(content: str) -> dict[str, Any] | None:
    """Pull a ``{"reviews": ...}`` object out of assistant text, if there is one."""
    content = content.strip()
    if '"reviews"' not in content:
        return None

    # Handle markdown code blocks
    if "```json" in content:
        match = re.search(r"```json\s*([\s\S]*?)```", content)
        if match:
            content = match.group(1).strip()
    elif "```" in content:
        match = re.search(r"```\s*([\s\S]*?)```", content)
        if match:
            content = match.group(1).strip()

    json_match = re.search(r'\{[\s\S]*"reviews"[\s\S]*\}', content)
    if not json_match:
        return None

    try:
        data = json.loads(json_match.group(0))
    except json.JSONDecodeError as e:
        logger.debug(f"Embedded reviews JSON did not decode: {e}")
        return None
    return data if isinstance(data, dict) else None


class FindingParser:
    """Normalizes model output into DocumentFindings order."""

    def __init__(self, resolver: Resolver | None = None) -> None:
        """Initialize the parser.

        Args:
            resolver: Snippet resolver (defaults to resolve_snippet)
        """
        self.resolver = resolver or resolve_snippet

    def parse_response(
        self,
        response: ModelResponse | Mapping[str, Any] | str,
        document_text: str,
    ) -> list[Finding]:
        """Parse whatever the model returned, picking the right path."""
        if isinstance(response, ModelResponse):
            if response.is_structured:
                return self.parse_structured(response.tool_arguments, document_text)
            response = response.content

        if isinstance(response, Mapping):
            return self.parse_structured(response, document_text)

        payload = extract_json_payload(response or "")
        if payload is not None:
            logger.debug("Assistant text carried a reviews payload, parsing as structured")
            return self.parse_structured(payload, document_text)

        return self.parse_freeform(response or "", document_text)

    def parse_structured(self, payload: Mapping[str, Any], document_text: str) -> list[Finding]:
        """Parse ``reviewCode`` tool arguments into findings."""
        raw_reviews = payload.get("reviews") if isinstance(payload, Mapping) else None
        if not isinstance(raw_reviews, list):
            logger.info("Payload has no reviews list; treating as no findings")
            return []

        findings = []
        for raw in raw_reviews:
            finding = self._parse_structured_entry(raw, document_text)
            if finding is not None:
                findings.append(finding)

        return sort_findings(dedupe_findings(findings))

    def _parse_structured_entry(self, raw: Any, document_text: str) -> Finding | None:
        if not isinstance(raw, Mapping):
            logger.warning(f"Skipping review entry that is not an object: {raw!r}")
            return None

        message = raw.get("message")
        if not isinstance(message, str) or not message.strip():
            logger.warning(f"Skipping review entry without a message: {raw}")
            return None

        severity = Severity.from_token(raw.get("severity"))
        if severity is None:
            logger.warning(
                f"Unrecognized severity {raw.get('severity')!r}, defaulting to INFO: {message}"
            )
            severity = Severity.INFO

        snippet = raw.get("codeSnippet")
        if not isinstance(snippet, str) or not snippet.strip():
            snippet = None

        position = self.resolver(snippet, document_text) if snippet else None

        return Finding(
            severity=severity,
            message=message.strip(),
            code_snippet=snippet,
            position=position,
        )

    def parse_freeform(self, text: str, document_text: str = "") -> list[Finding]:
        """Parse plain review text into findings.

        ``document_text`` is accepted for symmetry with the structured path;
        freeform lines carry no snippet so it is not consulted.
        """
        findings = []
        for line in _candidate_lines(text):
            match = FINDING_LINE.match(line)
            if not match:
                continue

            severity = Severity.from_token(match.group("severity")) or Severity.INFO
            message = match.group("message").strip()
            if not message:
                continue

            position = None
            if match.group("line") is not None:
                column = match.group("column")
                position = Position(
                    line=max(0, int(match.group("line")) - 1),
                    column=int(column) if column is not None else 0,
                )

            findings.append(Finding(severity=severity, message=message, position=position))

        return sort_findings(dedupe_findings(findings))
