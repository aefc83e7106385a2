"""Per-document registry of review findings."""

import logging
from collections.abc import Callable, Iterable

from llm_lint.models.findings import Finding, Severity
from llm_lint.parser import dedupe_findings, sort_findings

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str], None]


class ResultStore:
    """Owns the URI -> findings mapping for one session.

    Every committed mutation notifies subscribers synchronously, once, with
    the URI that changed. Updates always replace a document's entry wholesale.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._findings_by_uri: dict[str, list[Finding]] = {}
        self._listeners: list[ChangeListener] = []
        self._total = 0

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener.

        Args:
            listener: Called with the URI after each committed mutation

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, uri: str, findings: Iterable[Finding]) -> None:
        """Replace the findings for ``uri``."""
        self._findings_by_uri[uri] = sort_findings(dedupe_findings(findings))
        self._recount()
        logger.debug(
            f"Stored {len(self._findings_by_uri[uri])} findings for {uri} "
            f"({self._total} total)"
        )
        self._notify(uri)

    def clear(self, uri: str) -> None:
        """Drop the findings for ``uri``. No-op if nothing is stored."""
        if uri not in self._findings_by_uri:
            return
        del self._findings_by_uri[uri]
        self._recount()
        logger.info(f"Cleared reviews for {uri}")
        self._notify(uri)

    def get(self, uri: str) -> list[Finding]:
        """Current findings for ``uri``, empty if none."""
        return list(self._findings_by_uri.get(uri, []))

    def all_entries(self) -> list[tuple[str, list[Finding]]]:
        """All (uri, findings) pairs in first-update order."""
        return [(uri, list(findings)) for uri, findings in self._findings_by_uri.items()]

    def uris(self) -> list[str]:
        return list(self._findings_by_uri)

    def aggregate_count(self) -> int:
        """Total number of findings across all documents."""
        return self._total

    def severity_counts(self, uri: str) -> dict[Severity, int]:
        """Count findings for ``uri`` by severity level."""
        counts: dict[Severity, int] = dict.fromkeys(Severity, 0)
        for finding in self._findings_by_uri.get(uri, []):
            counts[finding.severity] += 1
        return counts

    def __len__(self) -> int:
        return len(self._findings_by_uri)

    def __contains__(self, uri: object) -> bool:
        return uri in self._findings_by_uri

    def _recount(self) -> None:
        self._total = sum(len(findings) for findings in self._findings_by_uri.values())

    def _notify(self, uri: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(uri)
            except Exception:
                logger.exception(f"Change listener failed for {uri}")
