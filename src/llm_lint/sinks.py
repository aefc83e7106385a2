"""Map findings onto the editor's diagnostics and results-tree surfaces."""

import logging
from collections.abc import Sequence
from pathlib import PurePosixPath
from typing import Protocol
from urllib.parse import unquote, urlparse

from llm_lint.models.findings import Finding, Severity
from llm_lint.models.views import Badge, Diagnostic, Range, TreeGroup
from llm_lint.store import ResultStore

logger = logging.getLogger(__name__)

SEVERITY_LABELS = {
    Severity.ERROR: "Errors",
    Severity.WARNING: "Warnings",
    Severity.INFO: "Info",
    Severity.HINT: "Hints",
}


class DiagnosticsSink(Protocol):
    """Problems surface of the editor."""

    def set(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        ...

    def delete(self, uri: str) -> None:
        ...


class InMemoryDiagnosticsSink:
    """Diagnostics sink that keeps the latest set per URI."""

    def __init__(self) -> None:
        self._by_uri: dict[str, list[Diagnostic]] = {}

    def set(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        self._by_uri[uri] = list(diagnostics)
        logger.info(f"{len(diagnostics)} diagnostics added to {uri}")

    def delete(self, uri: str) -> None:
        self._by_uri.pop(uri, None)

    def get(self, uri: str) -> list[Diagnostic]:
        return list(self._by_uri.get(uri, []))


def findings_to_diagnostics(findings: Sequence[Finding], document_text: str) -> list[Diagnostic]:
    """Map each finding to a single-line range from its column to end of line.

    Findings without a position are anchored at the start of the document so
    every finding still shows up on the problems surface.
    """
    lines = document_text.split("\n")
    diagnostics = []
    for finding in findings:
        line_no = finding.line or 0
        column = finding.column or 0
        line_no = max(0, min(line_no, len(lines) - 1))
        line_text = lines[line_no]
        diagnostics.append(
            Diagnostic(
                range=Range(
                    start_line=line_no,
                    start_column=min(column, len(line_text)),
                    end_line=line_no,
                    end_column=len(line_text),
                ),
                severity=finding.severity,
                message=finding.message,
            )
        )
    return diagnostics


def uri_to_path(uri: str) -> str:
    """Filesystem path of a ``file://`` URI; other strings pass through."""
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return unquote(parsed.path)
    return uri


def workspace_relative_path(path: str, workspace_folders: Sequence[str] = ()) -> str:
    """Path relative to the first containing workspace folder, with a leading slash.

    Falls back to the bare file name outside any workspace.
    """
    normalized = path.replace("\\", "/")
    for folder in workspace_folders:
        folder = folder.replace("\\", "/").rstrip("/")
        if normalized == folder or normalized.startswith(folder + "/"):
            relative = normalized[len(folder) :]
            return relative if relative.startswith("/") else "/" + relative
    return PurePosixPath(normalized).name


def format_counts(counts: dict[Severity, int]) -> str:
    """Render non-zero counts as ``Errors: 2, Warnings: 1``."""
    return ", ".join(
        f"{SEVERITY_LABELS[severity]}: {counts[severity]}"
        for severity in sorted(counts, key=lambda s: s.rank)
        if counts.get(severity, 0) > 0
    )


def build_tree(store: ResultStore, workspace_folders: Sequence[str] = ()) -> list[TreeGroup]:
    """Group the store's findings per document for the results list."""
    groups = []
    for uri, findings in store.all_entries():
        if not findings:
            continue
        path = uri_to_path(uri)
        counts = store.severity_counts(uri)
        label = workspace_relative_path(path, workspace_folders)
        summary = format_counts(counts)
        if summary:
            label = f"{label} ({summary})"
        groups.append(
            TreeGroup(uri=uri, label=label, description=path, findings=findings, counts=counts)
        )
    return groups


def build_badge(store: ResultStore) -> Badge | None:
    """Badge for the results view, or None when there is nothing to show."""
    total = store.aggregate_count()
    if total <= 0:
        return None
    return Badge(value=total, tooltip=f"{total} review findings")
