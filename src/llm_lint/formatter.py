"""JSON-friendly renderings of findings, diagnostics and the results tree."""

from typing import Any

from llm_lint.models.findings import Finding
from llm_lint.models.views import Badge, Diagnostic, TreeGroup


def format_finding(finding: Finding) -> dict[str, Any]:
    return {
        "severity": finding.severity.token,
        "message": finding.message,
        "code_snippet": finding.code_snippet,
        "line": finding.line,
        "column": finding.column,
    }


def format_diagnostic(diagnostic: Diagnostic) -> dict[str, Any]:
    r = diagnostic.range
    return {
        "range": {
            "start": {"line": r.start_line, "column": r.start_column},
            "end": {"line": r.end_line, "column": r.end_column},
        },
        "severity": diagnostic.severity.token,
        "message": diagnostic.message,
        "source": diagnostic.source,
    }


def format_tree(groups: list[TreeGroup], badge: Badge | None) -> dict[str, Any]:
    """Results view payload: one node per document plus the badge."""
    return {
        "badge": {"value": badge.value, "tooltip": badge.tooltip} if badge else None,
        "documents": [
            {
                "uri": group.uri,
                "label": group.label,
                "description": group.description,
                "count": group.findings_count,
                "counts": {severity.token: count for severity, count in group.counts.items()},
                "findings": [format_finding(f) for f in group.findings],
            }
            for group in groups
        ],
    }
