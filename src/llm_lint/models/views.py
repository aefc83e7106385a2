"""View models consumed by the diagnostics and tree sinks."""

from dataclasses import dataclass, field

from llm_lint.models.findings import Finding, Severity

DIAGNOSTIC_SOURCE = "LLM Reviewer"


@dataclass(frozen=True)
class Range:
    """Zero-based span in a document."""

    start_line: int
    start_column: int
    end_line: int
    end_column: int


@dataclass(frozen=True)
class Diagnostic:
    """An entry for the editor's problems surface."""

    range: Range
    severity: Severity
    message: str
    source: str = DIAGNOSTIC_SOURCE


@dataclass
class TreeGroup:
    """One document node in the grouped results list."""

    uri: str
    label: str
    description: str
    findings: list[Finding] = field(default_factory=list)
    counts: dict[Severity, int] = field(default_factory=dict)

    @property
    def findings_count(self) -> int:
        return len(self.findings)


@dataclass(frozen=True)
class Badge:
    """Aggregate count badge shown on the results view."""

    value: int
    tooltip: str
