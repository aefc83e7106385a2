"""Data models for LLM Lint."""

from llm_lint.models.document import Document, ModelResponse
from llm_lint.models.findings import Finding, Position, Severity
from llm_lint.models.views import Badge, Diagnostic, Range, TreeGroup

__all__ = [
    "Badge",
    "Diagnostic",
    "Document",
    "Finding",
    "ModelResponse",
    "Position",
    "Range",
    "Severity",
    "TreeGroup",
]
