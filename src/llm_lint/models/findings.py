"""Finding models for code review results."""

from dataclasses import dataclass
from enum import Enum


class Severity(Enum):
    """Severity levels for findings. Wire tokens are the upper-cased names.

    - ERROR: Runtime errors, serious bugs, security vulnerabilities.
    - WARNING: Best-practice violations, performance problems, latent bugs.
    - INFO: Code quality and readability suggestions.
    - HINT: Style, naming, comments and documentation.
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"

    @property
    def token(self) -> str:
        """Wire token used in prompts and freeform responses."""
        return self.name

    @property
    def rank(self) -> int:
        """Display rank, 0 is most severe."""
        return list(Severity).index(self)

    @classmethod
    def from_token(cls, token: object) -> "Severity | None":
        """Look up a severity by token, case-insensitive. None if unknown."""
        if not isinstance(token, str):
            return None
        try:
            return cls(token.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class Position:
    """Zero-based line/column location in a document."""

    line: int
    column: int

    def __post_init__(self) -> None:
        """Validate position data."""
        if self.line < 0:
            raise ValueError(f"line must be >= 0, got {self.line}")
        if self.column < 0:
            raise ValueError(f"column must be >= 0, got {self.column}")


@dataclass(frozen=True)
class Finding:
    """A single normalized review item."""

    severity: Severity
    message: str
    code_snippet: str | None = None
    position: Position | None = None

    def __post_init__(self) -> None:
        """Validate finding data."""
        if not self.message or not self.message.strip():
            raise ValueError("message must be non-empty")

    @property
    def line(self) -> int | None:
        return self.position.line if self.position else None

    @property
    def column(self) -> int | None:
        return self.position.column if self.position else None

    @property
    def identity_key(self) -> tuple[Severity, str, int, int]:
        """Dedup key; a missing position counts as line 0, column 0."""
        return (self.severity, self.message, self.line or 0, self.column or 0)
