"""Document and model response models."""

from dataclasses import dataclass
from typing import Any


@dataclass
class Document:
    """A text document handed over by the editor. Only ever read."""

    uri: str
    path: str
    text: str
    language_id: str = "plaintext"
    is_untitled: bool = False

    @property
    def line_count(self) -> int:
        return self.text.count("\n") + 1


@dataclass
class ModelResponse:
    """A fully received chat completion, reduced to what the parser needs."""

    content: str = ""
    tool_arguments: dict[str, Any] | None = None

    @property
    def is_structured(self) -> bool:
        return self.tool_arguments is not None
