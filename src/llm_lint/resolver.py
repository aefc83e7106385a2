"""Locate a model-supplied code snippet inside a document.

Two passes, first plausible hit wins:

1. Whitespace-tolerant exact match: the snippet is escaped and every run of
   whitespace becomes ``\\s+``, so re-wrapped or re-indented snippets still
   match.
2. Word-anchor fuzzy match (snippets longer than ``FUZZY_MIN_LENGTH`` only):
   the first few significant words are looked up literally and a hit is
   accepted when enough of them appear close together.

Neither pass searches for a globally best match.
"""

import logging
import re

from llm_lint.models.findings import Position

logger = logging.getLogger(__name__)

FUZZY_MIN_LENGTH = 15
MIN_WORD_LENGTH = 4
MAX_ANCHOR_WORDS = 3
CONTEXT_RADIUS = 50
MIN_WORDS_IN_CONTEXT = 2


def offset_to_position(text: str, offset: int) -> Position:
    """Convert a character offset into a zero-based line/column position."""
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return Position(line=line, column=offset - line_start)


def _whitespace_tolerant_pattern(snippet: str) -> str:
    return r"\s+".join(re.escape(part) for part in snippet.split())


def _exact_match(snippet: str, text: str) -> int | None:
    try:
        regex = re.compile(_whitespace_tolerant_pattern(snippet))
    except re.error as e:
        logger.debug(f"Snippet pattern failed to compile: {e}")
        return None
    match = regex.search(text)
    return match.start() if match else None


def _significant_words(snippet: str) -> list[str]:
    words = [w for w in snippet.split() if len(w) >= MIN_WORD_LENGTH]
    return words[:MAX_ANCHOR_WORDS]


def _fuzzy_match(snippet: str, text: str) -> int | None:
    words = _significant_words(snippet)
    if not words:
        return None

    for word in words:
        index = text.find(word)
        if index < 0:
            continue
        context = text[max(0, index - CONTEXT_RADIUS) : min(len(text), index + CONTEXT_RADIUS)]
        if sum(1 for w in words if w in context) >= MIN_WORDS_IN_CONTEXT:
            return index

    return None


def resolve_snippet(snippet: str | None, document_text: str) -> Position | None:
    """Find where ``snippet`` occurs in ``document_text``.

    Args:
        snippet: Code fragment reported by the model
        document_text: Full text of the reviewed document

    Returns:
        Position of the first plausible match, or None if not found
    """
    if not snippet or not snippet.strip():
        return None

    offset = _exact_match(snippet.strip(), document_text)
    if offset is None and len(snippet) > FUZZY_MIN_LENGTH:
        offset = _fuzzy_match(snippet, document_text)
        if offset is not None:
            logger.debug(f"Snippet located by word anchors at offset {offset}")

    if offset is None:
        logger.debug(f"Snippet not found in document: {snippet[:40]!r}")
        return None

    return offset_to_position(document_text, offset)


class SnippetResolver:
    """Callable wrapper so the parser can take an injectable resolver."""

    def resolve(self, snippet: str | None, document_text: str) -> Position | None:
        return resolve_snippet(snippet, document_text)

    __call__ = resolve
