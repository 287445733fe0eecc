"""Boundary-aware text chunking (paragraph, then sentence)."""

from __future__ import annotations

import re

PARAGRAPH_SEPARATOR = "\n\n"
CODE_FENCE = "```"

# Every character belongs to exactly one match: a run ending in sentence
# punctuation, or a trailing run without any.
_SENTENCE_RE = re.compile(r"[^.!?]*[.!?]+|[^.!?]+")


def byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


def truncate_bytes(text: str, max_bytes: int) -> str:
    """Cut *text* to at most *max_bytes* UTF-8 bytes without splitting a character."""
    return text.encode("utf-8")[:max_bytes].decode("utf-8", errors="ignore")


def split_paragraphs(text: str) -> list[str]:
    """Split on blank lines, keeping a fenced code block as a single unit."""
    units: list[str] = []
    open_block: list[str] = []

    for part in text.split(PARAGRAPH_SEPARATOR):
        toggles = part.count(CODE_FENCE) % 2 == 1
        if open_block:
            open_block.append(part)
            if toggles:
                units.append(PARAGRAPH_SEPARATOR.join(open_block))
                open_block = []
        elif toggles:
            open_block.append(part)
        else:
            units.append(part)

    if open_block:
        # Unterminated fence: keep the remainder together.
        units.append(PARAGRAPH_SEPARATOR.join(open_block))
    return units


def split_sentences(paragraph: str) -> list[str]:
    """Split on ``.``, ``!`` and ``?``; ``"".join(result) == paragraph``."""
    return _SENTENCE_RE.findall(paragraph)


def _pack(units: list[str], separator: str, max_size: int) -> list[str]:
    """Greedily accumulate *units* while the joined size stays within *max_size*."""
    packed: list[str] = []
    current: list[str] = []

    for unit in units:
        if byte_length(separator.join([*current, unit])) <= max_size:
            current.append(unit)
            continue
        if current:
            packed.append(separator.join(current))
        current = [unit]

    if current:
        packed.append(separator.join(current))
    return packed


def _attach_blanks(pieces: list[tuple[str, str]]) -> list[str]:
    """Fold whitespace-only pieces into a neighbouring chunk.

    Each piece is ``(separator, text)`` where *separator* is what precedes
    the text in the source.  A blank piece is appended to the previous
    chunk, or prefixed to the next one when nothing precedes it.
    """
    chunks: list[str] = []
    leading: str | None = None

    for separator, piece in pieces:
        if leading is not None:
            piece = f"{leading}{separator}{piece}"
            leading = None
        if piece.strip():
            chunks.append(piece)
        elif chunks:
            chunks[-1] = f"{chunks[-1]}{separator}{piece}"
        else:
            leading = piece
    return chunks


def chunk_text(text: str, max_size: int) -> list[str]:
    """Split *text* into ordered chunks of at most *max_size* UTF-8 bytes.

    Paragraphs (blank-line separated) are packed together while they fit.
    A paragraph that is too large on its own is split into sentences which
    are packed the same way.  A single sentence, or a fenced code block,
    larger than *max_size* is emitted whole; truncation is left to callers.
    Whitespace-only paragraphs and sentence tails ride along with a
    neighbouring chunk, which may take that chunk past *max_size* by the
    whitespace alone.

    Chunks from different paragraphs rejoin with ``"\\n\\n"``; the sentence
    pieces of one paragraph rejoin with ``""``.  Rejoining this way gives
    back *text* exactly.

    Args:
        text: Input text.
        max_size: Maximum chunk size in bytes (must be positive).

    Returns:
        Non-empty, non-blank chunks in input order.
    """
    if max_size <= 0:
        raise ValueError(f"max_size must be positive, got {max_size}")
    if not text.strip():
        return []

    pieces: list[tuple[str, str]] = []
    current: list[str] = []

    def flush() -> None:
        if current:
            pieces.append((PARAGRAPH_SEPARATOR, PARAGRAPH_SEPARATOR.join(current)))
        current.clear()

    for paragraph in split_paragraphs(text):
        if byte_length(PARAGRAPH_SEPARATOR.join([*current, paragraph])) <= max_size:
            current.append(paragraph)
            continue

        flush()
        if byte_length(paragraph) <= max_size or not paragraph.strip():
            current.append(paragraph)
        elif CODE_FENCE in paragraph:
            pieces.append((PARAGRAPH_SEPARATOR, paragraph))
        else:
            sentences = _pack(split_sentences(paragraph), "", max_size)
            pieces.append((PARAGRAPH_SEPARATOR, sentences[0]))
            pieces.extend(("", piece) for piece in sentences[1:])

    flush()
    return _attach_blanks(pieces)
