"""Text chunking: overlapping windows snapped to sentence or line boundaries."""

from __future__ import annotations

import re
from typing import Callable, Dict, List

from docretriever.errors import InputValidationError, TextTooLargeError, TooManyChunksError
from docretriever.models import Passage, new_id

DEFAULT_CHUNK_SIZE = 500
DEFAULT_OVERLAP = 50
MAX_TEXT_CHARS = 10_000_000
MAX_CHUNKS = 100_000

_PARAGRAPH_BREAK = re.compile(r"\n[ \t\r\f\v]*\n\s*")


def _validate(text: str, chunk_size: int, overlap: int, max_text_chars: int) -> None:
    if chunk_size < 1:
        raise InputValidationError(f"chunk_size must be >= 1, got {chunk_size}")
    if overlap < 0:
        raise InputValidationError(f"overlap must be >= 0, got {overlap}")
    if len(text) > max_text_chars:
        raise TextTooLargeError(len(text), max_text_chars)


def _window_end(text: str, start: int, chunk_size: int) -> int:
    end = min(start + chunk_size, len(text))
    if end >= len(text):
        return end
    window = text[start:end]
    break_point = max(window.rfind("."), window.rfind("\n"))
    if break_point > chunk_size // 2:
        return start + break_point + 1
    return end


def chunk_text(
    text: str,
    document_id: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
    max_text_chars: int = MAX_TEXT_CHARS,
    max_chunks: int = MAX_CHUNKS,
) -> List[Passage]:
    """Split text into overlapping passages.

    Each window is ``chunk_size`` characters long unless a period or newline
    past the middle of the window lets it end on a natural boundary. The next
    window starts ``overlap`` characters before the end of the previous one
    and at least ``max(1, chunk_size - overlap)`` characters later, but never
    past the end of the previous window, so every character lands in a
    passage. The scan stops once a window reaches the end of the text.

    Offsets refer to the untrimmed window; ``content`` is trimmed.
    """
    _validate(text, chunk_size, overlap, max_text_chars)
    if not text.strip():
        return []

    min_step = max(1, chunk_size - overlap)
    passages: List[Passage] = []
    start = 0
    while start < len(text):
        if len(passages) >= max_chunks:
            raise TooManyChunksError(max_chunks)

        end = _window_end(text, start, chunk_size)
        passages.append(
            Passage(
                id=new_id(),
                document_id=document_id,
                content=text[start:end].strip(),
                sequence_index=len(passages),
                start_offset=start,
                end_offset=end,
            )
        )
        if end >= len(text):
            break
        # never start past the end of the previous window
        start = max(start + 1, min(start + max(min_step, (end - start) - overlap), end))

    return passages


def iter_paragraph_spans(text: str) -> List[tuple[int, int]]:
    """Return ``(start, end)`` spans of the blank-line separated paragraphs."""
    spans = []
    position = 0
    for match in _PARAGRAPH_BREAK.finditer(text):
        spans.append((position, match.start()))
        position = match.end()
    spans.append((position, len(text)))
    return [(start, end) for start, end in spans if text[start:end].strip()]


def chunk_paragraphs(
    text: str,
    document_id: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
    max_text_chars: int = MAX_TEXT_CHARS,
    max_chunks: int = MAX_CHUNKS,
) -> List[Passage]:
    """Chunk paragraph by paragraph.

    Paragraphs that fit in ``chunk_size`` become a single passage; longer ones
    are windowed with :func:`chunk_text`. Offsets point into ``text`` and
    ``sequence_index`` runs across the whole document.
    """
    _validate(text, chunk_size, overlap, max_text_chars)

    passages: List[Passage] = []
    for para_start, para_end in iter_paragraph_spans(text):
        paragraph = text[para_start:para_end]
        if len(paragraph) <= chunk_size:
            pieces = [
                Passage(
                    id=new_id(),
                    document_id=document_id,
                    content=paragraph.strip(),
                    sequence_index=0,
                    start_offset=0,
                    end_offset=len(paragraph),
                )
            ]
        else:
            pieces = chunk_text(
                paragraph,
                document_id,
                chunk_size=chunk_size,
                overlap=overlap,
                max_text_chars=max_text_chars,
                max_chunks=max_chunks,
            )

        for piece in pieces:
            if len(passages) >= max_chunks:
                raise TooManyChunksError(max_chunks)
            piece.sequence_index = len(passages)
            piece.start_offset += para_start
            piece.end_offset += para_start
            passages.append(piece)

    return passages


ChunkFunction = Callable[..., List[Passage]]

CHUNK_MODES: Dict[str, ChunkFunction] = {
    "window": chunk_text,
    "paragraph": chunk_paragraphs,
}
