# src/gleaner/core/chunking.py
"""Chunk producers: page-delimited and size-bounded splitting."""

from __future__ import annotations

from gleaner.config import config
from gleaner.models.chunk import Chunk

PARAGRAPH_BREAK = "\n\n"
SENTENCE_BREAK = ". "


def split_into_pages(text: str, delimiter: str | None = None) -> list[Chunk]:
    """Split ``text`` on a page delimiter, numbering pages from 1."""
    delimiter = delimiter or config.chunking.page_delimiter
    return [
        Chunk(content=page.strip(), sequence_number=index)
        for index, page in enumerate(text.split(delimiter), start=1)
    ]


def _break_point(remaining: str, max_chunk_size: int) -> int:
    """Pick where to cut ``remaining``, preferring paragraph then sentence ends."""
    # Only accept a natural break in the back half so chunks stay reasonably full
    threshold = max_chunk_size * 0.5

    paragraph = remaining.rfind(PARAGRAPH_BREAK, 0, max_chunk_size + len(PARAGRAPH_BREAK))
    if paragraph > threshold:
        return paragraph

    sentence = remaining.rfind(SENTENCE_BREAK, 0, max_chunk_size + len(SENTENCE_BREAK))
    if sentence > threshold:
        # keep the period with its sentence
        return sentence + 1

    return max_chunk_size


def chunk_by_size(text: str, max_chunk_size: int | None = None) -> list[Chunk]:
    """Split ``text`` into trimmed chunks of at most ``max_chunk_size`` characters."""
    if max_chunk_size is None:
        max_chunk_size = config.chunking.max_chunk_size
    if max_chunk_size < 1:
        raise ValueError(f"max_chunk_size must be >= 1, got {max_chunk_size}")

    chunks: list[Chunk] = []
    remaining = text
    sequence_number = 1

    while remaining:
        if len(remaining) <= max_chunk_size:
            chunks.append(Chunk(content=remaining.strip(), sequence_number=sequence_number))
            break

        cut = _break_point(remaining, max_chunk_size)
        chunks.append(Chunk(content=remaining[:cut].strip(), sequence_number=sequence_number))
        remaining = remaining[cut:].lstrip()
        sequence_number += 1

    return chunks


__all__ = ["chunk_by_size", "split_into_pages"]
