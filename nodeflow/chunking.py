"""Word-bounded text chunking for knowledge base ingestion."""

from __future__ import annotations

from typing import List

from .constants import DEFAULT_MAX_WORDS, DEFAULT_MIN_WORDS


def count_words(text: str) -> int:
    return len(text.split())


def chunk_text(
    text: str, min_words: int = DEFAULT_MIN_WORDS, max_words: int = DEFAULT_MAX_WORDS
) -> List[str]:
    """Split ``text`` into chunks of ``min_words`` to ``max_words`` words.

    Words are separated by any whitespace and re-joined with single spaces.
    A chunk is closed once it holds at least ``min_words`` words and either
    reaches ``max_words`` or the input ends. Leftover words form a final,
    possibly shorter, chunk.
    """

    if min_words < 1 or max_words < 1:
        raise ValueError("Chunk word bounds must be positive")
    if min_words > max_words:
        raise ValueError(
            f"min_words ({min_words}) must not exceed max_words ({max_words})"
        )

    words = text.split()
    chunks: List[str] = []
    current: List[str] = []
    last = len(words) - 1

    for i, word in enumerate(words):
        current.append(word)
        if len(current) >= min_words and (len(current) >= max_words or i == last):
            chunks.append(" ".join(current))
            current = []

    if current:
        chunks.append(" ".join(current))

    return chunks
