"""
Chapter titles and duration estimates derived from chunk text.

Durations are text-derived (word count at a fixed speaking pace), so they do
not depend on whether synthesis of a chunk succeeded.
"""
from typing import List, Sequence
import re

from studycast.models import Chapter, Chunk

DEFAULT_WORDS_PER_MINUTE = 150
TITLE_WORDS = 8

TRAILING_PUNCTUATION = re.compile(r"[.!?]+$")
LEADING_NON_ALNUM = re.compile(r"^[\W_]+")


def word_count(text: str) -> int:
    """Counts whitespace-delimited tokens; empty or blank text has 0 words."""
    if not text:
        return 0
    return len(text.split())


def estimate_seconds(text: str, words_per_minute: int = DEFAULT_WORDS_PER_MINUTE) -> int:
    """
    Estimates spoken duration of a text, always rounding up.

    Args:
        text (str): The text to be read aloud.
        words_per_minute (int, optional): Speaking pace. Defaults to 150.

    Returns:
        int: ceil(words / words_per_minute * 60) seconds.

    Raises:
        ValueError: If words_per_minute is not positive.
    """
    if words_per_minute <= 0:
        raise ValueError(f"words_per_minute must be positive, got {words_per_minute!r}")
    words = word_count(text)
    # Integer ceiling division keeps exact multiples exact (10 words @ 150 wpm -> 4).
    return -(-words * 60 // words_per_minute)


def title_for(text: str, index: int) -> str:
    """
    Derives a short chapter title from the first words of a chunk.

    Falls back to "Chapter N" (1-based) when nothing alphanumeric survives
    the cleanup.
    """
    title = " ".join(text.split()[:TITLE_WORDS])
    title = TRAILING_PUNCTUATION.sub("", title)
    title = LEADING_NON_ALNUM.sub("", title).strip()
    return title or f"Chapter {index + 1}"


def generate_chapter_titles(chunks: Sequence[str]) -> List[str]:
    return [title_for(chunk, i) for i, chunk in enumerate(chunks)]


def build_chapters(chunks: Sequence[Chunk], words_per_minute: int = DEFAULT_WORDS_PER_MINUTE) -> List[Chapter]:
    """
    Builds one Chapter per chunk with cumulative start offsets.

    Args:
        chunks (Sequence[Chunk]): Chunks in document order.
        words_per_minute (int, optional): Speaking pace. Defaults to 150.

    Returns:
        List[Chapter]: Chapters aligned with the chunk indices.
    """
    chapters = []
    start_time = 0
    for chunk in chunks:
        duration = estimate_seconds(chunk.text, words_per_minute)
        chapters.append(Chapter(
            index=chunk.index,
            title=title_for(chunk.text, chunk.index),
            start_time=start_time,
            duration=duration,
            text=chunk.text,
        ))
        start_time += duration
    return chapters
