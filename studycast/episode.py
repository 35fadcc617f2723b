"""
Episode assembly: request validation, content-addressed episode identifiers,
and combining chunks, chapters and synthesis results into an Episode.
"""
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence
import hashlib
import logging

from studycast.chapters import word_count
from studycast.errors import ValidationError
from studycast.models import Chapter, Chunk, Episode, GenerationRequest, SynthesisResult

EPISODE_ID_PREFIX = "episode_"
DEFAULT_MAX_TEXT_CHARS = 50000


def make_episode_id(text: str) -> str:
    """
    Derives a deterministic episode identifier from the full source text.

    The same text always maps to the same identifier, so regenerating an
    episode for unchanged input is idempotent.
    """
    digest = hashlib.md5(text.encode("utf-8")).hexdigest()
    return f"{EPISODE_ID_PREFIX}{digest}"


def validate_text(text: Optional[str], max_text_chars: int = DEFAULT_MAX_TEXT_CHARS) -> str:
    """
    Checks that the text is usable for generation.

    Args:
        text (str): The candidate source text.
        max_text_chars (int, optional): Upper bound on the text length. Defaults to 50000.

    Returns:
        str: The text, unchanged.

    Raises:
        ValidationError: If the text is empty, blank, or too long.
    """
    if text is None or not text.strip():
        raise ValidationError("Text cannot be empty")
    if len(text) > max_text_chars:
        raise ValidationError(
            f"Text is too long ({len(text)} characters, max {max_text_chars})"
        )
    return text


def validate_request(request: GenerationRequest, max_text_chars: int = DEFAULT_MAX_TEXT_CHARS) -> None:
    """
    Rejects malformed generation requests before anything else runs.

    Raises:
        ValidationError: If neither text nor a file reference is given, the
            given text is unusable, or the chunk size is not positive.
    """
    if not request.text and not request.file_reference:
        raise ValidationError("Either text or a file reference must be provided")
    if request.text:
        validate_text(request.text, max_text_chars)
    if request.max_chunk_chars is not None and (
        isinstance(request.max_chunk_chars, bool)
        or not isinstance(request.max_chunk_chars, int)
        or request.max_chunk_chars <= 0
    ):
        raise ValidationError(
            f"max_chunk_chars must be a positive integer, got {request.max_chunk_chars!r}"
        )


class EpisodeAssembler:
    """Builds the immutable Episode record handed to the episode store."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def assemble(
        self,
        source_text: str,
        title: str,
        chunks: Sequence[Chunk],
        chapters: Sequence[Chapter],
        synthesis_result: SynthesisResult,
        lang: str = "en",
        source_type: str = "text",
    ) -> Episode:
        """
        Combines the pipeline outputs into an Episode.

        The total duration is the sum of the chapter estimates. It is a
        property of the text, so chunks that failed synthesis still count;
        a player can show their text instead of audio.

        Args:
            source_text (str): The full text the episode was generated from.
            title (str): Episode title.
            chunks (Sequence[Chunk]): The chunks that were synthesized.
            chapters (Sequence[Chapter]): One chapter per chunk.
            synthesis_result (SynthesisResult): Outcome of the synthesis stage.
            lang (str, optional): Language code. Defaults to "en".
            source_type (str, optional): "text" or "document". Defaults to "text".

        Returns:
            Episode: The assembled episode, not yet persisted.
        """
        if len(chunks) != len(chapters):
            raise ValueError(
                f"Chunk and chapter counts differ ({len(chunks)} != {len(chapters)})"
            )

        episode = Episode(
            episode_id=make_episode_id(source_text),
            title=title,
            full_text=source_text,
            word_count=word_count(source_text),
            duration=sum(chapter.duration for chapter in chapters),
            chapters=tuple(chapters),
            created_at=self._clock(),
            lang=lang,
            source_type=source_type,
            artifacts=tuple(synthesis_result.artifacts),
        )
        logging.info(
            "Assembled episode %s: %d chapters, %d words, ~%ds (%d artifacts, %d errors).",
            episode.episode_id, len(episode.chapters), episode.word_count, episode.duration,
            len(episode.artifacts), len(synthesis_result.errors)
        )
        return episode
