"""
Exception types shared by the podcast generation pipeline.

Two failure domains are kept apart on purpose: per-chunk synthesis failures
(ProviderError) are recovered by the orchestrator, while NoArtifactsProduced
and PersistenceError end the generation request.
"""
from typing import List, Optional


class StudycastError(Exception):
    """Base class for all pipeline errors."""
    pass


class ValidationError(StudycastError):
    """Raised when a generation request is rejected before any side effect."""
    pass


class ChunkingError(StudycastError, ValueError):
    """Raised for an unusable chunker configuration (e.g. a non-positive limit)."""
    pass


class ProviderError(StudycastError):
    """Raised by a TTS provider when a single chunk cannot be synthesized."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NoArtifactsProduced(StudycastError):
    """Raised when every chunk of a synthesis batch failed."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(
            f"Failed to synthesize any audio chunks ({len(self.errors)} errors)"
        )


class PersistenceError(StudycastError):
    """Raised when the episode store does not confirm a save."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message if not detail else f"{message}: {detail}")
        self.detail = detail
