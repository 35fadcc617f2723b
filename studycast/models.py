"""Shared data types for the podcast generation pipeline."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Chunk:
    index: int                       # 0-based position in the document
    text: str
    starts_paragraph: bool = True    # chunk begins on a paragraph boundary

    def __len__(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class Chapter:
    index: int
    title: str
    start_time: int   # seconds from the start of the episode
    duration: int     # seconds
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "title": self.title,
            "startTime": self.start_time,
            "duration": self.duration,
            "text": self.text,
        }


@dataclass(frozen=True)
class SynthesisOutcome:
    """Result of synthesizing one chunk. `artifact` is None when it failed."""
    index: int
    artifact: Optional[str] = None
    duration: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.artifact is not None and self.error is None


@dataclass(frozen=True)
class SynthesisResult:
    """
    Aggregate of a synthesis batch.

    `artifacts` holds the successful artifact references in chunk order,
    `total_duration` sums the estimates of successful chunks only, and
    `errors` carries one message per failed chunk (the message names the index).
    """
    artifacts: Tuple[str, ...] = ()
    total_duration: int = 0
    errors: Tuple[str, ...] = ()
    outcomes: Tuple[SynthesisOutcome, ...] = ()
    cancelled: bool = False

    @classmethod
    def from_outcomes(cls, outcomes: List[SynthesisOutcome], cancelled: bool = False) -> "SynthesisResult":
        ordered = sorted(outcomes, key=lambda o: o.index)
        return cls(
            artifacts=tuple(o.artifact for o in ordered if o.ok),
            total_duration=sum(o.duration for o in ordered if o.ok),
            errors=tuple(o.error for o in ordered if o.error),
            outcomes=tuple(ordered),
            cancelled=cancelled,
        )

    @property
    def succeeded(self) -> int:
        return len(self.artifacts)

    @property
    def failed_indices(self) -> List[int]:
        return [o.index for o in self.outcomes if o.error]


@dataclass(frozen=True)
class Episode:
    episode_id: str
    title: str
    full_text: str
    word_count: int
    duration: int
    chapters: Tuple[Chapter, ...]
    created_at: datetime
    lang: str = "en"
    source_type: str = "text"
    artifacts: Tuple[str, ...] = ()
    persisted_id: Optional[str] = None

    def with_persisted_id(self, persisted_id: str) -> "Episode":
        """Returns a copy carrying the identifier assigned by the episode store."""
        return replace(self, persisted_id=persisted_id)

    def to_payload(self) -> Dict[str, Any]:
        """The shape accepted by the persistence service."""
        return {
            "id": self.episode_id,
            "title": self.title,
            "fullText": self.full_text,
            "duration": self.duration,
            "wordCount": self.word_count,
            "sourceType": self.source_type,
        }

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "episodeId": self.episode_id,
            "title": self.title,
            "createdAt": self.created_at.isoformat(),
            "totalDurationSec": self.duration,
            "wordCount": self.word_count,
            "lang": self.lang,
            "sourceType": self.source_type,
            "textLength": len(self.full_text),
            "chunks": len(self.chapters),
            "chapters": [chapter.to_dict() for chapter in self.chapters],
            "artifacts": list(self.artifacts),
            "persistedId": self.persisted_id,
        }


@dataclass
class GenerationRequest:
    text: Optional[str] = None
    file_reference: Optional[str] = None
    title: Optional[str] = None
    lang: Optional[str] = None
    max_chunk_chars: Optional[int] = None
    slow: bool = False


@dataclass
class GenerationResponse:
    episode_id: str
    chapters: List[Chapter]
    total_duration: int
    word_count: int
    partial_errors: List[str] = field(default_factory=list)
    persisted_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "episodeId": self.episode_id,
            "chapters": [chapter.to_dict() for chapter in self.chapters],
            "totalDurationSeconds": self.total_duration,
            "wordCount": self.word_count,
            "partialErrors": list(self.partial_errors),
            "persistedId": self.persisted_id,
        }
