"""Tests for request validation and episode assembly"""
import hashlib
from datetime import datetime, timezone

import pytest

from studycast import episode
from studycast.chapters import build_chapters
from studycast.errors import ValidationError
from studycast.models import GenerationRequest, SynthesisOutcome, SynthesisResult
from studycast.text_processing import chunk_text

TEXT = (
    "Cells are the basic unit of life. Every organism is made of one or more cells.\n\n"
    "Organelles divide the work inside a cell. The nucleus stores genetic material."
)
FIXED_TIME = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

# --- Identifiers ---
def test_episode_id_is_content_addressed():
    assert episode.make_episode_id(TEXT) == episode.make_episode_id(TEXT)
    assert episode.make_episode_id(TEXT) == "episode_" + hashlib.md5(TEXT.encode("utf-8")).hexdigest()
    assert episode.make_episode_id(TEXT) != episode.make_episode_id(TEXT + " ")

# --- Validation ---
def test_validate_request_requires_text_or_reference():
    with pytest.raises(ValidationError):
        episode.validate_request(GenerationRequest())
    with pytest.raises(ValidationError):
        episode.validate_request(GenerationRequest(text=""))

def test_validate_request_rejects_blank_text():
    with pytest.raises(ValidationError):
        episode.validate_request(GenerationRequest(text="   \n\t"))

def test_validate_request_rejects_long_text():
    with pytest.raises(ValidationError):
        episode.validate_request(GenerationRequest(text="a" * 101), max_text_chars=100)
    episode.validate_request(GenerationRequest(text="a" * 100), max_text_chars=100)

def test_validate_request_accepts_reference_only():
    episode.validate_request(GenerationRequest(file_reference="notes/42.txt"))

@pytest.mark.parametrize("max_chunk_chars", [0, -1, "100"])
def test_validate_request_rejects_bad_chunk_size(max_chunk_chars):
    with pytest.raises(ValidationError):
        episode.validate_request(GenerationRequest(text=TEXT, max_chunk_chars=max_chunk_chars))

def test_validate_text():
    assert episode.validate_text(TEXT) == TEXT
    with pytest.raises(ValidationError):
        episode.validate_text(None)

# --- EpisodeAssembler ---
def test_assemble_uses_text_derived_duration():
    chunks = chunk_text(TEXT, max_chars=60)
    chapters = build_chapters(chunks)
    result = SynthesisResult.from_outcomes([
        SynthesisOutcome(index=0, artifact="out/chunk-000.mp3", duration=chapters[0].duration),
        *[SynthesisOutcome(index=c.index, error=f"Failed to synthesize chunk {c.index}: boom") for c in chunks[1:]],
    ])
    assembler = episode.EpisodeAssembler(clock=lambda: FIXED_TIME)

    ep = assembler.assemble(TEXT, "Cell Biology", chunks, chapters, result)

    assert ep.episode_id == episode.make_episode_id(TEXT)
    assert ep.duration == sum(c.duration for c in chapters)
    assert ep.duration > result.total_duration
    assert ep.word_count == len(TEXT.split())
    assert ep.created_at == FIXED_TIME
    assert ep.artifacts == ("out/chunk-000.mp3",)
    assert len(ep.chapters) == len(chunks)
    assert ep.persisted_id is None

def test_assemble_rejects_mismatched_chapters():
    chunks = chunk_text(TEXT, max_chars=60)
    with pytest.raises(ValueError):
        episode.EpisodeAssembler().assemble(TEXT, "t", chunks, [], SynthesisResult())

def test_episode_payload_and_persisted_copy():
    chunks = chunk_text(TEXT)
    ep = episode.EpisodeAssembler(clock=lambda: FIXED_TIME).assemble(
        TEXT, "Cells", chunks, build_chapters(chunks), SynthesisResult(), source_type="document"
    )
    assert ep.to_payload() == {
        "id": ep.episode_id,
        "title": "Cells",
        "fullText": TEXT,
        "duration": ep.duration,
        "wordCount": ep.word_count,
        "sourceType": "document",
    }
    saved = ep.with_persisted_id("17")
    assert saved.persisted_id == "17"
    assert ep.persisted_id is None
    assert saved.to_metadata()["createdAt"] == "2026-01-02T03:04:05+00:00"
