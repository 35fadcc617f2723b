"""
End-to-end podcast generation for one request: validate, resolve the text,
chunk, synthesize, assemble, persist.

Chunk synthesis failures are tolerated and reported as partial errors.
Validation errors, NoArtifactsProduced and PersistenceError end the request.
"""
from typing import Optional
import json
import logging
import os
import threading

from studycast.audio_synthesis import AudioSynthesisService, TTSOptions
from studycast.chapters import build_chapters
from studycast.config import Settings
from studycast.documents import DocumentSource
from studycast.episode import EpisodeAssembler, make_episode_id, validate_request, validate_text
from studycast.errors import ValidationError
from studycast.models import Episode, GenerationRequest, GenerationResponse
from studycast.persistence import EpisodeStore
from studycast.text_processing import DefaultTextChunker

DEFAULT_TITLE = "StudySync Podcast"
METADATA_FILENAME = "metadata.json"


class PodcastGenerationService:
    """
    High-level service for turning a generation request into a persisted,
    chaptered episode.
    """

    def __init__(
        self,
        synthesis_service: AudioSynthesisService,
        episode_store: EpisodeStore,
        document_source: Optional[DocumentSource] = None,
        assembler: Optional[EpisodeAssembler] = None,
        settings: Optional[Settings] = None,
    ):
        self.synthesis_service = synthesis_service
        self.episode_store = episode_store
        self.document_source = document_source
        self.assembler = assembler if assembler else EpisodeAssembler()
        self.settings = settings if settings else Settings()

    def _resolve_text(self, request: GenerationRequest):
        if request.text:
            return request.text, "text"

        if self.document_source is None:
            raise ValidationError("Document references are not supported without a document source")
        text = self.document_source.get_text(request.file_reference)
        if text is None:
            raise ValidationError(f"Document '{request.file_reference}' could not be read")
        return validate_text(text, self.settings.max_text_chars), "document"

    def _write_metadata(self, episode: Episode, episode_dir: str) -> None:
        path = os.path.join(episode_dir, METADATA_FILENAME)
        try:
            os.makedirs(episode_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(episode.to_metadata(), f, indent=2)
            logging.info("Episode metadata written to '%s'.", path)
        except OSError as e:
            logging.error("Could not write episode metadata to '%s': %s", path, e)

    def generate(
        self,
        request: GenerationRequest,
        output_dir: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> GenerationResponse:
        """
        Runs the whole generation workflow for one request.

        Args:
            request (GenerationRequest): Text or file reference plus options.
            output_dir (str, optional): Base directory for episode artifacts.
                                        Defaults to the configured output directory.
            cancel_event (threading.Event, optional): Stops issuing provider requests
                                                      when set.

        Returns:
            GenerationResponse: Episode id, chapters, durations and partial errors.

        Raises:
            ValidationError: If the request or the resolved text is invalid.
            NoArtifactsProduced: If every chunk failed synthesis.
            PersistenceError: If the episode store did not confirm the save.
        """
        validate_request(request, self.settings.max_text_chars)
        text, source_type = self._resolve_text(request)

        title = request.title or DEFAULT_TITLE
        lang = request.lang or self.settings.tts_lang
        max_chars = request.max_chunk_chars or self.settings.max_chunk_chars
        logging.info("Processing text for podcast '%s' (%d chars).", title, len(text))

        chunks = DefaultTextChunker(max_chars=max_chars).chunk(text)
        chapters = build_chapters(chunks, self.settings.words_per_minute)
        logging.info("Created %d text chunks.", len(chunks))

        episode_dir = os.path.join(output_dir or self.settings.output_dir, make_episode_id(text))
        options = TTSOptions(lang=lang, slow=request.slow, host=self.settings.tts_host)
        synthesis_result = self.synthesis_service.synthesize(
            chunks, episode_dir, options, cancel_event=cancel_event
        )

        episode = self.assembler.assemble(
            source_text=text,
            title=title,
            chunks=chunks,
            chapters=chapters,
            synthesis_result=synthesis_result,
            lang=lang,
            source_type=source_type,
        )
        persisted_id = self.episode_store.save(episode)
        episode = episode.with_persisted_id(persisted_id)
        self._write_metadata(episode, episode_dir)

        partial_errors = list(synthesis_result.errors)
        if synthesis_result.cancelled:
            skipped = len(chunks) - len(synthesis_result.outcomes)
            partial_errors.append(f"Synthesis cancelled; {skipped} chunks were not attempted")
        if partial_errors:
            logging.warning("Episode %s generated with %d partial errors.", episode.episode_id, len(partial_errors))

        return GenerationResponse(
            episode_id=episode.episode_id,
            chapters=list(episode.chapters),
            total_duration=episode.duration,
            word_count=episode.word_count,
            partial_errors=partial_errors,
            persisted_id=persisted_id,
        )
