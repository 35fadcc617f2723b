"""
This module drives an external Text-to-Speech (TTS) provider across the
chunks of a document. It defines the provider and storage interfaces, two
concrete providers (the free Google Translate endpoint through gTTS and the
Google Cloud Text-to-Speech API), local artifact storage, and the
synthesis service that isolates per-chunk failures, paces requests, and
aggregates the results.
"""
import io
import logging
import os
import random
import threading
import time
import urllib.parse
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence

from google.api_core.exceptions import InternalServerError, ResourceExhausted, ServiceUnavailable
from google.cloud import texttospeech
from gtts import gTTS, gTTSError

from studycast.chapters import DEFAULT_WORDS_PER_MINUTE, estimate_seconds
from studycast.errors import NoArtifactsProduced, ProviderError
from studycast.models import Chunk, SynthesisOutcome, SynthesisResult

DEFAULT_HOST = "https://translate.google.com"
DEFAULT_PACING_DELAY = 0.1


@dataclass(frozen=True)
class TTSOptions:
    lang: str = "en"
    slow: bool = False          # halved speaking rate
    host: str = DEFAULT_HOST    # provider endpoint


# --- Interface Definitions ---

class TTSProvider(Protocol):
    """Protocol for classes that turn a piece of text into audio bytes."""
    def synthesize(self, text: str, options: TTSOptions) -> bytes:
        """
        Synthesizes one chunk of text.

        Args:
            text (str): The text content to synthesize.
            options (TTSOptions): Language, speaking rate and endpoint.

        Returns:
            bytes: The encoded audio (MP3).

        Raises:
            ProviderError: If the provider rejects the request or returns no audio.
        """
        ...

class ArtifactStorage(Protocol):
    """Protocol for classes that persist synthesized audio."""
    def save(self, path: str, data: bytes) -> str:
        """
        Writes the data to the given location, creating or overwriting it.

        Returns:
            str: A reference to the stored artifact.
        """
        ...


# --- Implementation Classes ---

class GTTSProvider(TTSProvider):
    """
    A TTSProvider backed by gTTS, which talks to the Google Translate
    text-to-speech endpoint. The endpoint host is mapped to a gTTS top-level
    domain, e.g. "https://translate.google.co.uk" -> "co.uk".
    """

    def __init__(self, timeout: Optional[float] = 30.0):
        self.timeout = timeout

    @staticmethod
    def tld_from_host(host: str) -> str:
        # Bare hosts ("translate.google.com:443") need "//" to parse as a netloc.
        hostname = urllib.parse.urlparse(host if "//" in host else f"//{host}").hostname or ""
        marker = "google."
        if marker in hostname:
            return hostname.split(marker, 1)[1]
        logging.warning("Unrecognized TTS host '%s'. Falling back to 'com'.", host)
        return "com"

    def synthesize(self, text: str, options: TTSOptions) -> bytes:
        buffer = io.BytesIO()
        try:
            tts = gTTS(
                text=text,
                lang=options.lang,
                slow=options.slow,
                tld=self.tld_from_host(options.host),
                timeout=self.timeout,
            )
            tts.write_to_fp(buffer)
        except gTTSError as e:
            status = getattr(getattr(e, "rsp", None), "status_code", None)
            raise ProviderError(str(e), status_code=status) from e

        data = buffer.getvalue()
        if not data:
            raise ProviderError("Provider returned no audio data")
        return data


class GoogleCloudTTSProvider(TTSProvider):
    """
    An implementation of the TTSProvider protocol that uses the Google Cloud
    Text-to-Speech API.

    This class includes retry logic with exponential backoff for handling
    transient API errors like rate limits and server unavailability.
    """
    SLOW_SPEAKING_RATE = 0.5

    def __init__(
        self,
        voice_name: Optional[str] = None,
        max_retries: int = 5,
        initial_delay: float = 1.0,
        client=None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            voice_name (str, optional): A specific voice, e.g. "en-US-Wavenet-B".
                                        Defaults to the API's choice for the language.
            max_retries (int, optional): Maximum number of times to retry an API call.
                                         Defaults to 5.
            initial_delay (float, optional): Initial delay in seconds before the first retry.
                                             Defaults to 1.0.
            client (optional): A TextToSpeechClient. Created on first use when omitted.
        """
        self.voice_name = voice_name
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self._client = client
        self._sleep = sleep

    @property
    def client(self):
        if self._client is None:
            self._client = texttospeech.TextToSpeechClient()
        return self._client

    def synthesize(self, text: str, options: TTSOptions) -> bytes:
        synthesis_input = texttospeech.SynthesisInput(text=text)
        voice = texttospeech.VoiceSelectionParams(
            language_code=options.lang,
            name=self.voice_name or "",
        )
        audio_config = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.MP3,
            speaking_rate=self.SLOW_SPEAKING_RATE if options.slow else 1.0,
        )

        for attempt in range(self.max_retries + 1):
            try:
                response = self.client.synthesize_speech(
                    input=synthesis_input, voice=voice, audio_config=audio_config
                )
            except (ResourceExhausted, InternalServerError, ServiceUnavailable) as e:
                if attempt >= self.max_retries:
                    raise ProviderError(
                        f"Max retries reached for rate limit/server error: {e}",
                        status_code=getattr(e, "code", None),
                    ) from e
                delay = self.initial_delay * (2 ** attempt) + random.uniform(0, 1)
                logging.warning(
                    "Rate limit or server error for chunk. Retrying in %ss (Attempt %d/%d). Error: %s",
                    f"{delay:.2f}", attempt + 1, self.max_retries, e
                )
                self._sleep(delay)
                continue

            if not response.audio_content:
                raise ProviderError("Provider returned no audio data")
            return response.audio_content
        raise ProviderError("Synthesis was not attempted")


class LocalFileStorage(ArtifactStorage):
    """Writes artifacts to the local filesystem, creating directories on demand."""
    def save(self, path: str, data: bytes) -> str:
        output_dir = os.path.dirname(path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(path, "wb") as out:
            out.write(data)
        logging.info("Audio chunk saved successfully to '%s'.", path)
        return path


class RateGate:
    """
    A fixed-interval gate: successive callers of `wait` are released at least
    `interval` seconds apart. The lock only guards slot bookkeeping and is
    released before sleeping.
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_slot: Optional[float] = None

    def wait(self) -> None:
        with self._lock:
            now = self._clock()
            slot = now if self._next_slot is None else max(now, self._next_slot)
            self._next_slot = slot + self.interval
        if slot > now:
            self._sleep(slot - now)


def artifact_name(index: int) -> str:
    return f"chunk-{index:03d}.mp3"


# -- High-level Service ---

class AudioSynthesisService:
    """
    High-level service that synthesizes a list of chunks, one provider request
    per chunk, and stores each resulting artifact.

    A failing chunk is recorded and skipped; the batch only fails when no
    chunk produced audio.
    """

    def __init__(
        self,
        provider: TTSProvider,
        storage: Optional[ArtifactStorage] = None,
        pacing_delay: float = DEFAULT_PACING_DELAY,
        max_workers: int = 1,
        words_per_minute: int = DEFAULT_WORDS_PER_MINUTE,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initializes the service with all its dependencies.

        Args:
            provider: An object that synthesizes audio from text.
            storage: Where artifacts are written. Defaults to LocalFileStorage.
            pacing_delay: Seconds between successive provider requests.
            max_workers: Concurrent provider requests. 1 processes chunks sequentially.
            words_per_minute: Pace used for duration estimates.
            sleep: Sleep function, injectable for tests.
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers!r}")
        self.provider = provider
        self.storage = storage if storage else LocalFileStorage()
        self.pacing_delay = pacing_delay
        self.max_workers = max_workers
        self.words_per_minute = words_per_minute
        self._sleep = sleep

    def _synthesize_one(self, chunk: Chunk, output_location: str, options: TTSOptions, total: int) -> SynthesisOutcome:
        logging.info("Synthesizing chunk %d of %d...", chunk.index + 1, total)
        try:
            data = self.provider.synthesize(chunk.text, options)
            if not data:
                raise ProviderError("Provider returned no audio data")
            reference = self.storage.save(os.path.join(output_location, artifact_name(chunk.index)), data)
        except Exception as e:
            message = f"Failed to synthesize chunk {chunk.index}: {e}"
            logging.warning("%s", message)
            return SynthesisOutcome(index=chunk.index, error=message)

        return SynthesisOutcome(
            index=chunk.index,
            artifact=reference,
            duration=estimate_seconds(chunk.text, self.words_per_minute),
        )

    def _run_sequential(
        self,
        chunks: Sequence[Chunk],
        output_location: str,
        options: TTSOptions,
        cancel_event: threading.Event,
    ) -> List[SynthesisOutcome]:
        outcomes = []
        for position, chunk in enumerate(chunks):
            if position > 0 and self.pacing_delay > 0:
                self._sleep(self.pacing_delay)
            if cancel_event.is_set():
                break
            outcomes.append(self._synthesize_one(chunk, output_location, options, len(chunks)))
        return outcomes

    def _run_concurrent(
        self,
        chunks: Sequence[Chunk],
        output_location: str,
        options: TTSOptions,
        cancel_event: threading.Event,
    ) -> List[SynthesisOutcome]:
        gate = RateGate(self.pacing_delay, sleep=self._sleep)
        # One slot per chunk, so workers never share a list position.
        slots: List[Optional[SynthesisOutcome]] = [None] * len(chunks)

        def work(chunk: Chunk) -> Optional[SynthesisOutcome]:
            if cancel_event.is_set():
                return None
            gate.wait()
            if cancel_event.is_set():
                return None
            return self._synthesize_one(chunk, output_location, options, len(chunks))

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {pool.submit(work, chunk): position for position, chunk in enumerate(chunks)}
            for future in as_completed(futures):
                slots[futures[future]] = future.result()
        return [outcome for outcome in slots if outcome is not None]

    def synthesize(
        self,
        chunks: Sequence[Chunk],
        output_location: str,
        options: Optional[TTSOptions] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SynthesisResult:
        """
        Synthesizes every chunk and aggregates the outcomes.

        Args:
            chunks (Sequence[Chunk]): Chunks in document order.
            output_location (str): Directory the artifacts are written under.
            options (TTSOptions, optional): Provider options. Defaults to TTSOptions().
            cancel_event (threading.Event, optional): When set, no new provider
                requests are issued and the partial result is returned.

        Returns:
            SynthesisResult: Artifacts in chunk order, total duration of the
                successful chunks, and one error message per failed chunk.

        Raises:
            NoArtifactsProduced: If no chunk was synthesized and the batch was
                not cancelled.
        """
        options = options or TTSOptions()
        cancel_event = cancel_event or threading.Event()

        logging.info("Synthesizing %d chunks to '%s'.", len(chunks), output_location)
        if self.max_workers > 1 and len(chunks) > 1:
            outcomes = self._run_concurrent(chunks, output_location, options, cancel_event)
        else:
            outcomes = self._run_sequential(chunks, output_location, options, cancel_event)

        cancelled = len(outcomes) < len(chunks)
        result = SynthesisResult.from_outcomes(outcomes, cancelled=cancelled)

        if cancelled:
            logging.warning(
                "Synthesis cancelled after %d of %d chunks (%d succeeded).",
                len(outcomes), len(chunks), result.succeeded
            )
            return result

        logging.info("Synthesized %d/%d chunks successfully.", result.succeeded, len(chunks))
        if result.succeeded == 0:
            logging.error("No audio chunks were successfully synthesized.")
            raise NoArtifactsProduced(list(result.errors))
        return result
