"""Command-line entry point for turning a text file into a chaptered podcast episode."""
import argparse
import json
import logging
import sys
from typing import List, Optional

from studycast.audio_synthesis import AudioSynthesisService, GoogleCloudTTSProvider, GTTSProvider
from studycast.chapters import build_chapters
from studycast.config import PROVIDERS, Settings, get_env_or_raise, load_settings
from studycast.documents import LocalDocumentSource
from studycast.errors import NoArtifactsProduced, StudycastError
from studycast.models import GenerationRequest
from studycast.persistence import HttpEpisodeStore, InMemoryEpisodeStore
from studycast.podcast_generator import DEFAULT_TITLE, PodcastGenerationService
from studycast.text_processing import DefaultTextChunker

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_AUDIO = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="studycast",
        description="Convert extracted study text into a chaptered podcast episode",
    )
    parser.add_argument("input_path", help="Path to a UTF-8 text file")
    parser.add_argument("--title", default=None, help=f"Episode title (default: {DEFAULT_TITLE})")
    parser.add_argument("--lang", default=None, help="TTS language code (default: STUDYCAST_TTS_LANG or 'en')")
    parser.add_argument("--slow", action="store_true", default=False, help="Halve the speaking rate")
    parser.add_argument("--max-chars", type=int, default=None, metavar="N", help="Maximum characters per chunk")
    parser.add_argument("--workers", type=int, default=None, metavar="N", help="Concurrent TTS requests")
    parser.add_argument("--provider", choices=PROVIDERS, default=None, help="TTS provider")
    parser.add_argument("--output-dir", default=None, help="Base directory for episode audio")
    parser.add_argument(
        "--dry-run", action="store_true", default=False,
        help="Print chapters and duration estimates without calling the TTS provider",
    )
    return parser.parse_args(argv)


def build_service(settings: Settings, provider_name: str, workers: int) -> PodcastGenerationService:
    if provider_name == "google-cloud":
        get_env_or_raise("GOOGLE_APPLICATION_CREDENTIALS", "Google Cloud service account JSON file path")
        provider = GoogleCloudTTSProvider()
    else:
        provider = GTTSProvider()

    synthesis_service = AudioSynthesisService(
        provider,
        pacing_delay=settings.pacing_delay,
        max_workers=workers,
        words_per_minute=settings.words_per_minute,
    )

    if settings.persistence_url:
        store = HttpEpisodeStore(settings.persistence_url, token=settings.persistence_token)
    else:
        logging.info("STUDYCAST_PERSISTENCE_URL not set. Keeping episodes in memory.")
        store = InMemoryEpisodeStore()

    document_source = LocalDocumentSource(settings.document_root) if settings.document_root else None
    return PodcastGenerationService(
        synthesis_service, store, document_source=document_source, settings=settings
    )


def print_dry_run(text: str, max_chars: int, words_per_minute: int) -> None:
    chunks = DefaultTextChunker(max_chars=max_chars).chunk(text)
    chapters = build_chapters(chunks, words_per_minute)
    total = sum(chapter.duration for chapter in chapters)
    print(f"{len(chapters)} chapters, ~{total}s total")
    for chapter in chapters:
        print(f"  [{chapter.index:03d}] {chapter.start_time:>6}s  {chapter.duration:>4}s  {chapter.title}")


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    args = parse_args(argv)

    try:
        settings = load_settings()
        with open(args.input_path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, ValueError) as e:
        logging.error("Could not start generation: %s", e)
        return EXIT_ERROR

    max_chars = settings.max_chunk_chars if args.max_chars is None else args.max_chars
    if args.dry_run:
        try:
            print_dry_run(text, max_chars, settings.words_per_minute)
        except ValueError as e:
            logging.error("Invalid chunk size: %s", e)
            return EXIT_ERROR
        return EXIT_OK

    request = GenerationRequest(
        text=text,
        title=args.title,
        lang=args.lang,
        max_chunk_chars=args.max_chars,
        slow=args.slow,
    )
    workers = settings.max_workers if args.workers is None else args.workers
    try:
        service = build_service(settings, args.provider or settings.tts_provider, workers)
        response = service.generate(request, output_dir=args.output_dir)
    except NoArtifactsProduced as e:
        logging.error("%s", e)
        for error in e.errors:
            logging.error("  %s", error)
        return EXIT_NO_AUDIO
    except (StudycastError, ValueError) as e:
        logging.error("Podcast generation failed: %s", e)
        return EXIT_ERROR

    print(json.dumps(response.to_dict(), indent=2))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
