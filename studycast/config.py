"""Runtime settings read from the environment (and a .env file, if present)."""
from dataclasses import dataclass
from typing import Optional
import os

from dotenv import load_dotenv

PROVIDERS = ("gtts", "google-cloud")


@dataclass(frozen=True)
class Settings:
    max_chunk_chars: int = 1800
    max_text_chars: int = 50000
    words_per_minute: int = 150
    pacing_delay: float = 0.1
    max_workers: int = 1
    tts_lang: str = "en"
    tts_host: str = "https://translate.google.com"
    tts_provider: str = "gtts"
    output_dir: str = "podcast_output"
    persistence_url: Optional[str] = None
    persistence_token: Optional[str] = None
    document_root: Optional[str] = None


def get_env_or_raise(var: str, friendly: str) -> str:
    """
    Retrieves an environment variable and raises an error if it is not set.

    Args:
        var (str): The name of the environment variable to retrieve.
        friendly (str): A user-friendly description of the variable, used in
                        the error message.

    Returns:
        str: The value of the environment variable.

    Raises:
        ValueError: If the environment variable is not set or is an empty string.
    """
    val = os.environ.get(var)
    if not val:
        raise ValueError(f"Please set the '{var}' environment variable ({friendly}).")
    return val


def _env_int(var: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(var)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"'{var}' must be an integer, got {raw!r}.") from None
    if value < minimum:
        raise ValueError(f"'{var}' must be at least {minimum}, got {value}.")
    return value


def _env_float(var: str, default: float) -> float:
    raw = os.environ.get(var)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"'{var}' must be a number, got {raw!r}.") from None
    if value < 0:
        raise ValueError(f"'{var}' must not be negative, got {value}.")
    return value


def load_settings(dotenv: bool = True) -> Settings:
    """
    Builds Settings from STUDYCAST_* environment variables.

    Args:
        dotenv (bool, optional): Load a .env file first. Defaults to True.

    Raises:
        ValueError: If a variable holds an invalid value.
    """
    if dotenv:
        load_dotenv()

    defaults = Settings()
    provider = os.environ.get("STUDYCAST_TTS_PROVIDER", defaults.tts_provider).strip().lower()
    if provider not in PROVIDERS:
        raise ValueError(f"'STUDYCAST_TTS_PROVIDER' must be one of {', '.join(PROVIDERS)}, got {provider!r}.")

    return Settings(
        max_chunk_chars=_env_int("STUDYCAST_MAX_CHUNK_CHARS", defaults.max_chunk_chars),
        max_text_chars=_env_int("STUDYCAST_MAX_TEXT_CHARS", defaults.max_text_chars),
        words_per_minute=_env_int("STUDYCAST_WORDS_PER_MINUTE", defaults.words_per_minute),
        pacing_delay=_env_float("STUDYCAST_PACING_DELAY", defaults.pacing_delay),
        max_workers=_env_int("STUDYCAST_MAX_WORKERS", defaults.max_workers),
        tts_lang=os.environ.get("STUDYCAST_TTS_LANG") or defaults.tts_lang,
        tts_host=os.environ.get("STUDYCAST_TTS_HOST") or defaults.tts_host,
        tts_provider=provider,
        output_dir=os.environ.get("STUDYCAST_OUTPUT_DIR") or defaults.output_dir,
        persistence_url=os.environ.get("STUDYCAST_PERSISTENCE_URL") or None,
        persistence_token=os.environ.get("STUDYCAST_PERSISTENCE_TOKEN") or None,
        document_root=os.environ.get("STUDYCAST_DOCUMENT_ROOT") or None,
    )
