"""Tests for environment-driven settings"""
import pytest

from studycast import config

ENV_VARS = [
    "STUDYCAST_MAX_CHUNK_CHARS", "STUDYCAST_MAX_TEXT_CHARS", "STUDYCAST_WORDS_PER_MINUTE",
    "STUDYCAST_PACING_DELAY", "STUDYCAST_MAX_WORKERS", "STUDYCAST_TTS_LANG", "STUDYCAST_TTS_HOST",
    "STUDYCAST_TTS_PROVIDER", "STUDYCAST_OUTPUT_DIR", "STUDYCAST_PERSISTENCE_URL",
    "STUDYCAST_PERSISTENCE_TOKEN", "STUDYCAST_DOCUMENT_ROOT",
]

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)

def test_defaults():
    settings = config.load_settings(dotenv=False)
    assert settings == config.Settings()
    assert settings.max_chunk_chars == 1800
    assert settings.max_text_chars == 50000
    assert settings.persistence_url is None

def test_overrides(monkeypatch):
    monkeypatch.setenv("STUDYCAST_MAX_CHUNK_CHARS", "500")
    monkeypatch.setenv("STUDYCAST_PACING_DELAY", "0")
    monkeypatch.setenv("STUDYCAST_TTS_PROVIDER", "Google-Cloud")
    monkeypatch.setenv("STUDYCAST_PERSISTENCE_URL", "http://localhost:5000/api/podcasts")
    settings = config.load_settings(dotenv=False)
    assert settings.max_chunk_chars == 500
    assert settings.pacing_delay == 0.0
    assert settings.tts_provider == "google-cloud"
    assert settings.persistence_url == "http://localhost:5000/api/podcasts"

@pytest.mark.parametrize("var,value", [
    ("STUDYCAST_MAX_CHUNK_CHARS", "lots"),
    ("STUDYCAST_MAX_WORKERS", "0"),
    ("STUDYCAST_PACING_DELAY", "-1"),
    ("STUDYCAST_TTS_PROVIDER", "polly"),
])
def test_invalid_values(monkeypatch, var, value):
    monkeypatch.setenv(var, value)
    with pytest.raises(ValueError, match=var):
        config.load_settings(dotenv=False)

def test_get_env_or_raise(monkeypatch):
    monkeypatch.setenv("STUDYCAST_TEST_KEY", "abc")
    assert config.get_env_or_raise("STUDYCAST_TEST_KEY", "test key") == "abc"
    monkeypatch.setenv("STUDYCAST_TEST_KEY", "")
    with pytest.raises(ValueError, match="test key"):
        config.get_env_or_raise("STUDYCAST_TEST_KEY", "test key")
