"""Tests for sentence splitting and chunk packing"""
import pytest

from studycast import text_processing
from studycast.errors import ChunkingError

SAMPLE = (
    "Photosynthesis converts light into chemical energy. It happens in the chloroplasts! "
    "Why does it matter? Because almost every food chain starts there.\n\n"
    "The light reactions produce ATP and NADPH. The Calvin cycle then fixes carbon dioxide "
    "into sugars, using that energy to build glucose step by step.\n\n"
    "In short, plants feed themselves and, indirectly, the rest of us."
)

# --- Mock Classes ---
class CommaSplitter(text_processing.SentenceSplitter):
    def split(self, paragraph):
        return paragraph.split(",")

# --- Paragraph / Sentence Splitting ---
def test_split_paragraphs_on_blank_lines():
    text = "One.\n\n  \n\nTwo.\n \nThree."
    assert text_processing.split_paragraphs(text) == ["One.", "Two.", "Three."]

def test_split_paragraphs_empty():
    assert text_processing.split_paragraphs("") == []
    assert text_processing.split_paragraphs(" \n\n ") == []

def test_split_sentences_keeps_punctuation():
    result = text_processing.split_sentences("Hello there. How are you? I am fine!")
    assert result == ["Hello there.", "How are you?", "I am fine!"]

def test_split_sentences_without_terminal_punctuation():
    assert text_processing.split_sentences("just some words here") == ["just some words here"]

def test_split_sentences_needs_uppercase_after_boundary():
    text = "It costs 3.5 dollars. ok then"
    assert text_processing.split_sentences(text) == [text]

def test_split_sentences_before_non_ascii_capitals():
    assert text_processing.split_sentences("Es ist gut. Über alles.") == ["Es ist gut.", "Über alles."]
    assert text_processing.split_sentences("C'est fini. Écoutez bien! Ánimo.") == [
        "C'est fini.", "Écoutez bien!", "Ánimo."
    ]

def test_split_sentences_ignores_lowercase_non_ascii():
    text = "Es ist gut. über alles."
    assert text_processing.split_sentences(text) == [text]

def test_split_sentences_abbreviation_is_a_known_false_split():
    assert text_processing.split_sentences("Dr. Smith arrived.") == ["Dr.", "Smith arrived."]

def test_interior_fragments_get_a_period():
    result = text_processing.split_sentences("alpha, beta, gamma", splitter=CommaSplitter())
    assert result == ["alpha.", "beta.", "gamma"]

def test_iter_sentences_groups_by_paragraph():
    pairs = list(text_processing.iter_sentences("A one. B two.\n\nC three."))
    assert pairs == [(0, "A one."), (0, "B two."), (1, "C three.")]

def test_nltk_splitter(monkeypatch):
    monkeypatch.setattr(text_processing, "ensure_nltk_resource", lambda *a, **kw: True)
    monkeypatch.setattr(
        text_processing.nltk, "sent_tokenize",
        lambda text, language="english": ["Dr. Smith arrived.", "He sat down"]
    )
    splitter = text_processing.NltkSentenceSplitter()
    assert splitter.sentences("Dr. Smith arrived. He sat down") == ["Dr. Smith arrived.", "He sat down"]

# --- NLTK resource helper ---
def test_ensure_nltk_resource_present(monkeypatch):
    monkeypatch.setattr(text_processing.nltk.data, "find", lambda resource: resource)
    assert text_processing.ensure_nltk_resource("tokenizers/punkt")

def test_ensure_nltk_resource_download(monkeypatch):
    def missing(resource): raise LookupError(resource)
    downloaded = []
    monkeypatch.setattr(text_processing.nltk.data, "find", missing)
    monkeypatch.setattr(text_processing.nltk, "download", lambda name, quiet=True: downloaded.append(name) or True)
    assert text_processing.ensure_nltk_resource("tokenizers/punkt_tab")
    assert downloaded == ["punkt_tab"]

def test_ensure_nltk_resource_no_download(monkeypatch):
    def missing(resource): raise LookupError(resource)
    monkeypatch.setattr(text_processing.nltk.data, "find", missing)
    assert not text_processing.ensure_nltk_resource("tokenizers/punkt", download_if_missing=False)

# --- Chunk Packing ---
def test_chunk_empty_text():
    assert text_processing.chunk_text("") == []
    assert text_processing.chunk_text("   \n\n  ") == []

def test_short_text_is_one_trimmed_chunk():
    chunks = text_processing.chunk_text("  This is a short text.\n", max_chars=100)
    assert len(chunks) == 1
    assert chunks[0].index == 0
    assert chunks[0].text == "This is a short text."

def test_short_text_is_not_split_into_sentences():
    text = "First sentence. Second sentence."
    assert [c.text for c in text_processing.chunk_text(text, max_chars=len(text))] == [text]

def test_sentences_packed_under_limit():
    chunks = text_processing.chunk_text("First sentence. Second sentence. Third sentence.", max_chars=20)
    assert [c.text for c in chunks] == ["First sentence.", "Second sentence.", "Third sentence."]
    assert all(c.text == c.text.strip() and c.text for c in chunks)
    assert all(len(c) <= 20 for c in chunks)

def test_sentences_share_a_chunk_when_they_fit():
    chunks = text_processing.chunk_text("One two. Three four. Five six seven eight nine.", max_chars=30)
    assert [c.text for c in chunks] == ["One two. Three four.", "Five six seven eight nine."]

def test_paragraph_break_becomes_line_break():
    text = "First paragraph.\n\nSecond paragraph.\n\nThird paragraph."
    chunks = text_processing.chunk_text(text, max_chars=40)
    assert [c.text for c in chunks] == ["First paragraph.\nSecond paragraph.", "Third paragraph."]
    assert [c.starts_paragraph for c in chunks] == [True, True]

def test_chunk_starting_mid_paragraph():
    text = "Alpha beta gamma. Delta epsilon zeta. Eta theta iota."
    chunks = text_processing.chunk_text(text, max_chars=20)
    assert len(chunks) == 3
    assert [c.starts_paragraph for c in chunks] == [True, False, False]

def test_long_sentence_split_at_words():
    text = "Word " * 500 + "."
    chunks = text_processing.chunk_text(text, max_chars=100)
    assert len(chunks) > 1
    assert all(len(c) <= 100 for c in chunks)
    assert " ".join(c.text for c in chunks).split() == text.split()

def test_single_long_word_is_hard_split():
    chunks = text_processing.chunk_text("A" * 3000, max_chars=1000)
    assert [len(c) for c in chunks] == [1000, 1000, 1000]
    assert "".join(c.text for c in chunks) == "A" * 3000

def test_long_word_between_normal_words():
    text = "start " + "x" * 25 + " end of it."
    chunks = text_processing.chunk_text(text, max_chars=10)
    assert all(len(c) <= 10 for c in chunks)
    assert "".join(c.text for c in chunks).replace(" ", "") == text.replace(" ", "")

def test_no_words_lost_and_limit_respected():
    for max_chars in (40, 80, 150):
        chunks = text_processing.chunk_text(SAMPLE, max_chars=max_chars)
        assert " ".join(c.text for c in chunks).split() == SAMPLE.split()
        assert all(0 < len(c) <= max_chars for c in chunks)
        assert [c.index for c in chunks] == list(range(len(chunks)))

def test_character_mode():
    text = "abcdefghij" * 5
    chunker = text_processing.DefaultTextChunker(max_chars=20, preserve_sentences=False)
    assert [len(c) for c in chunker.chunk(text)] == [20, 20, 10]

def test_chunking_is_deterministic():
    chunker = text_processing.DefaultTextChunker(max_chars=60)
    assert chunker.chunk(SAMPLE) == chunker.chunk(SAMPLE)

@pytest.mark.parametrize("max_chars", [0, -5, 2.5, True])
def test_invalid_max_chars(max_chars):
    with pytest.raises(ChunkingError):
        text_processing.DefaultTextChunker(max_chars=max_chars)
    with pytest.raises(ValueError):
        text_processing.DefaultTextChunker(max_chars=max_chars)
