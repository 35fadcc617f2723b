"""
Module containing the text segmentation stage of the podcast pipeline:
splitting extracted text into paragraphs and sentences, and packing those
sentences into bounded-size chunks suitable for a Text-to-Speech (TTS) API.

Everything here is pure and deterministic; no network or file access.
"""
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional, Tuple
import logging
import re

import nltk

from studycast.errors import ChunkingError
from studycast.models import Chunk

DEFAULT_MAX_CHARS = 1800

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
# Candidate break after terminal punctuation before a letter; only breaks
# before an uppercase letter (any script) are kept.
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[^\W\d_])")
TERMINAL_PUNCTUATION = (".", "!", "?")


# --- Abstractions ---

class SentenceSplitter(ABC):
    """
    Abstract base class for strategies that break a paragraph into sentences.

    Implementations only decide where sentence boundaries fall; trimming and
    punctuation repair are shared by all of them.
    """
    @abstractmethod
    def split(self, paragraph: str) -> List[str]:
        """
        Breaks a single paragraph into raw sentence fragments.

        Args:
            paragraph (str): A paragraph with no blank lines inside it.

        Returns:
            List[str]: The fragments, in order, before normalization.
        """
        ...

    def sentences(self, paragraph: str) -> List[str]:
        """
        Splits a paragraph and normalizes the fragments.

        Empty fragments are dropped. Every fragment except the last one is
        guaranteed to end in terminal punctuation; a period is appended when
        the boundary logic left one without it.

        Args:
            paragraph (str): The paragraph to split.

        Returns:
            List[str]: Trimmed, non-empty sentences.
        """
        fragments = [f.strip() for f in self.split(paragraph)]
        fragments = [f for f in fragments if f]
        last = len(fragments) - 1
        return [
            f + "." if i < last and not f.endswith(TERMINAL_PUNCTUATION) else f
            for i, f in enumerate(fragments)
        ]


class TextChunker(ABC):
    """
    Abstract base class for chunking large text content into smaller, manageable pieces.

    This is useful for preparing text for APIs that have character limits.
    """
    @abstractmethod
    def chunk(self, text: str) -> List[Chunk]:
        """
        Breaks down a single string of text into a list of smaller text chunks.

        Args:
            text (str): The large text string to be chunked.

        Returns:
            List[Chunk]: The chunks in document order, indexed from 0.
        """
        ...


# --- Implementation Classes ---

class RegexSentenceSplitter(SentenceSplitter):
    """
    Splits on `.`, `!` or `?` followed by whitespace and an uppercase letter.

    This is a heuristic: abbreviations such as "Dr. Smith" and some decimal
    constructions produce false boundaries. Those are accepted as-is.
    """
    def split(self, paragraph: str) -> List[str]:
        fragments = []
        start = 0
        for match in SENTENCE_BOUNDARY.finditer(paragraph):
            if paragraph[match.end()].isupper():
                fragments.append(paragraph[start:match.start()])
                start = match.end()
        fragments.append(paragraph[start:])
        return fragments


class NltkSentenceSplitter(SentenceSplitter):
    """
    A SentenceSplitter backed by NLTK's Punkt tokenizer, which knows about
    common abbreviations for the configured language.
    """
    def __init__(self, language: str = "english"):
        self.language = language
        ensure_nltk_resource('tokenizers/punkt')
        ensure_nltk_resource('tokenizers/punkt_tab')

    def split(self, paragraph: str) -> List[str]:
        return nltk.sent_tokenize(paragraph, language=self.language)


class DefaultTextChunker(TextChunker):
    """
    An implementation of TextChunker that greedily packs sentences into
    chunks, prioritizing paragraph and then sentence integrity.
    """

    def __init__(
        self,
        max_chars: int = DEFAULT_MAX_CHARS,
        preserve_sentences: bool = True,
        splitter: Optional[SentenceSplitter] = None,
    ):
        """
        Args:
            max_chars (int, optional): Maximum characters per chunk. Defaults to 1800.
            preserve_sentences (bool, optional): Pack whole sentences when True, slice
                                                 by raw character count when False.
                                                 Defaults to True.
            splitter (SentenceSplitter, optional): Sentence boundary strategy.
                                                   Defaults to RegexSentenceSplitter.

        Raises:
            ChunkingError: If max_chars is not a positive integer.
        """
        if isinstance(max_chars, bool) or not isinstance(max_chars, int) or max_chars <= 0:
            raise ChunkingError(f"max_chars must be a positive integer, got {max_chars!r}")
        self.max_chars = max_chars
        self.preserve_sentences = preserve_sentences
        self.splitter = splitter if splitter else RegexSentenceSplitter()

    def _split_long_sentence(self, sentence: str) -> List[str]:
        """
        Splits a single sentence that is longer than the character limit at
        word boundaries. A word that alone exceeds the limit is cut into
        limit-sized slices.
        """
        logging.warning(
            "Sentence is too long (%d chars > %d). Splitting at word boundaries.",
            len(sentence), self.max_chars
        )
        parts = []
        current = ""
        for word in sentence.split():
            if len(word) > self.max_chars:
                logging.warning("Word of %d chars exceeds the limit. Hard-splitting it.", len(word))
                if current:
                    parts.append(current)
                slices = [word[i:i + self.max_chars] for i in range(0, len(word), self.max_chars)]
                parts.extend(slices[:-1])
                current = slices[-1]
                continue

            candidate = f"{current} {word}" if current else word
            if len(candidate) <= self.max_chars:
                current = candidate
            else:
                parts.append(current)
                current = word
        if current:
            parts.append(current)
        return parts

    def _slice_characters(self, text: str) -> List[str]:
        slices = [text[i:i + self.max_chars] for i in range(0, len(text), self.max_chars)]
        return [s for s in slices if s.strip()]

    def chunk(self, text: str) -> List[Chunk]:
        """Breaks down a single string of text into a list of smaller text chunks."""
        if not text or not text.strip():
            return []

        clean_text = text.strip()
        if len(clean_text) <= self.max_chars:
            return [Chunk(index=0, text=clean_text, starts_paragraph=True)]

        if not self.preserve_sentences:
            return [
                Chunk(index=i, text=piece, starts_paragraph=(i == 0))
                for i, piece in enumerate(self._slice_characters(clean_text))
            ]

        pieces: List[Tuple[str, bool]] = []
        current = ""
        current_starts_paragraph = True

        for paragraph_index, sentence, first_in_paragraph in _iter_marked_sentences(clean_text, self.splitter):
            # Sentences from a new paragraph join the buffer on a line break.
            separator = "\n" if first_in_paragraph else " "
            candidate = f"{current}{separator}{sentence}" if current else sentence

            if len(candidate) <= self.max_chars:
                if not current:
                    current_starts_paragraph = first_in_paragraph
                current = candidate
                continue

            if current:
                pieces.append((current.strip(), current_starts_paragraph))
                current = ""

            if len(sentence) > self.max_chars:
                for i, part in enumerate(self._split_long_sentence(sentence)):
                    pieces.append((part, first_in_paragraph and i == 0))
            else:
                current = sentence
                current_starts_paragraph = first_in_paragraph

        if current.strip():
            pieces.append((current.strip(), current_starts_paragraph))

        chunks = [
            Chunk(index=i, text=piece, starts_paragraph=starts)
            for i, (piece, starts) in enumerate(p for p in pieces if p[0])
        ]
        logging.debug("Packed %d chars into %d chunks (max %d).", len(clean_text), len(chunks), self.max_chars)
        return chunks


# --- Utility Functions ---

def split_paragraphs(text: str) -> List[str]:
    """
    Splits text on blank-line sequences.

    Args:
        text (str): The text to split.

    Returns:
        List[str]: Trimmed, non-empty paragraphs in order.
    """
    if not text:
        return []
    return [p.strip() for p in PARAGRAPH_BREAK.split(text) if p.strip()]


def split_sentences(paragraph: str, splitter: Optional[SentenceSplitter] = None) -> List[str]:
    """Splits one paragraph into sentences with the given (or the regex) splitter."""
    return (splitter or RegexSentenceSplitter()).sentences(paragraph)


def iter_sentences(text: str, splitter: Optional[SentenceSplitter] = None) -> Iterator[Tuple[int, str]]:
    """
    Lazily yields the sentences of a text grouped by paragraph.

    Args:
        text (str): The full text.
        splitter (SentenceSplitter, optional): Boundary strategy. Defaults to regex.

    Yields:
        Tuple[int, str]: (paragraph index, sentence) pairs in document order.
    """
    for paragraph_index, sentence, _ in _iter_marked_sentences(text, splitter or RegexSentenceSplitter()):
        yield paragraph_index, sentence


def _iter_marked_sentences(text: str, splitter: SentenceSplitter) -> Iterator[Tuple[int, str, bool]]:
    for paragraph_index, paragraph in enumerate(split_paragraphs(text)):
        for sentence_index, sentence in enumerate(splitter.sentences(paragraph)):
            yield paragraph_index, sentence, sentence_index == 0


def chunk_text(text: str, max_chars: int = DEFAULT_MAX_CHARS, preserve_sentences: bool = True) -> List[Chunk]:
    """Convenience wrapper around DefaultTextChunker."""
    return DefaultTextChunker(max_chars=max_chars, preserve_sentences=preserve_sentences).chunk(text)


# --- NLTK resource helper ---

def ensure_nltk_resource(resource: str,
    download_if_missing: bool = True,
    quiet: bool = True
    ) -> bool:
    """
    Checks if the given NLTK resource is available and downloads it if missing.

    Args:
        resource (str): The resource path, e.g., 'tokenizers/punkt'.
        download_if_missing (bool, optional): Whether to download the resource if it is not found.
                                             Defaults to True.
        quiet (bool, optional): Whether to suppress download output. Defaults to True.

    Returns:
        bool: True if the resource is available (either found or successfully downloaded),
              False otherwise.
    """
    try:
        nltk.data.find(resource)
        logging.debug("NLTK resource '%s' is available.", resource)
        return True
    except LookupError:
        if not download_if_missing:
            logging.warning("NLTK resource '%s' not found, and download was not requested.", resource)
            return False
        logging.info("NLTK resource '%s' not found. Downloading...", resource)
        if nltk.download(resource.split('/')[-1], quiet=quiet):
            logging.info("NLTK resource '%s' downloaded successfully.", resource)
            return True
        logging.error("Failed to download NLTK resource '%s'.", resource)
        return False
