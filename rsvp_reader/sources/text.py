"""Plain-text word extraction.

WHY: The simplest document a reader can open is a text file. Splitting
text into words is also what the engine needs for load_text(), so the
splitting rules live here once.

HOW: split_words() optionally strips punctuation and lowercases, then
splits on whitespace runs. TextFileWordSource reads a UTF-8 file and maps
every failure mode to a WordSourceErrorType.

RULES:
- Words keep their trailing punctuation unless remove_punctuation=True
  (sentence-end pauses depend on it)
- remove_punctuation replaces everything except word characters,
  whitespace, and Latin letters U+00C0..U+024F with spaces
- Words shorter than min_word_length are dropped
- unique_words() and word_frequency() normalize by default (lowercase,
  no punctuation)
- Line ranges are 1-based and inclusive, clamped to the file
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from pathlib import Path
from typing import Dict, List, Union

from rsvp_reader.config import SUPPORTED_DOCUMENT_FORMATS
from rsvp_reader.sources.base import WordSource, WordSourceError, WordSourceErrorType

logger = logging.getLogger(__name__)

_PUNCTUATION_RE = re.compile(r"[^\w\s\u00C0-\u024F]")
_WHITESPACE_RE = re.compile(r"\s+")


def split_words(
    text: str,
    lowercase: bool = False,
    remove_punctuation: bool = False,
    min_word_length: int = 1,
) -> List[str]:
    """Split text into display words.

    Args:
        text: Raw text.
        lowercase: Lowercase every word.
        remove_punctuation: Replace punctuation with spaces before splitting.
        min_word_length: Drop words shorter than this many characters.

    Returns:
        Words in reading order.
    """
    if remove_punctuation:
        text = _PUNCTUATION_RE.sub(" ", text)
    if lowercase:
        text = text.lower()
    return [
        word for word in _WHITESPACE_RE.split(text)
        if word and len(word) >= min_word_length
    ]


def unique_words(
    text: str,
    lowercase: bool = True,
    remove_punctuation: bool = True,
    min_word_length: int = 1,
) -> List[str]:
    """Distinct words of ``text`` in order of first appearance."""
    words = split_words(
        text,
        lowercase=lowercase,
        remove_punctuation=remove_punctuation,
        min_word_length=min_word_length,
    )
    return list(dict.fromkeys(words))


def word_frequency(
    text: str,
    lowercase: bool = True,
    remove_punctuation: bool = True,
    min_word_length: int = 1,
) -> Dict[str, int]:
    """Count occurrences of each word.

    Normalization defaults to lowercase without punctuation so "The" and
    "the." count as one word. Keys keep first-appearance order.
    """
    return dict(Counter(split_words(
        text,
        lowercase=lowercase,
        remove_punctuation=remove_punctuation,
        min_word_length=min_word_length,
    )))


class TextFileWordSource(WordSource):
    """Reads words from .txt and .md files."""

    def __init__(self, encoding: str = "utf-8", min_word_length: int = 1) -> None:
        self.encoding = encoding
        self.min_word_length = min_word_length

    def read_text(self, document: Union[str, Path]) -> str:
        """Read the whole document, translating OS errors into WordSourceError."""
        path = Path(document)
        if not path.is_file():
            raise WordSourceError(
                WordSourceErrorType.FILE_NOT_FOUND,
                "File not found: {}".format(path),
                document=path,
            )
        if path.suffix.lower() not in SUPPORTED_DOCUMENT_FORMATS:
            raise WordSourceError(
                WordSourceErrorType.INVALID_FORMAT,
                "Unsupported document type '{}'. Supported formats: {}".format(
                    path.suffix, ", ".join(sorted(SUPPORTED_DOCUMENT_FORMATS))
                ),
                document=path,
            )
        try:
            return path.read_text(encoding=self.encoding)
        except UnicodeDecodeError as e:
            raise WordSourceError(
                WordSourceErrorType.FILE_NOT_READABLE,
                "Cannot decode {} as {}: {}".format(path, self.encoding, e),
                document=path,
            ) from e
        except OSError as e:
            raise WordSourceError(
                WordSourceErrorType.FILE_NOT_READABLE,
                "Cannot read {}: {}".format(path, e),
                document=path,
            ) from e

    def extract_words(self, document: Union[str, Path]) -> List[str]:
        text = self.read_text(document)
        return self._words_or_raise(text, document, "No words found in {}")

    def extract_words_from_range(
        self,
        document: Union[str, Path],
        start_line: int,
        end_line: int,
    ) -> List[str]:
        """Extract words from lines ``start_line``..``end_line`` (1-based, inclusive).

        The range is clamped to the document; an inverted range is swapped.
        """
        lines = self.read_text(document).splitlines()
        if start_line > end_line:
            start_line, end_line = end_line, start_line
        start = max(1, start_line)
        end = min(len(lines), end_line)
        selected = "\n".join(lines[start - 1:end]) if start <= end else ""
        return self._words_or_raise(
            selected, document, "No words found in lines {}-{} of {{}}".format(start, end)
        )

    def _words_or_raise(
        self,
        text: str,
        document: Union[str, Path],
        empty_message: str,
    ) -> List[str]:
        words = split_words(text, min_word_length=self.min_word_length)
        if not words:
            raise WordSourceError(
                WordSourceErrorType.EMPTY_DOCUMENT,
                empty_message.format(document),
                document=document,
            )
        logger.debug("Extracted %d words from %s", len(words), document)
        return words
