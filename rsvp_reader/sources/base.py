"""Abstract word source and its typed failure.

WHY: The reader consumes documents only as an ordered list of words.
How those words are obtained (plain text, a PDF parser, an e-book
library) is a collaborator concern. A small ABC keeps that seam explicit
so the reading session can work with any source.

HOW: WordSource is an ABC with one method, extract_words(). Failures are
reported with WordSourceError, which carries a WordSourceErrorType so
callers can tell "file missing" from "file empty" without parsing
messages.

RULES:
- extract_words() returns words in reading order, punctuation attached
- extract_words() raises WordSourceError and never returns None
- An extractor that finds no words raises EMPTY_DOCUMENT rather than
  returning an empty list
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Union


class WordSourceErrorType(str, enum.Enum):
    """Categories of word extraction failure."""

    FILE_NOT_FOUND = "file_not_found"
    FILE_NOT_READABLE = "file_not_readable"
    INVALID_FORMAT = "invalid_format"
    EMPTY_DOCUMENT = "empty_document"
    UNKNOWN = "unknown"


class WordSourceError(Exception):
    """Raised when a document cannot be turned into a word list.

    WHY: A missing or unreadable document is a content error: it is
    surfaced once, when the session loads, and never mid-playback.

    HOW: Wraps the error category and the offending document path.

    RULES:
    - Always include error_type and message
    - document is the path or handle that failed, when known
    """

    def __init__(
        self,
        error_type: WordSourceErrorType,
        message: str,
        document: Union[str, Path, None] = None,
    ) -> None:
        self.error_type = error_type
        self.message = message
        self.document = document
        super().__init__(message)


class WordSource(ABC):
    """Abstract base for document word extractors.

    To add a new document type:
    1. Subclass WordSource
    2. Implement extract_words()
    3. Pass an instance to ReadingSession(word_source=...)
    """

    @abstractmethod
    def extract_words(self, document: Union[str, Path]) -> List[str]:
        """Extract the document's words in reading order.

        Args:
            document: Path (or handle) identifying the document.

        Returns:
            Non-empty list of words, each with trailing punctuation kept.

        Raises:
            WordSourceError: If the document is missing, unreadable, of an
                unsupported type, or contains no words.
        """

    def extract_words_from_range(
        self,
        document: Union[str, Path],
        start: int,
        end: int,
    ) -> List[str]:
        """Extract the words of a sub-range of the document.

        The meaning of ``start``/``end`` (pages, lines) is source-specific.
        Sources without range support raise INVALID_FORMAT.
        """
        raise WordSourceError(
            WordSourceErrorType.INVALID_FORMAT,
            "{} does not support partial extraction".format(type(self).__name__),
            document=document,
        )
