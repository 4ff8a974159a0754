"""Word sources: turning documents into ordered word lists.

WHY: Word extraction is a collaborator of the reader, not part of
playback. The engine and the reading session depend only on the
WordSource interface.

RULES:
- base.py defines the interface and the typed error
- text.py provides plain-text splitting and the bundled file source
"""

from rsvp_reader.sources.base import WordSource, WordSourceError, WordSourceErrorType
from rsvp_reader.sources.text import (
    TextFileWordSource,
    split_words,
    unique_words,
    word_frequency,
)

__all__ = [
    "TextFileWordSource",
    "WordSource",
    "WordSourceError",
    "WordSourceErrorType",
    "split_words",
    "unique_words",
    "word_frequency",
]
