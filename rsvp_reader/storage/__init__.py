"""Book records and their persistence.

WHY: Reading progress outlives a session. This package holds the record
type, the narrow storage interface the progress coordinator consumes,
and a JSON-file implementation of it.

RULES:
- models.py: the Book record (the durable reading position)
- base.py: BookStorage interface and the StorageError hierarchy
- library.py: JsonBookLibrary, a jsonschema-validated JSON file
"""

from rsvp_reader.storage.base import (
    BookNotFoundError,
    BookStorage,
    LibraryFormatError,
    StorageError,
)
from rsvp_reader.storage.library import JsonBookLibrary
from rsvp_reader.storage.models import Book

__all__ = [
    "Book",
    "BookNotFoundError",
    "BookStorage",
    "JsonBookLibrary",
    "LibraryFormatError",
    "StorageError",
]
