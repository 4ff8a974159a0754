"""JSON-file book library.

WHY: A single reader on a single machine needs durable book records but
not a database. One JSON document holding every record is easy to
inspect, back up, and repair by hand.

HOW: JsonBookLibrary loads the file lazily on first access and keeps the
records in a dict keyed by id. Every mutation builds the new record set,
validates the whole document with jsonschema, writes it to a temp file
in the same directory, and os.replace()s it over the library. Only after
the write succeeds does the in-memory state change, so a failed write
leaves both the file and the cache as they were.

RULES:
- A missing library file is an empty library (created on first write)
- A file that is not UTF-8, not valid JSON, or fails LIBRARY_SCHEMA raises
  LibraryFormatError; it is never overwritten silently
- OS-level read/write failures raise StorageError
- add_book() replaces an existing record with the same file_path
- list_books() orders most recently read first, then most recently added
- Progress writes clamp the index into [0, total_words]
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema

from rsvp_reader.storage.base import (
    BookNotFoundError,
    BookStorage,
    LibraryFormatError,
    StorageError,
)
from rsvp_reader.storage.models import Book, utc_now

logger = logging.getLogger(__name__)

LIBRARY_FORMAT_VERSION = 1

LIBRARY_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["version", "books"],
    "properties": {
        "version": {"const": LIBRARY_FORMAT_VERSION},
        "books": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "title", "filePath", "dateAdded"],
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "title": {"type": "string"},
                    "author": {"type": ["string", "null"]},
                    "filePath": {"type": "string"},
                    "dateAdded": {"type": "string"},
                    "lastRead": {"type": ["string", "null"]},
                    "currentWordIndex": {"type": "integer", "minimum": 0},
                    "totalWords": {"type": "integer", "minimum": 0},
                    "lastWpm": {"type": "integer"},
                },
            },
        },
    },
}


def _sort_key(book: Book) -> tuple:
    # Read books first (newest read first), then unread (newest added first).
    if book.last_read is not None:
        return (0, -book.last_read.timestamp())
    return (1, -book.date_added.timestamp())


class JsonBookLibrary(BookStorage):
    """Book storage backed by one JSON file.

    WHY: Implements the BookStorage seam for the CLI and for anyone who
    wants progress to survive a restart without extra infrastructure.

    HOW: See the module docstring. The library is not thread-safe; one
    reading session owns it at a time.

    RULES:
    - path is created (with parent directories) on first write
    - get_by_id() returns None for unknown ids
    - update() and update_rsvp_progress() raise BookNotFoundError for
      unknown ids
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()
        self._books: Optional[Dict[str, Book]] = None

    # ------------------------------------------------------------------
    # Loading and saving
    # ------------------------------------------------------------------

    def _load(self) -> Dict[str, Book]:
        if self._books is not None:
            return self._books

        if not self.path.exists():
            self._books = {}
            return self._books

        try:
            raw = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise LibraryFormatError(
                "Library file {} is not valid UTF-8: {}".format(self.path, e)
            ) from e
        except OSError as e:
            raise StorageError("Cannot read library {}: {}".format(self.path, e)) from e

        try:
            document = json.loads(raw)
            jsonschema.validate(instance=document, schema=LIBRARY_SCHEMA)
            books = [Book.from_dict(item) for item in document["books"]]
        except (json.JSONDecodeError, jsonschema.ValidationError, ValueError) as e:
            raise LibraryFormatError(
                "Library file {} is not a valid library: {}".format(self.path, e)
            ) from e

        self._books = {book.id: book for book in books}
        logger.debug("Loaded %d books from %s", len(self._books), self.path)
        return self._books

    def _save(self, books: Dict[str, Book]) -> None:
        """Validate and atomically write ``books``, then adopt them as the cache."""
        document = {
            "version": LIBRARY_FORMAT_VERSION,
            "books": [book.to_dict() for book in sorted(books.values(), key=_sort_key)],
        }
        jsonschema.validate(instance=document, schema=LIBRARY_SCHEMA)

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".library-", suffix=".json", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise StorageError("Cannot write library {}: {}".format(self.path, e)) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        self._books = books

    # ------------------------------------------------------------------
    # BookStorage interface
    # ------------------------------------------------------------------

    def get_by_id(self, book_id: str) -> Optional[Book]:
        return self._load().get(book_id)

    def update(self, book: Book) -> None:
        books = self._load()
        if book.id not in books:
            raise BookNotFoundError(book.id)
        updated = dict(books)
        updated[book.id] = book
        self._save(updated)

    # ------------------------------------------------------------------
    # Catalog operations
    # ------------------------------------------------------------------

    def list_books(self) -> List[Book]:
        return sorted(self._load().values(), key=_sort_key)

    def get_by_path(self, file_path: Union[str, Path]) -> Optional[Book]:
        target = str(file_path)
        for book in self._load().values():
            if book.file_path == target:
                return book
        return None

    def add_book(self, book: Book) -> None:
        """Store a new book, replacing any record with the same file path."""
        updated = {
            book_id: existing
            for book_id, existing in self._load().items()
            if existing.file_path != book.file_path
        }
        updated[book.id] = book
        self._save(updated)
        logger.info("Added book %s (%s)", book.id, book.title)

    def remove_book(self, book_id: str) -> bool:
        """Remove a book; returns False if it was not in the library."""
        books = self._load()
        if book_id not in books:
            return False
        updated = dict(books)
        del updated[book_id]
        self._save(updated)
        logger.info("Removed book %s", book_id)
        return True

    def clear_all_books(self) -> None:
        self._save({})

    def update_rsvp_progress(
        self,
        book_id: str,
        current_word_index: int,
        total_words: Optional[int] = None,
        last_wpm: Optional[int] = None,
        last_read: Optional[datetime] = None,
    ) -> Book:
        """Write a reading position and return the stored record."""
        book = self.get_by_id(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        updated = book.with_progress(
            current_word_index,
            total_words=total_words,
            last_wpm=last_wpm,
            last_read=last_read or utc_now(),
        )
        self.update(updated)
        return updated

    def initialize_rsvp_session(
        self,
        book_id: str,
        total_words: int,
        wpm: Optional[int] = None,
    ) -> Book:
        """Record the word count of a freshly extracted sequence."""
        book = self.get_by_id(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        index = min(book.current_word_index, total_words)
        updated = dataclasses.replace(
            book,
            current_word_index=index,
            total_words=total_words,
            last_wpm=book.last_wpm if wpm is None else wpm,
        )
        self.update(updated)
        return updated

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    @property
    def total_books(self) -> int:
        return len(self._load())

    @property
    def books_in_progress(self) -> int:
        return sum(
            1 for b in self._load().values() if b.is_started and not b.is_rsvp_completed
        )

    @property
    def completed_books(self) -> int:
        return sum(1 for b in self._load().values() if b.is_rsvp_completed)

    @property
    def not_started_books(self) -> int:
        return sum(1 for b in self._load().values() if not b.is_started)
