"""Book storage interface and persistence errors.

WHY: The progress coordinator needs exactly two things from storage:
read a record by id and write a record back. Keeping that seam narrow
lets the JSON library, a database, or a test fake stand behind it.

HOW: BookStorage is an ABC with get_by_id() and update(). Failures are
raised as StorageError subclasses and never swallowed, so the caller of
a save decides what the user sees.

RULES:
- get_by_id() returns None for unknown ids (no exception)
- update() replaces the stored record with the same id
- update() raises BookNotFoundError for unknown ids
- update() raises StorageError when the write itself fails
- Implementations do not retry
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from rsvp_reader.storage.models import Book


class StorageError(Exception):
    """Raised when a book record cannot be read or written.

    WHY: Persistence failures must reach the caller of the operation that
    triggered them, distinguishable from programming errors.

    HOW: Wraps the failing book id (when known) and a message; the
    original OSError or decoding error is chained as __cause__.
    """

    def __init__(self, message: str, book_id: Optional[str] = None) -> None:
        self.message = message
        self.book_id = book_id
        super().__init__(message)


class BookNotFoundError(StorageError):
    """Raised when a write targets a book id the storage does not hold."""

    def __init__(self, book_id: str) -> None:
        super().__init__("Book not found: {}".format(book_id), book_id=book_id)


class LibraryFormatError(StorageError):
    """Raised when a library file exists but is not a valid library document."""


class BookStorage(ABC):
    """Abstract base for book record storage."""

    @abstractmethod
    def get_by_id(self, book_id: str) -> Optional[Book]:
        """Return the stored record, or None if there is none."""

    @abstractmethod
    def update(self, book: Book) -> None:
        """Replace the stored record that has ``book.id``.

        Raises:
            BookNotFoundError: If no record with that id exists.
            StorageError: If the write fails.
        """
