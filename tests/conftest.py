"""Shared test fixtures for the rsvp_reader test suite.

WHY: Engine timing tests must be exact and instant. A real event loop
would make "the tick after 'world.' is scheduled at 200 ms" a flaky
sleep-based assertion. Progress tests need a storage that records every
write and can be told to fail.

HOW: ManualScheduler is a virtual clock: call_later() records the
callback with its due time, advance(ms) fires due callbacks in order.
InMemoryBookStorage implements BookStorage over a dict, counts writes,
and raises StorageError while ``fail_writes`` is set.

RULES:
- Engines built by fixtures always use a ManualScheduler
- No test sleeps; time only moves through ManualScheduler.advance()
- Sample books have deterministic ids and timestamps
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import pytest

from rsvp_reader.core.engine import PresentationEngine
from rsvp_reader.core.scheduler import ScheduledTask, Scheduler
from rsvp_reader.storage.base import BookNotFoundError, BookStorage, StorageError
from rsvp_reader.storage.models import Book


# ---------------------------------------------------------------------------
# Virtual-clock scheduler
# ---------------------------------------------------------------------------


class ManualTask(ScheduledTask):
    def __init__(self, due_ms: int, delay_ms: int, callback: Callable[[], None]) -> None:
        self.due_ms = due_ms
        self.delay_ms = delay_ms
        self.callback = callback
        self._cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """Deterministic scheduler driven by advance()."""

    def __init__(self) -> None:
        self.now_ms = 0
        self.tasks: List[ManualTask] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ManualTask:
        task = ManualTask(self.now_ms + delay_ms, delay_ms, callback)
        self.tasks.append(task)
        return task

    @property
    def pending(self) -> List[ManualTask]:
        return [t for t in self.tasks if not t.cancelled and not t.fired]

    @property
    def delays(self) -> List[int]:
        """Delay of every task ever scheduled, in scheduling order."""
        return [t.delay_ms for t in self.tasks]

    def advance(self, ms: int) -> None:
        """Move the clock forward, firing due callbacks in due-time order."""
        target = self.now_ms + ms
        while True:
            due = [t for t in self.pending if t.due_ms <= target]
            if not due:
                break
            task = min(due, key=lambda t: t.due_ms)
            self.now_ms = task.due_ms
            task.fired = True
            task.callback()
        self.now_ms = target

    def fire_next(self) -> None:
        """Jump straight to the next pending callback and fire it."""
        pending = self.pending
        assert pending, "no pending task to fire"
        task = min(pending, key=lambda t: t.due_ms)
        self.advance(task.due_ms - self.now_ms)


# ---------------------------------------------------------------------------
# In-memory storage
# ---------------------------------------------------------------------------


class InMemoryBookStorage(BookStorage):
    """Dict-backed storage that records writes and can simulate failures."""

    def __init__(self, books: Optional[List[Book]] = None) -> None:
        self.books: Dict[str, Book] = {b.id: b for b in books or []}
        self.writes: List[Book] = []
        self.attempts = 0
        self.fail_writes = False

    def get_by_id(self, book_id: str) -> Optional[Book]:
        return self.books.get(book_id)

    def update(self, book: Book) -> None:
        self.attempts += 1
        if self.fail_writes:
            raise StorageError("disk full", book_id=book.id)
        if book.id not in self.books:
            raise BookNotFoundError(book.id)
        self.books[book.id] = book
        self.writes.append(book)


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

ADDED_AT = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)


def make_book(
    book_id: str = "book-1",
    current_word_index: int = 0,
    total_words: int = 0,
    last_wpm: int = 300,
    file_path: str = "/books/sample.txt",
) -> Book:
    return Book(
        id=book_id,
        title="Sample",
        file_path=file_path,
        date_added=ADDED_AT,
        current_word_index=current_word_index,
        total_words=total_words,
        last_wpm=last_wpm,
    )


def numbered_words(count: int) -> List[str]:
    """``["w0", "w1", ...]``: no sentence ends, so every tick is the base duration."""
    return ["w{}".format(i) for i in range(count)]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def engine(scheduler):
    return PresentationEngine(scheduler=scheduler, wpm=600)


@pytest.fixture
def storage():
    return InMemoryBookStorage()


@pytest.fixture
def book_factory():
    """The make_book() factory, for tests that need several records."""
    return make_book


@pytest.fixture
def words_factory():
    """The numbered_words() factory."""
    return numbered_words
