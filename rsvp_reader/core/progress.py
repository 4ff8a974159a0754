"""Progress coordinator: bounded-frequency persistence of the reading position.

WHY: Writing the position on every word would hammer storage; writing it
only at the end would lose a session to a crash. The coordinator watches
the engine and commits the position whenever the reader has moved
auto_save_interval words away from the last save, whenever playback
finishes with unsaved movement, and when the session ends. On session
start it restores the saved position and speed.

HOW: The coordinator subscribes to the engine's change notifications.
Its session is an explicit variant: NoSession, or Tracking(book,
baseline_index, dirty). Saves go through the BookStorage seam
(get_by_id + update) and only a successful write moves the baseline and
clears the dirty flag.

RULES:
- The coordinator never drives playback, except reset_progress()
  restarting the engine for the tracked book
- start_tracking() must run after the engine is loaded with the book's words
- delta = current index - baseline; any nonzero delta marks dirty
- |delta| >= auto_save_interval saves immediately
- FINISHED with unsaved changes saves regardless of the interval
- One notification makes at most one write attempt
- save_progress() is a no-op without a session or without loaded content
- Storage errors are not retried; they propagate from save_progress(),
  stop_tracking() and reset_progress()
- An auto-save failure (no caller to report to) is logged, kept as
  last_save_error, and leaves the session dirty for the next trigger
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from rsvp_reader.config import DEFAULT_AUTO_SAVE_INTERVAL
from rsvp_reader.core.engine import PresentationEngine
from rsvp_reader.core.observers import Observable
from rsvp_reader.storage.base import BookNotFoundError, BookStorage, StorageError
from rsvp_reader.storage.models import Book

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoSession:
    """No book is being tracked."""


@dataclass(frozen=True)
class Tracking:
    """A book is being tracked.

    RULES:
    - book: the cached record, refreshed from storage after every save
    - baseline_index: the index written by the last successful save
    - dirty: True when the position moved since that save
    """

    book: Book
    baseline_index: int
    dirty: bool = False


SessionState = Union[NoSession, Tracking]

NO_SESSION = NoSession()


class ProgressCoordinator:
    """Bridges engine position changes to book storage.

    WHY: Keeps the write policy (threshold, finish, end of session) in one
    place, separate from both playback and storage.

    HOW: Constructed with an engine and a storage; subscribes
    on_position_changed() to the engine immediately. dispose() removes
    the subscription.

    RULES:
    - auto_save_interval must be positive (ValueError otherwise)
    - Each coordinator serves exactly one engine
    """

    def __init__(
        self,
        engine: PresentationEngine,
        storage: BookStorage,
        auto_save_interval: int = DEFAULT_AUTO_SAVE_INTERVAL,
        auto_save_enabled: bool = True,
    ) -> None:
        self._engine = engine
        self._storage = storage
        self._auto_save_interval = self._validate_interval(auto_save_interval)
        self._auto_save_enabled = auto_save_enabled
        self._session: SessionState = NO_SESSION
        self._observers = Observable()
        self.last_save_error: Optional[StorageError] = None
        self._disposed = False
        engine.subscribe(self.on_position_changed)

    # ------------------------------------------------------------------
    # Observation and status
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._observers.subscribe(listener)

    def unsubscribe(self, listener: Callable[[], None]) -> None:
        self._observers.unsubscribe(listener)

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def has_active_session(self) -> bool:
        return isinstance(self._session, Tracking)

    @property
    def current_book(self) -> Optional[Book]:
        if isinstance(self._session, Tracking):
            return self._session.book
        return None

    @property
    def is_dirty(self) -> bool:
        return isinstance(self._session, Tracking) and self._session.dirty

    @property
    def last_saved_index(self) -> int:
        if isinstance(self._session, Tracking):
            return self._session.baseline_index
        return 0

    @property
    def auto_save_interval(self) -> int:
        return self._auto_save_interval

    @property
    def auto_save_enabled(self) -> bool:
        return self._auto_save_enabled

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_interval(interval: int) -> int:
        if interval <= 0:
            raise ValueError(
                "auto_save_interval must be a positive integer, got {}".format(interval)
            )
        return interval

    def set_auto_save_interval(self, interval: int) -> None:
        self._auto_save_interval = self._validate_interval(interval)
        self._observers.notify()

    def set_auto_save_enabled(self, enabled: bool) -> None:
        self._auto_save_enabled = enabled
        self._observers.notify()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_tracking(self, book: Book) -> None:
        """Begin tracking ``book`` and restore its saved position and speed.

        WHY: Resuming is the point of durable progress: the reader lands on
        the word they last committed, at the speed they last used.

        HOW: Sets the baseline to the committed index, jumps the engine
        there when it has content, applies the saved speed, then marks the
        session clean.

        RULES:
        - Call after engine.load(); on an empty engine the jump is a no-op
        - A committed index past the loaded sequence clamps to its last word
        - last_wpm <= 0 leaves the engine speed unchanged
        """
        self._session = Tracking(book=book, baseline_index=book.current_word_index)
        self.last_save_error = None

        if book.current_word_index > 0 and self._engine.has_content:
            self._engine.jump_to_index(book.current_word_index)

        if book.last_wpm > 0:
            self._engine.set_wpm(book.last_wpm)

        if isinstance(self._session, Tracking):
            self._session = dataclasses.replace(self._session, dirty=False)

        logger.info(
            "Tracking book %s from word %d at %d WPM",
            book.id,
            self._engine.current_index,
            self._engine.words_per_minute,
        )
        self._observers.notify()

    def stop_tracking(self) -> None:
        """Save the final position and end the session.

        A failed final save propagates and leaves the session active, so
        the caller can retry.
        """
        self.save_progress()
        self._session = NO_SESSION
        self._observers.notify()

    def save_progress(self) -> Optional[Book]:
        """Commit the engine's position for the tracked book.

        WHY: The single write path for every trigger (threshold, finish,
        end of session, explicit user request).

        HOW: Writes index, total word count, and speed through the
        storage, then moves the baseline, clears dirty, and refreshes the
        cached record from storage.

        RULES:
        - Returns the refreshed record, or None when nothing was written
        - Without a session, or with an empty engine, nothing is written
        - Raises StorageError (including BookNotFoundError) on failure;
          the session is left unchanged
        """
        session = self._session
        if self._disposed or not isinstance(session, Tracking):
            return None
        if not self._engine.has_content:
            logger.warning(
                "Not saving progress for %s: no words loaded", session.book.id
            )
            return None

        index = self._engine.current_index
        total = self._engine.total_words
        wpm = self._engine.words_per_minute

        written = self._write_progress(
            session.book.id, index, total_words=total, last_wpm=wpm
        )
        refreshed = self._storage.get_by_id(session.book.id) or written

        self._session = Tracking(book=refreshed, baseline_index=index, dirty=False)
        self.last_save_error = None
        logger.info("Progress saved: word %d/%d at %d WPM", index, total, wpm)
        self._observers.notify()
        return refreshed

    def reset_progress(self, book_id: str) -> None:
        """Set the committed index of ``book_id`` to 0.

        For the tracked book the baseline and dirty flag are reset too and
        the engine restarts at word 0 in the READY state.
        """
        refreshed = self._write_progress(book_id, 0)

        session = self._session
        if isinstance(session, Tracking) and session.book.id == book_id:
            self._session = Tracking(book=refreshed, baseline_index=0, dirty=False)
            self._engine.restart()

        logger.info("Progress reset for %s", book_id)
        self._observers.notify()

    # ------------------------------------------------------------------
    # Engine reaction
    # ------------------------------------------------------------------

    def on_position_changed(self) -> None:
        """React to an engine notification; may trigger an auto-save."""
        session = self._session
        if self._disposed or not isinstance(session, Tracking) or not self._auto_save_enabled:
            return

        delta = self._engine.current_index - session.baseline_index
        if delta != 0 and not session.dirty:
            self._session = dataclasses.replace(session, dirty=True)

        # At most one write attempt per notification.
        if abs(delta) >= self._auto_save_interval:
            self._auto_save()
        elif self._engine.is_finished and self.is_dirty:
            self._auto_save()

    def _auto_save(self) -> None:
        try:
            self.save_progress()
        except StorageError as e:
            self.last_save_error = e
            logger.exception("Auto-save failed; progress stays unsaved")

    def _write_progress(
        self,
        book_id: str,
        current_word_index: int,
        total_words: Optional[int] = None,
        last_wpm: Optional[int] = None,
    ) -> Book:
        stored = self._storage.get_by_id(book_id)
        if stored is None:
            raise BookNotFoundError(book_id)
        record = stored.with_progress(
            current_word_index, total_words=total_words, last_wpm=last_wpm
        )
        self._storage.update(record)
        return record

    # ------------------------------------------------------------------
    # Queries and cleanup
    # ------------------------------------------------------------------

    def load_saved_progress(self, book_id: str) -> Optional[Book]:
        return self._storage.get_by_id(book_id)

    @staticmethod
    def has_saved_progress(book: Book) -> bool:
        return book.current_word_index > 0

    def get_session_stats(self) -> Dict[str, Any]:
        book = self.current_book
        return {
            "book": book.title if book else None,
            "current_word_index": self._engine.current_index,
            "total_words": self._engine.total_words,
            "progress": self._engine.progress,
            "wpm": self._engine.words_per_minute,
            "last_saved_index": self.last_saved_index,
            "is_dirty": self.is_dirty,
            "auto_save_enabled": self._auto_save_enabled,
            "auto_save_interval": self._auto_save_interval,
        }

    def dispose(self) -> None:
        """Stop listening to the engine. Does not save."""
        self._disposed = True
        self._engine.unsubscribe(self.on_position_changed)
