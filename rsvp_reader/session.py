"""Reading session: document -> words -> engine, with progress tracking.

WHY: Opening a book for RSVP reading is a fixed sequence of steps:
extract the words, load them into the engine, then (and only then) let
the progress coordinator resume the saved position. Getting the order
wrong silently loses the resume. This module owns that sequence so
front ends (the CLI, a GUI) only say "start this book" and "end".

HOW: ReadingSession composes a WordSource, a PresentationEngine and,
when a BookStorage is given, a ProgressCoordinator. start_session()
reports content and storage failures as a SessionResult instead of
raising, because the caller's job is to show the failure to the user.

RULES:
- Words are loaded before start_tracking() is called
- A stored total_words that disagrees with the extracted sequence is
  corrected in storage before tracking starts
- force_restart=True still tracks progress, starting from word 0
- Partial (range) sessions are never tracked
- Starting a session ends the previous one (with a final save) first
- end_session() propagates storage errors from the final save
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from rsvp_reader.config import DEFAULT_AUTO_SAVE_INTERVAL, DEFAULT_WPM
from rsvp_reader.core.engine import PresentationEngine
from rsvp_reader.core.progress import ProgressCoordinator
from rsvp_reader.core.scheduler import Scheduler
from rsvp_reader.sources.base import WordSource, WordSourceError, WordSourceErrorType
from rsvp_reader.sources.text import TextFileWordSource
from rsvp_reader.storage.base import BookStorage, StorageError
from rsvp_reader.storage.models import Book

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionResult:
    """Outcome of starting a reading session.

    RULES:
    - success: False when words could not be loaded or storage failed
    - error_type: the WordSourceErrorType for content errors, else None
    - resumed: True when playback starts from a saved position
    """

    success: bool
    error_message: Optional[str] = None
    error_type: Optional[WordSourceErrorType] = None
    total_words: int = 0
    resumed: bool = False

    @classmethod
    def ok(cls, total_words: int, resumed: bool = False) -> "SessionResult":
        return cls(success=True, total_words=total_words, resumed=resumed)

    @classmethod
    def failure(
        cls,
        message: str,
        error_type: Optional[WordSourceErrorType] = None,
    ) -> "SessionResult":
        return cls(success=False, error_message=message, error_type=error_type)


class ReadingSession:
    """One reader, one document at a time."""

    def __init__(
        self,
        word_source: Optional[WordSource] = None,
        storage: Optional[BookStorage] = None,
        scheduler: Optional[Scheduler] = None,
        wpm: int = DEFAULT_WPM,
        auto_save_interval: int = DEFAULT_AUTO_SAVE_INTERVAL,
    ) -> None:
        self._word_source = word_source or TextFileWordSource()
        self._storage = storage
        self._engine = PresentationEngine(scheduler=scheduler, wpm=wpm)
        self._progress: Optional[ProgressCoordinator] = None
        if storage is not None:
            self._progress = ProgressCoordinator(
                self._engine, storage, auto_save_interval=auto_save_interval
            )
        self._current_book: Optional[Book] = None
        self._error_message: Optional[str] = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def engine(self) -> PresentationEngine:
        return self._engine

    @property
    def progress(self) -> Optional[ProgressCoordinator]:
        return self._progress

    @property
    def current_book(self) -> Optional[Book]:
        return self._current_book

    @property
    def has_session(self) -> bool:
        return self._current_book is not None and self._engine.has_content

    @property
    def has_error(self) -> bool:
        return self._error_message is not None

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def can_save_progress(self) -> bool:
        return self._progress is not None

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_session(self, book: Book, force_restart: bool = False) -> SessionResult:
        """Open ``book`` and resume its saved position.

        WHY: The single entry point a front end needs to begin reading.

        HOW: Extracts words, ends any previous tracked session, loads the
        engine, fixes a stale stored word count, then starts tracking
        (which jumps to the saved index and applies the saved speed).

        RULES:
        - Content errors return a failure carrying the WordSourceErrorType
        - Storage errors return a failure; the words stay loaded
        - resumed is True only when 0 < saved index < word count
        """
        self._error_message = None
        try:
            words = self._word_source.extract_words(book.file_path)
        except WordSourceError as e:
            return self._fail(e.message, e.error_type)

        try:
            self._stop_previous_tracking()
        except StorageError as e:
            return self._fail("Could not save previous session: {}".format(e.message))

        self._engine.load(words)
        self._current_book = book

        resumed = False
        if self._progress is not None:
            try:
                book = self._sync_total_words(book, len(words))
                self._current_book = book
                self._progress.start_tracking(book)
                if force_restart:
                    self._progress.reset_progress(book.id)
                else:
                    resumed = 0 < book.current_word_index < len(words)
            except StorageError as e:
                return self._fail("Could not load reading progress: {}".format(e.message))

        logger.info(
            "Started session for %s: %d words%s",
            book.id,
            len(words),
            " (resumed at word {})".format(book.current_word_index) if resumed else "",
        )
        return SessionResult.ok(total_words=len(words), resumed=resumed)

    def start_session_from_range(self, book: Book, start: int, end: int) -> SessionResult:
        """Read only part of ``book``; the partial position is never saved."""
        self._error_message = None
        try:
            words = self._word_source.extract_words_from_range(book.file_path, start, end)
        except WordSourceError as e:
            return self._fail(e.message, e.error_type)

        try:
            self._stop_previous_tracking()
        except StorageError as e:
            return self._fail("Could not save previous session: {}".format(e.message))

        self._engine.load(words)
        self._current_book = book
        logger.info("Started partial session for %s (%d-%d): %d words", book.id, start, end, len(words))
        return SessionResult.ok(total_words=len(words))

    def end_session(self) -> None:
        """Save the final position and unload the document."""
        self._stop_previous_tracking()
        self._engine.stop()
        self._engine.clear()
        self._current_book = None
        self._error_message = None

    def save_progress(self) -> Optional[Book]:
        if self._progress is None:
            return None
        return self._progress.save_progress()

    def reset_progress(self) -> None:
        if self._current_book is not None and self._progress is not None:
            self._progress.reset_progress(self._current_book.id)

    def get_session_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "book": self._current_book.title if self._current_book else None,
            "has_error": self.has_error,
            "error_message": self._error_message,
        }
        stats.update(self._engine.get_statistics())
        if self._progress is not None:
            stats["last_saved_index"] = self._progress.last_saved_index
            stats["is_dirty"] = self._progress.is_dirty
        return stats

    def dispose(self) -> None:
        if self._progress is not None:
            self._progress.dispose()
        self._engine.dispose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fail(
        self,
        message: str,
        error_type: Optional[WordSourceErrorType] = None,
    ) -> SessionResult:
        self._error_message = message
        logger.warning("Session failed to start: %s", message)
        return SessionResult.failure(message, error_type)

    def _stop_previous_tracking(self) -> None:
        if self._progress is not None and self._progress.has_active_session:
            self._progress.stop_tracking()

    def _sync_total_words(self, book: Book, total_words: int) -> Book:
        stored = self._storage.get_by_id(book.id) if self._storage else None
        if stored is None or stored.total_words == total_words:
            return stored or book
        corrected = dataclasses.replace(
            stored,
            total_words=total_words,
            current_word_index=min(stored.current_word_index, total_words),
        )
        self._storage.update(corrected)
        logger.info(
            "Updated word count of %s from %d to %d",
            book.id,
            stored.total_words,
            total_words,
        )
        return corrected
