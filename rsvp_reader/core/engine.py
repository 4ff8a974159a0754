"""RSVP presentation engine: word list, position, speed, and the tick loop.

WHY: Rapid serial visual presentation shows one word at a time at a
configurable pace. The engine owns everything that changes while reading
(the loaded words, the current index, the playback state, the speed) and
the self-rescheduling tick that advances the index. Callers (a UI, the
CLI, the progress coordinator) only observe it and drive it through its
public operations.

HOW: A five-state machine (PlaybackState) guarded by a single owned
ScheduledTask handle. Every state-mutating operation cancels the pending
tick first, mutates, then schedules a fresh tick when the engine is
Playing. Each tick lasts the adaptive duration of the word currently
shown: the base duration 60000 / wpm, doubled for words ending in
. ? or !. Changes fan out synchronously through an Observable.

RULES:
- At most one pending tick exists at any time
- Operations never raise: out-of-range input is clamped, operations on
  empty content are no-ops
- The index stays within [0, max(0, length - 1)]; exhausting the words
  sets state FINISHED and leaves the last word current
- Moving the index off the last position while FINISHED demotes to PAUSED
- A cancelled tick is discarded outright; the next tick is a full one
- Durations round half up to whole milliseconds
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Callable, Sequence
from typing import Any, Dict, Optional, Tuple

from rsvp_reader.config import (
    DEFAULT_WPM,
    SENTENCE_END_CHARS,
    SENTENCE_END_PAUSE_MULTIPLIER,
    WPM_STEP,
    clamp_wpm,
)
from rsvp_reader.core.observers import Observable
from rsvp_reader.core.scheduler import AsyncioScheduler, ScheduledTask, Scheduler
from rsvp_reader.sources.text import split_words

logger = logging.getLogger(__name__)


class PlaybackState(str, enum.Enum):
    """Playback states of the presentation engine.

    RULES:
    - idle: no content loaded
    - ready: content loaded, not started or explicitly stopped
    - playing: a tick is pending
    - paused: content loaded, position kept, no tick pending
    - finished: the last word was reached; play() restarts from 0
    """

    IDLE = "idle"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    FINISHED = "finished"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (62.5 -> 63)."""
    return int(math.floor(value + 0.5))


def is_sentence_end(word: str) -> bool:
    """True if the word's last character closes a sentence."""
    return bool(word) and word[-1] in SENTENCE_END_CHARS


class PresentationEngine:
    """Word-at-a-time playback with adaptive, punctuation-aware timing.

    WHY: The timing loop, the navigation operations, and speed changes all
    touch the same index and the same pending timer. Keeping them in one
    object with one owned timer handle makes "a stale tick never mutates
    state it no longer matches" a structural property.

    HOW: _cancel_tick() runs before every mutation; _schedule_tick() runs
    after it when the state is PLAYING. _on_tick() clears the handle
    before doing anything, so a listener that reschedules during the
    notification is detected and no second tick is created.

    RULES:
    - scheduler defaults to AsyncioScheduler (requires a running loop at
      play time)
    - wpm defaults to DEFAULT_WPM from config and is clamped
    - subscribe()/unsubscribe() manage change listeners
    """

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        wpm: int = DEFAULT_WPM,
    ) -> None:
        self._scheduler = scheduler or AsyncioScheduler()
        self._words: Tuple[str, ...] = ()
        self._index = 0
        self._state = PlaybackState.IDLE
        self._wpm = clamp_wpm(wpm)
        self._pending: Optional[ScheduledTask] = None
        self._observers = Observable()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._observers.subscribe(listener)

    def unsubscribe(self, listener: Callable[[], None]) -> None:
        self._observers.unsubscribe(listener)

    def _notify(self) -> None:
        self._observers.notify()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is PlaybackState.PLAYING

    @property
    def is_paused(self) -> bool:
        return self._state is PlaybackState.PAUSED

    @property
    def is_ready(self) -> bool:
        return self._state is PlaybackState.READY

    @property
    def is_finished(self) -> bool:
        return self._state is PlaybackState.FINISHED

    @property
    def is_idle(self) -> bool:
        return self._state is PlaybackState.IDLE

    @property
    def has_content(self) -> bool:
        return bool(self._words)

    @property
    def has_pending_tick(self) -> bool:
        return self._pending is not None

    @property
    def words(self) -> Tuple[str, ...]:
        return self._words

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_word(self) -> str:
        if self._index < len(self._words):
            return self._words[self._index]
        return ""

    @property
    def total_words(self) -> int:
        return len(self._words)

    @property
    def words_per_minute(self) -> int:
        return self._wpm

    @property
    def milliseconds_per_word(self) -> int:
        return round_half_up(60000 / self._wpm)

    @property
    def progress(self) -> float:
        """Position as a fraction in [0.0, 1.0); 0.0 without content."""
        if not self._words:
            return 0.0
        return self._index / len(self._words)

    @property
    def remaining_words(self) -> int:
        return len(self._words) - self._index

    @property
    def remaining_time_seconds(self) -> int:
        return round_half_up(self.remaining_words * 60 / self._wpm)

    @property
    def remaining_time_formatted(self) -> str:
        minutes, seconds = divmod(self.remaining_time_seconds, 60)
        return "{:02d}:{:02d}".format(minutes, seconds)

    def word_display_milliseconds(self, index: Optional[int] = None) -> int:
        """Adaptive display time for the word at ``index`` (default: current).

        Sentence-ending words get SENTENCE_END_PAUSE_MULTIPLIER times the
        base duration. Out-of-range indices get the base duration.
        """
        base = self.milliseconds_per_word
        if index is None:
            index = self._index
        if 0 <= index < len(self._words) and is_sentence_end(self._words[index]):
            return round_half_up(base * SENTENCE_END_PAUSE_MULTIPLIER)
        return base

    def get_statistics(self) -> Dict[str, Any]:
        """Snapshot of the reading position and pace for display."""
        return {
            "total_words": self.total_words,
            "current_index": self._index,
            "remaining_words": self.remaining_words,
            "progress": self.progress,
            "wpm": self._wpm,
            "remaining_time_seconds": self.remaining_time_seconds,
            "remaining_time_formatted": self.remaining_time_formatted,
            "state": self._state.value,
        }

    # ------------------------------------------------------------------
    # Content management
    # ------------------------------------------------------------------

    def load(self, words: Sequence[str]) -> None:
        """Replace the content and reset to the first word.

        An empty sequence is valid and leaves the engine IDLE.
        """
        self._cancel_tick()
        self._words = tuple(words)
        self._index = 0
        self._state = PlaybackState.READY if self._words else PlaybackState.IDLE
        logger.debug("Loaded %d words", len(self._words))
        self._notify()

    def load_text(
        self,
        text: str,
        lowercase: bool = False,
        remove_punctuation: bool = False,
    ) -> None:
        """Split raw text into words and load them."""
        self.load(
            split_words(text, lowercase=lowercase, remove_punctuation=remove_punctuation)
        )

    def clear(self) -> None:
        self._cancel_tick()
        self._words = ()
        self._index = 0
        self._state = PlaybackState.IDLE
        self._notify()

    # ------------------------------------------------------------------
    # Playback control
    # ------------------------------------------------------------------

    def play(self) -> None:
        """Start or resume playback; from FINISHED, restart at word 0."""
        if not self._words or self._state is PlaybackState.PLAYING:
            return
        if self._state is PlaybackState.FINISHED:
            self._index = 0
        self._cancel_tick()
        self._state = PlaybackState.PLAYING
        self._schedule_tick()
        self._notify()

    def pause(self) -> None:
        if self._state is not PlaybackState.PLAYING:
            return
        self._cancel_tick()
        self._state = PlaybackState.PAUSED
        self._notify()

    def toggle_play_pause(self) -> None:
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def stop(self) -> None:
        """Cancel playback and return to the first word."""
        self._cancel_tick()
        self._index = 0
        self._state = PlaybackState.READY if self._words else PlaybackState.IDLE
        self._notify()

    def restart(self) -> None:
        """Like stop(), but always lands in READY when content is loaded."""
        self.stop()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next_word(self) -> None:
        if not self._words:
            return
        if self._index < self._last_index:
            self._move_to(self._index + 1)
        else:
            self._finish()

    def previous_word(self) -> None:
        if not self._words or self._index == 0:
            return
        self._move_to(self._index - 1)

    def skip_forward(self, count: int) -> None:
        if not self._words:
            return
        target = self._clamp_index(self._index + count)
        if target >= self._last_index:
            self._cancel_tick()
            self._index = self._last_index
            self._finish()
        else:
            self._move_to(target)

    def skip_backward(self, count: int) -> None:
        if not self._words:
            return
        self._move_to(self._clamp_index(self._index - count))

    def jump_to_index(self, index: int) -> None:
        if not self._words:
            return
        self._move_to(self._clamp_index(index))

    def jump_to_progress(self, progress: float) -> None:
        """Jump to ``floor(progress * length)``, progress clamped to [0, 1]."""
        if not self._words:
            return
        if math.isnan(progress):
            progress = 0.0
        progress = min(1.0, max(0.0, progress))
        self.jump_to_index(int(math.floor(progress * len(self._words))))

    # ------------------------------------------------------------------
    # Speed control
    # ------------------------------------------------------------------

    def set_wpm(self, wpm: int) -> None:
        """Set the speed, clamped to [MIN_WPM, MAX_WPM].

        While PLAYING the in-flight tick is replaced by a fresh one for the
        current word at the new rate.
        """
        self._cancel_tick()
        self._wpm = clamp_wpm(int(wpm))
        if self._state is PlaybackState.PLAYING:
            self._schedule_tick()
        self._notify()

    def increase_speed(self) -> None:
        self.set_wpm(self._wpm + WPM_STEP)

    def decrease_speed(self) -> None:
        self.set_wpm(self._wpm - WPM_STEP)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @property
    def _last_index(self) -> int:
        return max(0, len(self._words) - 1)

    def _clamp_index(self, index: int) -> int:
        return max(0, min(self._last_index, index))

    def _move_to(self, index: int) -> None:
        self._cancel_tick()
        self._index = index
        if self._state is PlaybackState.FINISHED and index < self._last_index:
            self._state = PlaybackState.PAUSED
        if self._state is PlaybackState.PLAYING:
            self._schedule_tick()
        self._notify()

    def _finish(self) -> None:
        self._cancel_tick()
        self._state = PlaybackState.FINISHED
        logger.debug("Finished at word %d of %d", self._index + 1, len(self._words))
        self._notify()

    def _schedule_tick(self) -> None:
        delay_ms = self.word_display_milliseconds()
        self._pending = self._scheduler.call_later(delay_ms, self._on_tick)
        logger.debug("Scheduled tick in %d ms for word %d", delay_ms, self._index)

    def _cancel_tick(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _on_tick(self) -> None:
        self._pending = None
        if self._state is not PlaybackState.PLAYING:
            return
        if self._index < self._last_index:
            self._index += 1
            self._notify()
            # A listener may have paused, seeked, or rescheduled already.
            if self._state is PlaybackState.PLAYING and self._pending is None:
                self._schedule_tick()
        else:
            self._finish()

    def dispose(self) -> None:
        """Cancel any pending tick; the engine stays queryable."""
        self._cancel_tick()
