"""Delayed-callback scheduling for the playback tick.

WHY: Word display time varies per word (sentence ends get a longer
pause), so playback cannot use a fixed-period repeating timer. The engine
schedules one delayed callback at a time and reschedules itself after
each tick. Abstracting the timer lets the engine run on an asyncio loop in
production and on a virtual clock in tests.

HOW: Scheduler is an ABC with a single method, call_later(), which
returns a ScheduledTask handle. AsyncioScheduler implements it with
loop.call_later() so every tick runs on the event loop thread, between
other loop callbacks, never concurrently with them.

RULES:
- Delays are integer milliseconds
- ScheduledTask.cancel() is total: a cancelled callback never runs
- cancel() on an already-fired or already-cancelled task is a no-op
- AsyncioScheduler without an explicit loop uses the running loop at
  scheduling time, so it must be called from inside that loop
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Optional


class ScheduledTask(ABC):
    """Handle for one pending delayed callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Discard the callback if it has not run yet."""

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        """True once cancel() has been called."""


class Scheduler(ABC):
    """Abstract source of delayed callbacks.

    To add a new timing backend (a GUI toolkit's timer, a thread):
    1. Subclass ScheduledTask to wrap the backend's cancellable handle
    2. Subclass Scheduler and implement call_later()
    """

    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        """Run ``callback`` once after ``delay_ms`` milliseconds.

        Args:
            delay_ms: Non-negative delay in milliseconds.
            callback: Zero-argument callable to invoke.

        Returns:
            A handle that can cancel the pending callback.
        """


class _AsyncioTask(ScheduledTask):
    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler(Scheduler):
    """Schedules ticks on an asyncio event loop via loop.call_later()."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        loop = self._loop or asyncio.get_running_loop()
        handle = loop.call_later(max(0, delay_ms) / 1000.0, callback)
        return _AsyncioTask(handle)
