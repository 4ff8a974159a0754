"""Per-instance listener lists with synchronous fan-out.

WHY: The engine and the progress coordinator both announce changes to any
number of interested parties (the coordinator, a UI, the CLI printer).
Each component instance owns its own listener list so two sessions never
see each other's notifications.

HOW: Observable keeps an ordered list of zero-argument callables.
notify() iterates a snapshot of the list, so a listener may subscribe or
unsubscribe (itself or others) while a notification is in progress.

RULES:
- subscribe() is idempotent: the same callable is registered at most once
- unsubscribe() of an unknown listener is a no-op
- Listeners are called synchronously, in subscription order
- Exceptions raised by a listener propagate to the notifier's caller
"""

from __future__ import annotations

from collections.abc import Callable
from typing import List

Listener = Callable[[], None]


class Observable:
    """An explicit, instance-owned set of change listeners."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def notify(self) -> None:
        for listener in list(self._listeners):
            listener()
