"""Playback engine and progress coordination.

WHY: The core package holds the two stateful components of a reading
session: the presentation engine (what word is shown, and when the next
one appears) and the progress coordinator (when the position is
committed to storage). Everything else in the package is a collaborator
or a front end.

HOW: engine.py implements the playback state machine on top of
scheduler.py's delayed callbacks and observers.py's listener lists.
progress.py observes the engine and writes through the BookStorage seam.

RULES:
- The engine depends only on a Scheduler (and split_words for load_text)
- The coordinator depends on the engine and a BookStorage
- Each session owns its own engine and coordinator instances
"""

from rsvp_reader.core.engine import PlaybackState, PresentationEngine
from rsvp_reader.core.observers import Observable
from rsvp_reader.core.progress import NoSession, ProgressCoordinator, Tracking
from rsvp_reader.core.scheduler import AsyncioScheduler, ScheduledTask, Scheduler

__all__ = [
    "AsyncioScheduler",
    "NoSession",
    "Observable",
    "PlaybackState",
    "PresentationEngine",
    "ProgressCoordinator",
    "ScheduledTask",
    "Scheduler",
    "Tracking",
]
