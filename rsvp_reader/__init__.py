"""RSVP Reader: word-at-a-time reading with durable, resumable progress.

WHY: Rapid serial visual presentation (one word at a time, at a fixed
pace) lets a reader move through text without eye movement. A reading
session is only useful if it can be suspended and resumed exactly where
it stopped, so the playback engine comes with a progress policy that
commits the position often enough to survive a crash but not on every
word.

HOW: Four layers, each independently testable:
  sources  : document -> ordered word list (WordSource)
  core     : PresentationEngine (playback state machine, adaptive ticks)
             and ProgressCoordinator (when to persist, where to resume)
  storage  : Book records behind the BookStorage seam (JSON library)
  session  : ReadingSession wiring the three together; cli.py on top

RULES:
- The engine never raises on control or navigation input; it clamps
- The coordinator never drives playback; it observes and persists
- Storage failures propagate to the caller of the operation that wrote
"""

__version__ = "0.1.0"
