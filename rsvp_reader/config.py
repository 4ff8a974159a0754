"""Configuration constants, speed bounds, and .env loading.

WHY: Playback timing, auto-save cadence, and the library location are
tunable values that both the engine and the CLI need. Keeping them in one
module makes them easy to find and override without touching logic.

HOW: python-dotenv loads the .env file on import. Fixed playback rules
(speed bounds, sentence-end pause) are plain module-level constants.
User-tunable defaults are read from environment variables with
load_int_setting(), which fails loudly on malformed values.

RULES:
- Speed is bounded to [MIN_WPM, MAX_WPM] and adjusted in WPM_STEP steps
- Sentence-end pause multiplier is 2.0 for words ending in . ? !
- DEFAULT_WPM is clamped into the speed bounds
- DEFAULT_AUTO_SAVE_INTERVAL must be a positive integer
- The library path defaults to ~/.rsvp_reader/library.json
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Playback rules
# ---------------------------------------------------------------------------

MIN_WPM = 100
MAX_WPM = 1000
WPM_STEP = 50

SENTENCE_END_PAUSE_MULTIPLIER = 2.0
"""Display-time multiplier for a word that closes a sentence."""

SENTENCE_END_CHARS: frozenset[str] = frozenset({".", "?", "!"})
"""Trailing characters that mark the end of a sentence."""

# ---------------------------------------------------------------------------
# Supported document formats
# ---------------------------------------------------------------------------

SUPPORTED_DOCUMENT_FORMATS: set[str] = {".txt", ".md"}
"""Document extensions the bundled text word source accepts (lowercase, with dot)."""


def load_int_setting(name: str, default: int) -> int:
    """Read an integer setting from the environment.

    WHY: Environment values are strings. A typo like RSVP_DEFAULT_WPM=fast
    should stop the program with a clear message rather than silently
    falling back to a default.

    HOW: Reads os.environ (populated by python-dotenv) and converts with
    int() after stripping whitespace.

    RULES:
    - Missing or blank variables return the default
    - Non-integer values raise ValueError naming the variable
    """
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(
            "{} must be an integer, got {!r}. "
            "Fix the value in the environment or the .env file.".format(name, raw)
        ) from None


def clamp_wpm(wpm: int) -> int:
    """Clamp a words-per-minute value into [MIN_WPM, MAX_WPM]."""
    return max(MIN_WPM, min(MAX_WPM, wpm))


# ---------------------------------------------------------------------------
# User-tunable defaults
# ---------------------------------------------------------------------------

DEFAULT_WPM = clamp_wpm(load_int_setting("RSVP_DEFAULT_WPM", 300))
DEFAULT_AUTO_SAVE_INTERVAL = load_int_setting("RSVP_AUTO_SAVE_INTERVAL", 10)
if DEFAULT_AUTO_SAVE_INTERVAL <= 0:
    raise ValueError(
        "RSVP_AUTO_SAVE_INTERVAL must be a positive integer, got {}".format(
            DEFAULT_AUTO_SAVE_INTERVAL
        )
    )

DEFAULT_LIBRARY_PATH = Path(
    os.getenv("RSVP_LIBRARY_PATH", "").strip()
    or Path.home() / ".rsvp_reader" / "library.json"
).expanduser()
