"""Command-line interface for the RSVP reader.

WHY: Users need a way to read a document word by word from the terminal
and come back to it later without remembering where they stopped. The
CLI wires the library, the word source, the reading session and an
asyncio-driven engine together behind three subcommands.

HOW: argparse with subcommands:
  read   : add the document to the library if needed, resume it, and
           print one word per line to stdout at the chosen pace
  list   : show every book in the library with its progress
  reset  : set a book's saved position back to the first word
Playback runs inside asyncio.run(); the engine's ticks are scheduled on
that loop. Status messages go to stderr so stdout carries only words.

RULES:
- read saves progress on completion and on Ctrl-C
- --wpm overrides the saved speed; without it the saved speed is used
- --restart starts from the first word but keeps tracking progress
- Exit code 0 on success, 1 on content or storage errors
- The library path defaults to DEFAULT_LIBRARY_PATH from config
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid
from pathlib import Path
from typing import List, Optional

from rsvp_reader.config import (
    DEFAULT_AUTO_SAVE_INTERVAL,
    DEFAULT_LIBRARY_PATH,
    DEFAULT_WPM,
)
from rsvp_reader.core.scheduler import AsyncioScheduler
from rsvp_reader.session import ReadingSession
from rsvp_reader.storage.base import StorageError
from rsvp_reader.storage.library import JsonBookLibrary
from rsvp_reader.storage.models import Book, utc_now

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr (stdout carries only words)."""
    print(msg, file=sys.stderr, flush=True)


def _find_or_add_book(library: JsonBookLibrary, path: Path) -> Book:
    """Return the library record for ``path``, creating it on first use."""
    book = library.get_by_path(path)
    if book is not None:
        return book

    book = Book(
        id=uuid.uuid4().hex,
        title=path.stem,
        file_path=str(path),
        date_added=utc_now(),
        last_wpm=DEFAULT_WPM,
    )
    library.add_book(book)
    _status("Added '{}' to the library ({})".format(book.title, book.id))
    return book


async def _play(session: ReadingSession) -> None:
    """Play the loaded document until it finishes or the task is cancelled."""
    engine = session.engine
    done = asyncio.Event()
    shown = {"index": -1}

    def _on_engine_change() -> None:
        if engine.is_finished:
            done.set()
            return
        if engine.is_playing and engine.current_index != shown["index"]:
            shown["index"] = engine.current_index
            print(engine.current_word, flush=True)

    engine.subscribe(_on_engine_change)
    try:
        engine.play()
        await done.wait()
    finally:
        engine.unsubscribe(_on_engine_change)
        engine.pause()


async def _run_read(args: argparse.Namespace) -> int:
    library = JsonBookLibrary(args.library)
    path = Path(args.input_file).expanduser().resolve()
    if not path.is_file():
        _status("Error: File not found: {}".format(path))
        return 1

    try:
        book = _find_or_add_book(library, path)
    except StorageError as e:
        _status("Error: {}".format(e.message))
        return 1

    session = ReadingSession(
        storage=library,
        scheduler=AsyncioScheduler(),
        auto_save_interval=args.auto_save_interval,
    )
    result = session.start_session(book, force_restart=args.restart)
    if not result.success:
        _status("Error: {}".format(result.error_message))
        session.dispose()
        return 1

    engine = session.engine
    if args.wpm is not None:
        engine.set_wpm(args.wpm)

    if result.resumed:
        _status("Resuming at word {} of {}".format(engine.current_index + 1, engine.total_words))
    _status("Reading {} words at {} WPM (about {})".format(
        engine.total_words, engine.words_per_minute, engine.remaining_time_formatted
    ))

    try:
        await _play(session)
    finally:
        saved = _end_read_session(session, book)
    return 0 if saved else 1


def _end_read_session(session: ReadingSession, book: Book) -> bool:
    """Save the final position, report it, and release the session."""
    engine = session.engine
    index, total = engine.current_index, engine.total_words
    finished = engine.is_finished
    try:
        session.end_session()
    except StorageError as e:
        _status("Error: progress not saved: {}".format(e.message))
        return False
    finally:
        session.dispose()

    if finished:
        _status("Finished '{}'".format(book.title))
    else:
        _status("Saved position: word {} of {}".format(index + 1, total))
    return True


def _run_list(args: argparse.Namespace) -> int:
    library = JsonBookLibrary(args.library)
    try:
        books = library.list_books()
    except StorageError as e:
        _status("Error: {}".format(e.message))
        return 1

    if not books:
        _status("The library is empty.")
        return 0

    for book in books:
        print("{}  {:5.1f}%  {:>4} WPM  {}".format(
            book.id, book.rsvp_progress * 100, book.last_wpm, book.title
        ))
    return 0


def _run_reset(args: argparse.Namespace) -> int:
    library = JsonBookLibrary(args.library)
    try:
        book = library.update_rsvp_progress(args.book_id, 0)
    except StorageError as e:
        _status("Error: {}".format(e.message))
        return 1
    _status("Progress reset for '{}'".format(book.title))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    WHY: Separating parser construction from main() makes the CLI
    testable without running a session.

    RULES:
    - Subcommands: read, list, reset (one is required)
    - --library and -v/--verbose are accepted by every subcommand
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--library",
        default=str(DEFAULT_LIBRARY_PATH),
        help="Path to the library JSON file (default: %(default)s).",
    )
    common.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    parser = argparse.ArgumentParser(
        prog="rsvp_reader",
        description="Read documents one word at a time (RSVP) and resume where you left off.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    read = subparsers.add_parser(
        "read", parents=[common], help="Read a document, resuming the saved position."
    )
    read.add_argument("input_file", help="Path to a .txt or .md document.")
    read.add_argument(
        "--wpm",
        type=int,
        default=None,
        help="Reading speed in words per minute (100-1000). Default: the saved speed.",
    )
    read.add_argument(
        "--restart",
        action="store_true",
        help="Start from the first word instead of the saved position.",
    )
    read.add_argument(
        "--auto-save-interval",
        type=int,
        default=DEFAULT_AUTO_SAVE_INTERVAL,
        help="Save progress every N words (default: %(default)s).",
    )

    subparsers.add_parser("list", parents=[common], help="List books and their progress.")

    reset = subparsers.add_parser(
        "reset", parents=[common], help="Reset a book's saved position to the first word."
    )
    reset.add_argument("book_id", help="Book id as shown by 'list'.")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m rsvp_reader``.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Exits with status 1 when the subcommand reports a failure
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.command == "read":
        if args.auto_save_interval <= 0:
            parser.error("--auto-save-interval must be a positive integer")
        try:
            code = asyncio.run(_run_read(args))
        except KeyboardInterrupt:
            code = 130
    elif args.command == "list":
        code = _run_list(args)
    else:
        code = _run_reset(args)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
