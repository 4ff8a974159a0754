"""Package entry point for ``python -m rsvp_reader``.

WHY: Users run the reader as ``python -m rsvp_reader read book.txt``.
Python's ``-m`` flag looks for ``__main__.py`` inside the package and
executes it.

HOW: Delegates to the CLI's main() function.
"""

from rsvp_reader.cli import main

if __name__ == "__main__":
    main()
