"""Book record: catalog metadata plus the durable reading position.

WHY: The book record is the only durable representation of where a
reader stopped. The progress coordinator reads it when a session starts
and rewrites it while reading; the library persists it as JSON.

HOW: A frozen dataclass. Updates go through with_progress() or
dataclasses.replace(), which return new records, so a cached record
never changes behind its holder's back. to_dict()/from_dict() define the
on-disk JSON shape (camelCase keys, ISO-8601 timestamps).

RULES:
- 0 <= current_word_index <= total_words whenever total_words > 0
- last_wpm defaults to 300; a value <= 0 means "no saved speed"
- last_read is None until the first progress write
- Timestamps are timezone-aware UTC datetimes
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Book:
    """A document in the library with its RSVP reading progress.

    RULES:
    - id: stable identifier, unique within a library
    - file_path: path of the source document (unique within a library)
    - current_word_index: last committed word index
    - total_words: word count of the sequence the index refers to
    - last_wpm: speed in use at the last save
    """

    id: str
    title: str
    file_path: str
    date_added: datetime
    author: Optional[str] = None
    last_read: Optional[datetime] = None
    current_word_index: int = 0
    total_words: int = 0
    last_wpm: int = 300

    @property
    def rsvp_progress(self) -> float:
        """Committed position as a fraction in [0.0, 1.0]."""
        if self.total_words == 0:
            return 0.0
        return self.current_word_index / self.total_words

    @property
    def is_started(self) -> bool:
        return self.current_word_index > 0

    @property
    def is_rsvp_completed(self) -> bool:
        return self.total_words > 0 and self.current_word_index >= self.total_words

    def with_progress(
        self,
        current_word_index: int,
        total_words: Optional[int] = None,
        last_wpm: Optional[int] = None,
        last_read: Optional[datetime] = None,
    ) -> "Book":
        """Return a copy with a new reading position.

        The index is clamped into [0, total_words] so a record can never
        claim a position past the end of its own sequence.
        """
        total = self.total_words if total_words is None else total_words
        index = max(0, current_word_index)
        if total > 0:
            index = min(index, total)
        return dataclasses.replace(
            self,
            current_word_index=index,
            total_words=total,
            last_wpm=self.last_wpm if last_wpm is None else last_wpm,
            last_read=last_read or utc_now(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "filePath": self.file_path,
            "dateAdded": self.date_added.isoformat(),
            "lastRead": self.last_read.isoformat() if self.last_read else None,
            "currentWordIndex": self.current_word_index,
            "totalWords": self.total_words,
            "lastWpm": self.last_wpm,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Book":
        """Parse a record written by to_dict().

        Missing progress fields fall back to their defaults so records
        written before a field existed still load.
        """
        last_read = data.get("lastRead")
        return cls(
            id=data["id"],
            title=data["title"],
            author=data.get("author"),
            file_path=data["filePath"],
            date_added=datetime.fromisoformat(data["dateAdded"]),
            last_read=datetime.fromisoformat(last_read) if last_read else None,
            current_word_index=data.get("currentWordIndex", 0),
            total_words=data.get("totalWords", 0),
            last_wpm=data.get("lastWpm", 300),
        )
