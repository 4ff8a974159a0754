"""Tests for the Book record and the JSON book library.

WHY: The library file is the reader's only memory of where they stopped.
It must survive a round trip through disk, refuse to overwrite a file it
cannot understand, and never leave a half-written document behind.

HOW: Every test gets its own library under pytest's tmp_path. File
contents are inspected with json.loads so the on-disk shape is checked
directly.

RULES:
- No test touches the user's real library path
- Timestamps come from ADDED_AT-style fixed datetimes
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone

import jsonschema
import pytest

from rsvp_reader.storage.base import BookNotFoundError, LibraryFormatError, StorageError
from rsvp_reader.storage.library import LIBRARY_SCHEMA, JsonBookLibrary
from rsvp_reader.storage.models import Book

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def library_path(tmp_path):
    return tmp_path / "data" / "library.json"


@pytest.fixture
def library(library_path):
    return JsonBookLibrary(library_path)


# ---------------------------------------------------------------------------
# Book record
# ---------------------------------------------------------------------------


class TestBook:
    def test_defaults(self):
        book = Book(id="b", title="T", file_path="/t.txt", date_added=T0)
        assert book.current_word_index == 0
        assert book.total_words == 0
        assert book.last_wpm == 300
        assert book.last_read is None

    def test_progress_fraction(self, book_factory):
        assert book_factory(current_word_index=25, total_words=100).rsvp_progress == 0.25
        assert book_factory(total_words=0).rsvp_progress == 0.0

    def test_completion(self, book_factory):
        assert book_factory(current_word_index=100, total_words=100).is_rsvp_completed
        assert not book_factory(current_word_index=99, total_words=100).is_rsvp_completed
        assert not book_factory(current_word_index=0, total_words=0).is_rsvp_completed

    def test_with_progress_clamps_index(self, book_factory):
        book = book_factory(total_words=10)
        assert book.with_progress(25).current_word_index == 10
        assert book.with_progress(-3).current_word_index == 0

    def test_with_progress_sets_fields(self, book_factory):
        book = book_factory(total_words=10, last_wpm=300)
        updated = book.with_progress(4, total_words=40, last_wpm=450, last_read=T0)
        assert updated.current_word_index == 4
        assert updated.total_words == 40
        assert updated.last_wpm == 450
        assert updated.last_read == T0
        assert book.current_word_index == 0

    def test_with_progress_defaults_last_read_to_now(self, book_factory):
        updated = book_factory().with_progress(1)
        assert updated.last_read is not None
        assert updated.last_read.tzinfo is not None

    def test_dict_round_trip(self, book_factory):
        book = book_factory(current_word_index=7, total_words=70).with_progress(8, last_read=T0)
        data = book.to_dict()
        assert data["filePath"] == "/books/sample.txt"
        assert data["currentWordIndex"] == 8
        assert data["lastRead"] == T0.isoformat()
        assert Book.from_dict(data) == book

    def test_from_dict_fills_missing_progress(self):
        book = Book.from_dict(
            {"id": "x", "title": "X", "filePath": "/x.txt", "dateAdded": T0.isoformat()}
        )
        assert book.current_word_index == 0
        assert book.total_words == 0
        assert book.last_wpm == 300
        assert book.last_read is None


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class TestPersistence:
    def test_missing_file_is_empty_library(self, library, library_path):
        assert library.list_books() == []
        assert library.total_books == 0
        assert not library_path.exists()

    def test_add_book_creates_file(self, library, library_path, book_factory):
        library.add_book(book_factory())
        document = json.loads(library_path.read_text(encoding="utf-8"))
        assert document["version"] == 1
        assert [b["id"] for b in document["books"]] == ["book-1"]
        jsonschema.validate(instance=document, schema=LIBRARY_SCHEMA)

    def test_reload_from_disk(self, library, library_path, book_factory):
        library.add_book(book_factory(current_word_index=5, total_words=50))
        reopened = JsonBookLibrary(library_path)
        book = reopened.get_by_id("book-1")
        assert book.current_word_index == 5
        assert book.total_words == 50
        assert book.date_added == book_factory().date_added

    def test_no_temp_files_left_behind(self, library, library_path, book_factory):
        library.add_book(book_factory())
        library.update_rsvp_progress("book-1", 3)
        assert sorted(os.listdir(library_path.parent)) == ["library.json"]

    def test_invalid_json_raises_format_error(self, library_path):
        library_path.parent.mkdir(parents=True)
        library_path.write_text("{not json", encoding="utf-8")
        with pytest.raises(LibraryFormatError):
            JsonBookLibrary(library_path).list_books()

    def test_schema_violation_raises_format_error(self, library_path):
        library_path.parent.mkdir(parents=True)
        library_path.write_text(
            json.dumps({"version": 1, "books": [{"id": "x", "title": "X"}]}),
            encoding="utf-8",
        )
        with pytest.raises(LibraryFormatError):
            JsonBookLibrary(library_path).get_by_id("x")

    def test_wrong_version_raises_format_error(self, library_path):
        library_path.parent.mkdir(parents=True)
        library_path.write_text(json.dumps({"version": 99, "books": []}), encoding="utf-8")
        with pytest.raises(LibraryFormatError):
            JsonBookLibrary(library_path).list_books()

    def test_bad_timestamp_raises_format_error(self, library_path):
        library_path.parent.mkdir(parents=True)
        record = {"id": "x", "title": "X", "filePath": "/x.txt", "dateAdded": "yesterday"}
        library_path.write_text(json.dumps({"version": 1, "books": [record]}), encoding="utf-8")
        with pytest.raises(LibraryFormatError):
            JsonBookLibrary(library_path).list_books()

    def test_undecodable_file_raises_format_error(self, library_path):
        library_path.parent.mkdir(parents=True)
        library_path.write_bytes(b'{"version": 1, "books": [\xff\xfe]}')
        with pytest.raises(LibraryFormatError):
            JsonBookLibrary(library_path).list_books()

    def test_format_error_is_a_storage_error(self):
        assert issubclass(LibraryFormatError, StorageError)

    def test_corrupt_file_is_not_overwritten(self, library_path, book_factory):
        library_path.parent.mkdir(parents=True)
        library_path.write_text("{not json", encoding="utf-8")
        library = JsonBookLibrary(library_path)
        with pytest.raises(LibraryFormatError):
            library.add_book(book_factory())
        assert library_path.read_text(encoding="utf-8") == "{not json"

    def test_failed_write_keeps_cache(self, library, book_factory, monkeypatch):
        library.add_book(book_factory())

        def fail_replace(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr(os, "replace", fail_replace)
        with pytest.raises(StorageError):
            library.update_rsvp_progress("book-1", 9)

        assert library.get_by_id("book-1").current_word_index == 0
        assert sorted(os.listdir(library.path.parent)) == ["library.json"]


# ---------------------------------------------------------------------------
# Catalog and progress operations
# ---------------------------------------------------------------------------


class TestCatalog:
    def test_update_unknown_book_raises(self, library, book_factory):
        with pytest.raises(BookNotFoundError) as excinfo:
            library.update(book_factory(book_id="ghost"))
        assert excinfo.value.book_id == "ghost"

    def test_update_rsvp_progress(self, library, book_factory):
        library.add_book(book_factory(total_words=100))
        updated = library.update_rsvp_progress("book-1", 42, last_wpm=500, last_read=T0)
        assert updated.current_word_index == 42
        assert updated.last_wpm == 500
        assert updated.last_read == T0
        assert library.get_by_id("book-1") == updated

    def test_update_rsvp_progress_clamps(self, library, book_factory):
        library.add_book(book_factory(total_words=100))
        assert library.update_rsvp_progress("book-1", 1000).current_word_index == 100

    def test_update_rsvp_progress_unknown_raises(self, library):
        with pytest.raises(BookNotFoundError):
            library.update_rsvp_progress("missing", 1)

    def test_initialize_rsvp_session(self, library, book_factory):
        library.add_book(book_factory(current_word_index=80, total_words=100))
        book = library.initialize_rsvp_session("book-1", total_words=60, wpm=350)
        assert book.total_words == 60
        assert book.current_word_index == 60
        assert book.last_wpm == 350
        assert book.last_read is None

    def test_get_by_path(self, library, book_factory):
        library.add_book(book_factory(file_path="/a.txt"))
        assert library.get_by_path("/a.txt").id == "book-1"
        assert library.get_by_path("/b.txt") is None

    def test_add_book_replaces_same_path(self, library, book_factory):
        library.add_book(book_factory(book_id="old", file_path="/a.txt"))
        library.add_book(book_factory(book_id="new", file_path="/a.txt"))
        assert [b.id for b in library.list_books()] == ["new"]

    def test_remove_book(self, library, book_factory):
        library.add_book(book_factory())
        assert library.remove_book("book-1") is True
        assert library.remove_book("book-1") is False
        assert library.total_books == 0

    def test_clear_all_books(self, library, book_factory):
        library.add_book(book_factory(book_id="a", file_path="/a.txt"))
        library.add_book(book_factory(book_id="b", file_path="/b.txt"))
        library.clear_all_books()
        assert library.list_books() == []

    def test_list_orders_recently_read_first(self, library):
        def book(book_id, added_days, read_days=None):
            return Book(
                id=book_id,
                title=book_id,
                file_path="/{}.txt".format(book_id),
                date_added=T0 + timedelta(days=added_days),
                last_read=T0 + timedelta(days=read_days) if read_days is not None else None,
            )

        library.add_book(book("unread-old", 0))
        library.add_book(book("unread-new", 5))
        library.add_book(book("read-old", 1, read_days=2))
        library.add_book(book("read-new", 1, read_days=9))

        assert [b.id for b in library.list_books()] == [
            "read-new", "read-old", "unread-new", "unread-old",
        ]

    def test_statistics(self, library, book_factory):
        library.add_book(book_factory(book_id="new", file_path="/n.txt", total_words=10))
        library.add_book(book_factory(
            book_id="half", file_path="/h.txt", current_word_index=5, total_words=10
        ))
        library.add_book(book_factory(
            book_id="done", file_path="/d.txt", current_word_index=10, total_words=10
        ))
        assert library.total_books == 3
        assert library.not_started_books == 1
        assert library.books_in_progress == 1
        assert library.completed_books == 1
