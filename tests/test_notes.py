import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from taccuino.errors import CorruptRecordError, NoteIOError, NotFoundError
from taccuino.notes import Note, NoteStore, is_valid_note_id, parse_timestamp


class TestNoteStore(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.notes_dir = Path(self.tmp.name) / "notes"
        self.store = NoteStore(self.notes_dir)

    def tearDown(self):
        self.tmp.cleanup()

    def test_creates_missing_directory(self):
        self.assertTrue(self.notes_dir.is_dir())

    def test_directory_path_that_is_a_file_is_fatal(self):
        blocker = Path(self.tmp.name) / "blocker"
        blocker.write_text("not a directory")
        with self.assertRaises(NoteIOError):
            NoteStore(blocker)

    def test_create_then_get_by_id(self):
        note = self.store.create("Title", "Body")
        fetched = self.store.get_by_id(note.id)

        self.assertEqual(fetched.title, "Title")
        self.assertEqual(fetched.content, "Body")
        self.assertEqual(fetched.created_at, fetched.updated_at)
        self.assertEqual(fetched, note)

    def test_record_is_one_json_file_named_by_id(self):
        note = self.store.create("Title", "")
        path = self.notes_dir / f"{note.id}.json"

        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(
            set(data),
            {"id", "title", "content", "created_at", "updated_at", "externalFiles"},
        )
        self.assertEqual(data["id"], note.id)
        self.assertEqual(data["externalFiles"], [])

    def test_rapid_creates_get_unique_ids(self):
        ids = {self.store.create(f"n{i}", "").id for i in range(50)}
        self.assertEqual(len(ids), 50)

    def test_get_all_is_newest_first(self):
        first = self.store.create("first", "")
        second = self.store.create("second", "")
        third = self.store.create("third", "")

        notes = self.store.get_all()
        self.assertEqual([n.id for n in notes], [third.id, second.id, first.id])

        newest = self.store.create("newest", "")
        self.assertEqual(self.store.get_all()[0].id, newest.id)

    def test_get_all_ignores_non_note_files(self):
        note = self.store.create("keep", "")
        (self.notes_dir / "readme.txt").write_text("hello")
        (self.notes_dir / ".hidden.json").write_text("{}")
        (self.notes_dir / "subdir.json").mkdir()

        notes = self.store.get_all()
        self.assertEqual([n.id for n in notes], [note.id])
        self.assertEqual(self.store.skipped, [])

    def test_get_all_skips_and_reports_corrupt_records(self):
        good = self.store.create("good", "")
        (self.notes_dir / "broken.json").write_text("{not json")
        (self.notes_dir / "partial.json").write_text(json.dumps({"id": "partial"}))

        notes = self.store.get_all()
        self.assertEqual([n.id for n in notes], [good.id])
        self.assertEqual(len(self.store.skipped), 2)
        for error in self.store.skipped:
            self.assertIsInstance(error, CorruptRecordError)

    def test_get_all_skips_deeply_nested_record(self):
        good = self.store.create("good", "")
        (self.notes_dir / "deep.json").write_text("[" * 200000)

        notes = self.store.get_all()
        self.assertEqual([n.id for n in notes], [good.id])
        self.assertEqual(len(self.store.skipped), 1)
        self.assertIsInstance(self.store.skipped[0], CorruptRecordError)

    def test_get_all_skips_unreadable_records(self):
        good = self.store.create("good", "")
        locked = self.store.create("locked", "")
        real_open = open

        def guarded_open(path, *args, **kwargs):
            if Path(path).name == f"{locked.id}.json":
                raise PermissionError(13, "Permission denied", str(path))
            return real_open(path, *args, **kwargs)

        with patch("taccuino.notes.open", side_effect=guarded_open, create=True):
            notes = self.store.get_all()

        self.assertEqual([n.id for n in notes], [good.id])
        self.assertEqual(len(self.store.skipped), 1)
        self.assertIsInstance(self.store.skipped[0], NoteIOError)
        self.assertNotIsInstance(self.store.skipped[0], CorruptRecordError)

    def test_get_by_id_missing_returns_none(self):
        self.assertIsNone(self.store.get_by_id("does-not-exist"))

    def test_get_by_id_rejects_path_components(self):
        self.assertIsNone(self.store.get_by_id("../notes/x"))
        self.assertIsNone(self.store.get_by_id(""))

    def test_get_by_id_corrupt_record_raises(self):
        (self.notes_dir / "bad.json").write_text("[]")
        with self.assertRaises(CorruptRecordError):
            self.store.get_by_id("bad")

    def test_get_by_id_wraps_stat_errors(self):
        with patch.object(Path, "is_file", side_effect=OSError(36, "File name too long")):
            with self.assertRaises(NoteIOError):
                self.store.get_by_id("some-id")

    def test_update_refreshes_updated_at_only(self):
        note = self.store.create("old", "old body")
        updated = self.store.update(note.id, "new", "new body")

        self.assertEqual(updated.id, note.id)
        self.assertEqual(updated.title, "new")
        self.assertEqual(updated.content, "new body")
        self.assertEqual(updated.created_at, note.created_at)
        self.assertGreaterEqual(updated.updated_at, note.updated_at)
        self.assertEqual(self.store.get_by_id(note.id), updated)

    def test_failed_update_keeps_old_record_and_no_temp_file(self):
        note = self.store.create("Old title", "body")

        with patch("taccuino.notes.os.replace", side_effect=OSError(28, "No space left on device")):
            with self.assertRaises(NoteIOError):
                self.store.update(note.id, "New title", "body")

        with open(self.notes_dir / f"{note.id}.json", encoding="utf-8") as f:
            self.assertEqual(json.load(f)["title"], "Old title")
        self.assertEqual(self.store.get_by_id(note.id).title, "Old title")
        self.assertEqual([p.name for p in self.notes_dir.iterdir()], [f"{note.id}.json"])

    def test_update_missing_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            self.store.update("missing", "t", "c")

    def test_delete_then_lookup_and_second_delete(self):
        note = self.store.create("gone", "")
        self.store.delete(note.id)

        self.assertIsNone(self.store.get_by_id(note.id))
        with self.assertRaises(NotFoundError):
            self.store.delete(note.id)

    def test_search_is_case_insensitive_on_title_or_content(self):
        a = self.store.create("Shopping", "milk")
        b = self.store.create("Work", "Call the MILKMAN")
        self.store.create("Other", "nothing here")

        results = self.store.search("MiLk")
        self.assertEqual([n.id for n in results], [b.id, a.id])
        expected = [n for n in self.store.get_all() if n.matches("milk")]
        self.assertEqual(results, expected)

    def test_delete_all(self):
        self.store.create("a", "")
        self.store.create("b", "")
        (self.notes_dir / "notes.txt").write_text("keep me")

        self.assertEqual(self.store.delete_all(), 2)
        self.assertEqual(self.store.get_all(), [])
        self.assertTrue((self.notes_dir / "notes.txt").exists())

    def test_writes_leave_no_temp_files(self):
        note = self.store.create("a", "")
        self.store.update(note.id, "b", "")
        leftovers = [name for name in os.listdir(self.notes_dir) if name.endswith(".tmp")]
        self.assertEqual(leftovers, [])

    def test_groceries_scenario(self):
        note = self.store.create("Groceries", "milk, eggs")
        self.assertEqual(self.store.get_all()[0].id, note.id)

        self.store.update(note.id, "Groceries", "milk, eggs, bread")
        fetched = self.store.get_by_id(note.id)
        self.assertEqual(fetched.content, "milk, eggs, bread")
        self.assertGreater(fetched.updated_at, note.updated_at)

        self.store.delete(note.id)
        self.assertNotIn(note.id, [n.id for n in self.store.get_all()])


class TestNoteHelpers(unittest.TestCase):
    def test_parse_timestamp_accepts_z_suffix_and_naive(self):
        with_z = parse_timestamp("2024-01-02T03:04:05.000Z")
        naive = parse_timestamp("2024-01-02T03:04:05")
        self.assertEqual(with_z, naive)
        self.assertIsNotNone(naive.tzinfo)

    def test_parse_timestamp_rejects_non_strings(self):
        with self.assertRaises(ValueError):
            parse_timestamp(None)

    def test_from_dict_requires_fields(self):
        with self.assertRaises(ValueError):
            Note.from_dict({"id": "x", "title": "t"})

    def test_is_valid_note_id(self):
        self.assertTrue(is_valid_note_id("0b0c9f8e-1234"))
        self.assertTrue(is_valid_note_id("x" * 200))
        for bad in ("", "  ", "a/b", "a\\b", ".hidden", "a\x00b", None, 7, "x" * 201):
            self.assertFalse(is_valid_note_id(bad), bad)


if __name__ == '__main__':
    unittest.main()
