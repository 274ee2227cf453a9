"""
Note persistence for Taccuino.

Each note is one JSON file named ``<id>.json`` inside a single notes
directory. The id is the storage key, so lookups go straight to the file.
"""

import json
import os
import tempfile
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from taccuino.errors import CorruptRecordError, NoteIOError, NotFoundError

NOTE_SUFFIX = ".json"
MAX_ID_LENGTH = 200


@dataclass(frozen=True)
class Note:
    """A persisted title/content record."""
    id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    external_files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "externalFiles": list(self.external_files),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Note":
        """
        Build a note from its serialized form.

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError("record is not an object")
        for key in ("id", "title", "content", "created_at", "updated_at"):
            if key not in data:
                raise ValueError(f"missing field '{key}'")
        for key in ("id", "title", "content"):
            if not isinstance(data[key], str):
                raise ValueError(f"field '{key}' is not a string")

        external_files = data.get("externalFiles") or []
        if not isinstance(external_files, list):
            raise ValueError("field 'externalFiles' is not a list")

        return cls(
            id=data["id"],
            title=data["title"],
            content=data["content"],
            created_at=parse_timestamp(data["created_at"]),
            updated_at=parse_timestamp(data["updated_at"]),
            external_files=[str(f) for f in external_files],
        )

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title or content."""
        needle = query.lower()
        return needle in self.title.lower() or needle in self.content.lower()


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO-8601 timestamp, treating naive values as UTC.

    Raises:
        ValueError: If the value is not a parseable timestamp string
    """
    if not isinstance(value, str):
        raise ValueError(f"timestamp is not a string: {value!r}")
    # fromisoformat() only accepts a trailing 'Z' from Python 3.11 on
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    stamp = datetime.fromisoformat(value)
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def is_valid_note_id(note_id: Any) -> bool:
    """
    Check that an id can be used as a file name inside the notes directory.

    Args:
        note_id: Candidate identifier

    Returns:
        True if the id is a non-empty, bounded-length string with no path components
    """
    if not isinstance(note_id, str) or not note_id.strip():
        return False
    if len(note_id) > MAX_ID_LENGTH:
        return False
    if note_id.startswith('.') or '/' in note_id or '\\' in note_id:
        return False
    if '\x00' in note_id:
        return False
    return True


def write_json_atomic(path: Path, payload: Any) -> None:
    """
    Write JSON to ``path`` so that readers never see a partial file.

    The data goes to a temporary file in the same directory, which then
    replaces the target in a single rename.

    Raises:
        OSError: If the temporary file cannot be written or renamed
    """
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=".", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, str(path))
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class NoteStore:
    """CRUD and search over a directory of note files."""

    def __init__(self, notes_dir: Union[str, Path]):
        """
        Open the store, creating the notes directory if it is absent.

        Args:
            notes_dir: Directory holding one JSON file per note

        Raises:
            NoteIOError: If the directory cannot be created or is not a directory
        """
        self.notes_dir = Path(notes_dir).expanduser()
        self.skipped: List[NoteIOError] = []
        self._last_stamp: Optional[datetime] = None

        try:
            self.notes_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise NoteIOError(f"Cannot create notes directory '{self.notes_dir}': {e}",
                              str(self.notes_dir)) from e
        if not os.access(str(self.notes_dir), os.R_OK | os.W_OK):
            raise NoteIOError(f"Notes directory '{self.notes_dir}' is not accessible",
                              str(self.notes_dir))

    def _path_for(self, note_id: str) -> Path:
        return self.notes_dir / f"{note_id}{NOTE_SUFFIX}"

    def _now(self) -> datetime:
        # Strictly increasing so rapid creates keep a stable newest-first order
        stamp = datetime.now(timezone.utc)
        if self._last_stamp is not None and stamp <= self._last_stamp:
            stamp = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = stamp
        return stamp

    def _new_id(self) -> str:
        note_id = str(uuid.uuid4())
        while self._path_for(note_id).exists():
            note_id = str(uuid.uuid4())
        return note_id

    def _read(self, path: Path) -> Note:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except RecursionError as e:
            raise CorruptRecordError(f"Corrupt note file '{path.name}': nested too deeply",
                                     str(path)) from e
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            raise CorruptRecordError(f"Corrupt note file '{path.name}': {e}", str(path)) from e
        except OSError as e:
            raise NoteIOError(f"Cannot read note file '{path.name}': {e}", str(path)) from e

        try:
            note = Note.from_dict(data)
        except ValueError as e:
            raise CorruptRecordError(f"Corrupt note file '{path.name}': {e}", str(path)) from e
        if note.id != path.stem:
            raise CorruptRecordError(
                f"Corrupt note file '{path.name}': id '{note.id}' does not match file name",
                str(path))
        return note

    def _write(self, note: Note) -> None:
        path = self._path_for(note.id)
        try:
            write_json_atomic(path, note.to_dict())
        except OSError as e:
            raise NoteIOError(f"Cannot write note file '{path.name}': {e}", str(path)) from e

    def _record_paths(self) -> List[Path]:
        try:
            entries = list(self.notes_dir.iterdir())
        except OSError as e:
            raise NoteIOError(f"Cannot list notes directory '{self.notes_dir}': {e}",
                              str(self.notes_dir)) from e
        return [
            p for p in entries
            if p.suffix == NOTE_SUFFIX and not p.name.startswith('.') and p.is_file()
        ]

    def create(self, title: str, content: str, note_id: Optional[str] = None,
               created_at: Optional[datetime] = None,
               updated_at: Optional[datetime] = None) -> Note:
        """
        Create and persist a new note.

        Args:
            title: Display title (not validated here)
            content: Body text, may be empty
            note_id: Explicit id for imports; generated when omitted
            created_at: Explicit creation stamp for imports
            updated_at: Explicit update stamp for imports

        Returns:
            The stored note

        Raises:
            NoteIOError: If the record cannot be written
        """
        now = self._now()
        created = created_at or now
        updated = updated_at or created
        if updated < created:
            updated = created

        note = Note(
            id=note_id or self._new_id(),
            title=title,
            content=content,
            created_at=created,
            updated_at=updated,
        )
        self._write(note)
        return note

    def get_all(self) -> List[Note]:
        """
        Read every note, newest first.

        Files that cannot be read or parsed are left out of the result and
        recorded in ``self.skipped`` so the caller can report them.

        Returns:
            Notes sorted by ``created_at`` descending
        """
        notes = []
        skipped = []
        for path in self._record_paths():
            try:
                notes.append(self._read(path))
            except NoteIOError as e:
                skipped.append(e)
        self.skipped = skipped
        return sorted(notes, key=lambda n: (n.created_at, n.id), reverse=True)

    def get_by_id(self, note_id: str) -> Optional[Note]:
        """
        Look up a single note.

        Returns:
            The note, or None if no record exists for ``note_id``

        Raises:
            CorruptRecordError: If the record exists but cannot be parsed
            NoteIOError: If the record cannot be accessed
        """
        if not is_valid_note_id(note_id):
            return None
        path = self._path_for(note_id)
        try:
            exists = path.is_file()
        except OSError as e:
            raise NoteIOError(f"Cannot access note file '{path.name}': {e}", str(path)) from e
        if not exists:
            return None
        return self._read(path)

    def update(self, note_id: str, title: str, content: str) -> Note:
        """
        Replace a note's title and content and refresh ``updated_at``.

        Raises:
            NotFoundError: If no record exists for ``note_id``
        """
        note = self.get_by_id(note_id)
        if note is None:
            raise NotFoundError(note_id)

        updated = replace(note, title=title, content=content,
                          updated_at=max(self._now(), note.updated_at))
        self._write(updated)
        return updated

    def delete(self, note_id: str) -> None:
        """
        Permanently remove a note.

        Raises:
            NotFoundError: If no record exists for ``note_id``
        """
        if not is_valid_note_id(note_id):
            raise NotFoundError(note_id)
        path = self._path_for(note_id)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise NotFoundError(note_id) from e
        except OSError as e:
            raise NoteIOError(f"Cannot delete note file '{path.name}': {e}", str(path)) from e

    def delete_all(self) -> int:
        """
        Remove every note record in the directory.

        Returns:
            Number of records removed
        """
        removed = 0
        for path in self._record_paths():
            try:
                path.unlink()
            except OSError as e:
                raise NoteIOError(f"Cannot delete note file '{path.name}': {e}", str(path)) from e
            removed += 1
        return removed

    def search(self, query: str) -> List[Note]:
        """Notes whose title or content contains ``query``, newest first."""
        return [note for note in self.get_all() if note.matches(query)]
