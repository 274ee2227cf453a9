"""Bulk export and import of notes as a single JSON array file."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

from taccuino.errors import InvalidImportFormatError, NoteIOError
from taccuino.notes import NoteStore, is_valid_note_id, parse_timestamp, write_json_atomic


@dataclass
class ImportSummary:
    created: int = 0
    updated: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.created + self.updated + self.skipped


def export_notes(store: NoteStore, destination: Union[str, Path]) -> int:
    """
    Write every note in the store to one JSON array file.

    Args:
        store: Store to read from
        destination: Path of the file to write

    Returns:
        Number of notes exported

    Raises:
        NoteIOError: If the destination cannot be written
    """
    destination = Path(destination).expanduser()
    notes = store.get_all()
    try:
        write_json_atomic(destination, [note.to_dict() for note in notes])
    except OSError as e:
        raise NoteIOError(f"Cannot write export file '{destination}': {e}", str(destination)) from e
    return len(notes)


def _optional_timestamp(record: Dict[str, Any], key: str):
    try:
        return parse_timestamp(record.get(key))
    except ValueError:
        return None


def _is_importable(record: Any) -> bool:
    if not isinstance(record, dict):
        return False
    if not is_valid_note_id(record.get("id")):
        return False
    if not isinstance(record.get("title"), str):
        return False
    content = record.get("content", "")
    return content is None or isinstance(content, str)


def import_notes(store: NoteStore, source: Union[str, Path]) -> ImportSummary:
    """
    Upsert notes from a JSON array file, keyed by id.

    Records that are not objects or lack a usable ``id`` or ``title`` are
    skipped and counted rather than aborting the batch.

    Args:
        store: Store to write into
        source: Path of the JSON array file

    Returns:
        Counts of created, updated and skipped records

    Raises:
        InvalidImportFormatError: If the file is unreadable or not a JSON array
    """
    source = Path(source).expanduser()
    try:
        with open(source, "r", encoding="utf-8") as f:
            records = json.load(f)
    except RecursionError as e:
        raise InvalidImportFormatError(f"'{source}' is nested too deeply") from e
    except ValueError as e:
        raise InvalidImportFormatError(f"'{source}' is not valid JSON: {e}") from e
    except OSError as e:
        raise InvalidImportFormatError(f"Cannot read import file '{source}': {e}") from e

    if not isinstance(records, list):
        raise InvalidImportFormatError(f"'{source}' does not contain a JSON array of notes")

    summary = ImportSummary()
    for record in records:
        if not _is_importable(record):
            summary.skipped += 1
            continue

        note_id = record["id"]
        title = record["title"]
        content = record.get("content") or ""

        try:
            if store.get_by_id(note_id) is not None:
                store.update(note_id, title, content)
                summary.updated += 1
            else:
                store.create(
                    title,
                    content,
                    note_id=note_id,
                    created_at=_optional_timestamp(record, "created_at"),
                    updated_at=_optional_timestamp(record, "updated_at"),
                )
                summary.created += 1
        except NoteIOError:
            # Corrupt existing record or a file the store cannot write
            summary.skipped += 1
    return summary
