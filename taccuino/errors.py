"""Exception types raised by the note store and the navigator."""

from typing import Optional


class NoteStoreError(Exception):
    """Base class for every failure surfaced by the note store."""


class NotFoundError(NoteStoreError):
    """Raised when an update or delete targets an id with no record."""

    def __init__(self, note_id: str):
        super().__init__(f"Note not found: {note_id}")
        self.note_id = note_id


class NoteIOError(NoteStoreError):
    """Raised when the notes directory or a record cannot be read or written."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class CorruptRecordError(NoteIOError):
    """Raised when a note file exists but does not hold a valid record."""


class InvalidImportFormatError(NoteStoreError):
    """Raised when a bulk import source is not a JSON array of records."""


class ValidationError(ValueError):
    """Raised for user input rejected before any store call is made."""
