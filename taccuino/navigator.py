"""
Screen navigation for Taccuino.

The navigator is a state machine over immutable screen states. Every user
command goes through ``Navigator.transition`` which calls the note store
when needed and returns the next state. The rendering layer only reads
``Navigator.state`` and feeds commands back in.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from taccuino.errors import NoteStoreError, ValidationError
from taccuino.notes import Note, NoteStore

DELETE_TOKEN = "YES"
QUIT_ANSWERS = ("y", "yes")

HELP_TEXT = """NAVIGATION
  Up/Down      Move selection
  Enter        Open selected note
  Esc / q      Back to the list

NOTES
  n            New note
  e            Edit the open note
  d            Delete selected note
  /            Search titles and content
  Ctrl-S       Save form
  Tab          Switch form field

OTHER
  ?            Show this help
  Ctrl-C       Quit"""


class Command(Enum):
    OPEN = "open"
    NEW = "new"
    SEARCH = "search"
    DELETE = "delete"
    EDIT = "edit"
    SUBMIT = "submit"
    CANCEL = "cancel"
    BACK = "back"
    ACKNOWLEDGE = "acknowledge"
    CONFIRM_QUIT = "confirm_quit"
    QUIT = "quit"
    HELP = "help"


@dataclass(frozen=True)
class ListState:
    notes: Tuple[Note, ...] = ()
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ViewingState:
    note: Note


@dataclass(frozen=True)
class CreatingState:
    title: str = ""
    content: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class EditingState:
    note: Note
    title: str = ""
    content: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class SearchingState:
    query: str = ""


@dataclass(frozen=True)
class SearchResultsState:
    query: str
    results: Tuple[Note, ...] = ()


@dataclass(frozen=True)
class ConfirmingDeleteState:
    note_id: str
    return_state: Union[ListState, SearchResultsState]


@dataclass(frozen=True)
class ConfirmingQuitState:
    return_state: Any


@dataclass(frozen=True)
class MessageState:
    """Informational overlay. ``timed`` messages may be dismissed by a timer."""
    text: str
    resume: Any
    timed: bool = True


@dataclass(frozen=True)
class ErrorState:
    text: str
    resume: Any


@dataclass(frozen=True)
class QuitState:
    pass


def validate_title(title: Optional[str]) -> str:
    """
    Check a submitted title.

    Returns:
        The title with surrounding whitespace removed

    Raises:
        ValidationError: If the title is empty or whitespace only
    """
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required!")
    return title


def _form_values(value: Any) -> Tuple[str, str]:
    if isinstance(value, dict):
        return value.get("title") or "", value.get("content") or ""
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return value[0] or "", value[1] or ""
    return "", ""


class Navigator:
    """Owns the current screen state and routes commands to the note store."""

    def __init__(self, store: NoteStore):
        self.store = store
        self._handlers: Dict[type, Callable[[Any, Command, Any], Any]] = {
            ListState: self._on_list,
            ViewingState: self._on_viewing,
            CreatingState: self._on_creating,
            EditingState: self._on_editing,
            SearchingState: self._on_searching,
            SearchResultsState: self._on_search_results,
            ConfirmingDeleteState: self._on_confirming_delete,
            ConfirmingQuitState: self._on_confirming_quit,
            MessageState: self._on_overlay,
            ErrorState: self._on_overlay,
        }
        self.state = self._safely(self.list_state)

    @property
    def finished(self) -> bool:
        return isinstance(self.state, QuitState)

    def list_state(self) -> ListState:
        """Re-read the store into a fresh list screen."""
        notes = self.store.get_all()
        return ListState(
            notes=tuple(notes),
            warnings=tuple(str(e) for e in self.store.skipped),
        )

    def dispatch(self, command: Command, value: Any = None):
        """Apply a command to the current state and keep the result."""
        self.state = self.transition(self.state, command, value)
        return self.state

    def transition(self, state, command: Command, value: Any = None):
        """
        Compute the state that follows ``state`` after ``command``.

        Args:
            state: Current screen state
            command: User command
            value: Command payload: a note id for OPEN/DELETE, form values
                for SUBMIT on forms, entered text for SUBMIT on prompts

        Returns:
            The next screen state. Store failures become an ErrorState that
            resumes at the list.
        """
        if command is Command.QUIT:
            return QuitState()
        if command is Command.CONFIRM_QUIT:
            if isinstance(state, (ConfirmingQuitState, QuitState)):
                return state
            return ConfirmingQuitState(return_state=state)

        handler = self._handlers.get(type(state))
        if handler is None:
            return state
        return self._safely(lambda: handler(state, command, value))

    def _safely(self, action: Callable[[], Any]):
        try:
            return action()
        except NoteStoreError as e:
            return ErrorState(text=str(e), resume=ListState())

    def _resume(self, state):
        if isinstance(state, ListState):
            return self.list_state()
        if isinstance(state, SearchResultsState):
            results = self.store.search(state.query)
            if not results:
                return self.list_state()
            return SearchResultsState(query=state.query, results=tuple(results))
        return state

    def _open(self, note_id: Any):
        note = self.store.get_by_id(note_id)
        if note is None:
            return ErrorState(text=f"Note not found: {note_id}", resume=ListState())
        return ViewingState(note=note)

    def _on_list(self, state: ListState, command: Command, value: Any):
        if command is Command.OPEN and value:
            return self._open(value)
        if command is Command.NEW:
            return CreatingState()
        if command is Command.SEARCH:
            return SearchingState()
        if command is Command.DELETE and value:
            return ConfirmingDeleteState(note_id=value, return_state=state)
        if command is Command.HELP:
            return MessageState(text=HELP_TEXT, resume=state, timed=False)
        return state

    def _on_viewing(self, state: ViewingState, command: Command, value: Any):
        if command is Command.EDIT:
            note = self.store.get_by_id(state.note.id)
            if note is None:
                return ErrorState(text=f"Note not found: {state.note.id}", resume=ListState())
            return EditingState(note=note, title=note.title, content=note.content)
        if command in (Command.BACK, Command.CANCEL):
            return self.list_state()
        return state

    def _on_creating(self, state: CreatingState, command: Command, value: Any):
        if command is Command.CANCEL:
            return self.list_state()
        if command is not Command.SUBMIT:
            return state

        title, content = _form_values(value)
        try:
            clean_title = validate_title(title)
        except ValidationError as e:
            return replace(state, title=title, content=content, error=str(e))

        self.store.create(clean_title, content.strip())
        return MessageState(text="Note created successfully!", resume=ListState())

    def _on_editing(self, state: EditingState, command: Command, value: Any):
        if command is Command.CANCEL:
            return self.list_state()
        if command is not Command.SUBMIT:
            return state

        title, content = _form_values(value)
        try:
            clean_title = validate_title(title)
        except ValidationError as e:
            return replace(state, title=title, content=content, error=str(e))

        self.store.update(state.note.id, clean_title, content.strip())
        return MessageState(text="Note updated successfully!", resume=ListState())

    def _on_searching(self, state: SearchingState, command: Command, value: Any):
        if command in (Command.CANCEL, Command.BACK):
            return self.list_state()
        if command is not Command.SUBMIT:
            return state

        query = (value or "").strip()
        if not query:
            return self.list_state()

        results = self.store.search(query)
        if not results:
            return MessageState(text=f"No notes match '{query}'", resume=ListState())
        return SearchResultsState(query=query, results=tuple(results))

    def _on_search_results(self, state: SearchResultsState, command: Command, value: Any):
        if command is Command.OPEN and value:
            return self._open(value)
        if command is Command.DELETE and value:
            return ConfirmingDeleteState(note_id=value, return_state=state)
        if command is Command.SEARCH:
            return SearchingState(query=state.query)
        if command in (Command.BACK, Command.CANCEL):
            return self.list_state()
        return state

    def _on_confirming_delete(self, state: ConfirmingDeleteState, command: Command, value: Any):
        if command is Command.CANCEL:
            return state.return_state
        if command is not Command.SUBMIT:
            return state

        if (value or "").strip() != DELETE_TOKEN:
            return state.return_state

        self.store.delete(state.note_id)
        return MessageState(text="Note deleted.", resume=state.return_state)

    def _on_confirming_quit(self, state: ConfirmingQuitState, command: Command, value: Any):
        if command is Command.CANCEL:
            return state.return_state
        if command is not Command.SUBMIT:
            return state
        if (value or "").strip().lower() in QUIT_ANSWERS:
            return QuitState()
        return state.return_state

    def _on_overlay(self, state, command: Command, value: Any):
        if command in (Command.ACKNOWLEDGE, Command.CANCEL, Command.BACK):
            return self._resume(state.resume)
        return state
