"""
Full-screen terminal interface for Taccuino.

Draws whatever state the navigator holds and turns key presses into
navigator commands. Key bindings are registered once and gated by filters
on the current state, so screens never stack up stale handlers.
"""

import asyncio
from typing import List, Optional, Tuple

from prompt_toolkit import Application
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout.containers import DynamicContainer, HSplit, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension
from prompt_toolkit.layout.layout import Layout
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import TextArea

from taccuino.config import DEFAULT_MESSAGE_TIMEOUT, DEFAULT_THEME
from taccuino.navigator import (
    Command,
    ConfirmingDeleteState,
    ConfirmingQuitState,
    CreatingState,
    EditingState,
    ErrorState,
    ListState,
    MessageState,
    Navigator,
    QuitState,
    SearchingState,
    SearchResultsState,
    ViewingState,
)
from taccuino.notes import Note

FormattedText = List[Tuple[str, str]]

FOOTERS = {
    ListState: "Enter: open | n: new | /: search | d: delete | ?: help | q: quit",
    SearchResultsState: "Enter: open | /: search again | d: delete | Esc: back",
    ViewingState: "e: edit | Esc/q: back",
    CreatingState: "Tab: switch field | Ctrl-S: save | Esc: cancel",
    EditingState: "Tab: switch field | Ctrl-S: save | Esc: cancel",
    SearchingState: "Enter: search | Esc: cancel",
    ConfirmingDeleteState: "Enter: confirm | Esc: cancel",
    ConfirmingQuitState: "Enter: confirm | Esc: cancel",
    MessageState: "Enter/Esc: continue",
    ErrorState: "Enter/Esc: continue",
}


class NoteApp:
    """prompt_toolkit front end driven by a Navigator."""

    def __init__(self, navigator: Navigator, theme: Optional[dict] = None,
                 message_timeout: float = DEFAULT_MESSAGE_TIMEOUT):
        self.navigator = navigator
        self.theme = theme or DEFAULT_THEME
        self.message_timeout = message_timeout
        self.selected_index = 0
        self._dismiss_task: Optional[asyncio.Future] = None

        self.title_input = TextArea(multiline=False, height=1)
        self.content_input = TextArea(multiline=True, scrollbar=True, height=Dimension(min=5))
        self.query_input = TextArea(multiline=False, height=1)
        self.confirm_input = TextArea(multiline=False, height=1)
        self.query_input.buffer.accept_handler = self._accept_query
        self.confirm_input.buffer.accept_handler = self._accept_confirmation

        self.notes_window = Window(FormattedTextControl(self._get_notes_text, focusable=True))
        self.note_window = Window(FormattedTextControl(self._get_note_text, focusable=True),
                                  wrap_lines=True)
        self.overlay_window = Window(FormattedTextControl(self._get_overlay_text, focusable=True),
                                     wrap_lines=True)

        self.kb = KeyBindings()
        self._setup_key_bindings()
        self.app = Application(
            layout=self._create_layout(),
            key_bindings=self.kb,
            full_screen=True,
            style=self._create_style(),
        )
        self._enter_state(self.navigator.state)

    @property
    def state(self):
        return self.navigator.state

    def _visible_notes(self) -> Tuple[Note, ...]:
        if isinstance(self.state, ListState):
            return self.state.notes
        if isinstance(self.state, SearchResultsState):
            return self.state.results
        return ()

    def _selected_note(self) -> Optional[Note]:
        notes = self._visible_notes()
        if not notes:
            return None
        return notes[min(self.selected_index, len(notes) - 1)]

    def _dispatch(self, command: Command, value=None) -> None:
        previous = self.state
        state = self.navigator.dispatch(command, value)
        if isinstance(state, QuitState):
            if self.app.is_running:
                self.app.exit()
            return
        if state is not previous:
            self._enter_state(state, previous)
        self.app.invalidate()

    def _enter_state(self, state, previous=None) -> None:
        """Load widget contents and move focus for a newly entered state."""
        if isinstance(state, (ListState, SearchResultsState)):
            returning = isinstance(previous, (ConfirmingDeleteState, ConfirmingQuitState))
            if type(previous) is not type(state) and not returning:
                self.selected_index = 0
            self.selected_index = min(self.selected_index, max(len(self._visible_notes()) - 1, 0))
            self.app.layout.focus(self.notes_window)
        elif isinstance(state, ViewingState):
            self.app.layout.focus(self.note_window)
        elif isinstance(state, (CreatingState, EditingState)):
            if type(previous) is not type(state):
                self.title_input.text = state.title
                self.content_input.text = state.content
            self.app.layout.focus(self.title_input)
        elif isinstance(state, SearchingState):
            self.query_input.text = state.query
            self.app.layout.focus(self.query_input)
        elif isinstance(state, (ConfirmingDeleteState, ConfirmingQuitState)):
            self.confirm_input.text = ""
            self.app.layout.focus(self.confirm_input)
        elif isinstance(state, (MessageState, ErrorState)):
            self.app.layout.focus(self.overlay_window)
            if isinstance(state, MessageState) and state.timed:
                self._schedule_dismiss(state)

    def _schedule_dismiss(self, state: MessageState) -> None:
        """Acknowledge a message automatically once the timeout passes."""
        if self._dismiss_task:
            self._dismiss_task.cancel()
        if not self.app.is_running:
            return

        async def _dismiss():
            await asyncio.sleep(self.message_timeout)
            if self.state is state:
                self._dispatch(Command.ACKNOWLEDGE)

        self._dismiss_task = asyncio.ensure_future(_dismiss())

    def _accept_query(self, buff) -> bool:
        self._dispatch(Command.SUBMIT, buff.text)
        return True

    def _accept_confirmation(self, buff) -> bool:
        self._dispatch(Command.SUBMIT, buff.text)
        return True

    def _setup_key_bindings(self) -> None:
        """Set up all key bindings for the application."""
        in_list = Condition(lambda: isinstance(self.state, (ListState, SearchResultsState)))
        in_main_list = Condition(lambda: isinstance(self.state, ListState))
        in_results = Condition(lambda: isinstance(self.state, SearchResultsState))
        in_viewing = Condition(lambda: isinstance(self.state, ViewingState))
        in_form = Condition(lambda: isinstance(self.state, (CreatingState, EditingState)))
        in_prompt = Condition(lambda: isinstance(
            self.state, (SearchingState, ConfirmingDeleteState, ConfirmingQuitState)))
        in_overlay = Condition(lambda: isinstance(self.state, (MessageState, ErrorState)))

        @self.kb.add("c-c", eager=True)
        @self.kb.add("c-q", eager=True)
        def quit_app(event):
            """Quit the application."""
            self._dispatch(Command.QUIT)

        # List navigation
        @self.kb.add("down", filter=in_list)
        def move_down(event):
            notes = self._visible_notes()
            if notes:
                self.selected_index = (self.selected_index + 1) % len(notes)

        @self.kb.add("up", filter=in_list)
        def move_up(event):
            notes = self._visible_notes()
            if notes:
                self.selected_index = (self.selected_index - 1 + len(notes)) % len(notes)

        @self.kb.add("enter", filter=in_list)
        def open_note(event):
            note = self._selected_note()
            if note:
                self._dispatch(Command.OPEN, note.id)

        @self.kb.add("n", filter=in_main_list)
        def new_note(event):
            self._dispatch(Command.NEW)

        @self.kb.add("/", filter=in_list)
        def search(event):
            self._dispatch(Command.SEARCH)

        @self.kb.add("d", filter=in_list)
        def delete_note(event):
            note = self._selected_note()
            if note:
                self._dispatch(Command.DELETE, note.id)

        @self.kb.add("?", filter=in_main_list)
        def show_help(event):
            self._dispatch(Command.HELP)

        @self.kb.add("q", filter=in_main_list)
        def confirm_quit(event):
            self._dispatch(Command.CONFIRM_QUIT)

        @self.kb.add("escape", filter=in_results, eager=True)
        @self.kb.add("q", filter=in_results)
        def leave_results(event):
            self._dispatch(Command.BACK)

        # Viewing
        @self.kb.add("e", filter=in_viewing)
        def edit_note(event):
            self._dispatch(Command.EDIT)

        @self.kb.add("escape", filter=in_viewing, eager=True)
        @self.kb.add("q", filter=in_viewing)
        def back(event):
            self._dispatch(Command.BACK)

        # Forms
        @self.kb.add("tab", filter=in_form)
        def next_field(event):
            event.app.layout.focus_next()

        @self.kb.add("s-tab", filter=in_form)
        def previous_field(event):
            event.app.layout.focus_previous()

        @self.kb.add("c-s", filter=in_form)
        def save(event):
            self._dispatch(Command.SUBMIT, {
                "title": self.title_input.text,
                "content": self.content_input.text,
            })

        @self.kb.add("escape", filter=in_form | in_prompt, eager=True)
        def cancel(event):
            self._dispatch(Command.CANCEL)

        # Message and error overlays
        @self.kb.add("enter", filter=in_overlay)
        @self.kb.add("escape", filter=in_overlay, eager=True)
        @self.kb.add("space", filter=in_overlay)
        def acknowledge(event):
            self._dispatch(Command.ACKNOWLEDGE)

    def _get_header_text(self) -> FormattedText:
        state = self.state
        if isinstance(state, SearchResultsState):
            title = f"Search: '{state.query}' ({len(state.results)} found)"
        elif isinstance(state, ViewingState):
            title = state.note.title
        elif isinstance(state, CreatingState):
            title = "New Note"
        elif isinstance(state, EditingState):
            title = "Edit Note"
        else:
            title = "Notes"
        return [("class:header", f" Taccuino | {title} ")]

    def _get_footer_text(self) -> FormattedText:
        return [("class:footer", FOOTERS.get(type(self.state), ""))]

    def _get_notes_text(self) -> FormattedText:
        """
        Create formatted text for the notes list display.

        Returns:
            List of (style, text) tuples for display
        """
        result = []
        notes = self._visible_notes()
        for i, note in enumerate(notes):
            is_selected = i == self.selected_index
            style = "class:selected" if is_selected else ""
            result.append((style, f"{i + 1}. {note.title} "))
            result.append((style or "class:date", f"({note.created_at:%Y-%m-%d})"))
            result.append(("", "\n"))

        if not notes:
            result.append(("", "No notes yet. Press 'n' to create one."))

        if isinstance(self.state, ListState):
            for warning in self.state.warnings:
                result.append(("", "\n"))
                result.append(("class:warning", f"Skipped: {warning}"))
        return result

    def _get_note_text(self) -> FormattedText:
        state = self.state
        if not isinstance(state, ViewingState):
            return []
        note = state.note
        return [
            ("class:label", "Title: "), ("", f"{note.title}\n"),
            ("class:date", f"Created {note.created_at:%Y-%m-%d %H:%M} | "
                           f"Updated {note.updated_at:%Y-%m-%d %H:%M}\n\n"),
            ("class:label", "Content:\n"), ("", note.content),
        ]

    def _get_overlay_text(self) -> FormattedText:
        state = self.state
        if isinstance(state, ErrorState):
            return [("class:error", f"Error: {state.text}")]
        if isinstance(state, MessageState):
            return [("class:message", state.text)]
        return []

    def _get_form_error(self) -> FormattedText:
        error = getattr(self.state, "error", None)
        return [("class:error", error)] if error else []

    def _get_prompt_label(self) -> FormattedText:
        state = self.state
        if isinstance(state, SearchingState):
            text = "Search notes:"
        elif isinstance(state, ConfirmingDeleteState):
            text = "Type YES to delete the note:"
        else:
            text = "Quit Taccuino? (y/N)"
        return [("class:label", text)]

    def _label(self, text: str) -> Window:
        return Window(FormattedTextControl([("class:label", text)]), height=1)

    def _get_body(self):
        state = self.state
        if isinstance(state, (ListState, SearchResultsState)):
            return self.notes_window
        if isinstance(state, ViewingState):
            return self.note_window
        if isinstance(state, (CreatingState, EditingState)):
            return HSplit([
                self._label("Title:"),
                self.title_input,
                self._label("Content:"),
                self.content_input,
                Window(FormattedTextControl(self._get_form_error), height=1),
            ])
        if isinstance(state, (SearchingState, ConfirmingDeleteState, ConfirmingQuitState)):
            return HSplit([
                Window(FormattedTextControl(self._get_prompt_label), height=1),
                self.confirm_input if not isinstance(state, SearchingState) else self.query_input,
            ])
        return self.overlay_window

    def _create_layout(self) -> Layout:
        """Create the application layout."""
        root_container = HSplit([
            Window(FormattedTextControl(self._get_header_text), height=1),
            DynamicContainer(self._get_body),
            Window(height=1, char='─'),
            Window(FormattedTextControl(self._get_footer_text), height=1),
        ])
        return Layout(root_container)

    def _create_style(self) -> Style:
        """Create the application styling."""
        return Style.from_dict(self.theme)

    def run(self) -> None:
        """Run the full-screen interface until the user quits."""
        self.app.run()
