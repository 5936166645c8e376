"""Modal for editing a task's text."""

from __future__ import annotations

from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Grid, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label


class EditTaskModal(ModalScreen[Optional[str]]):
    """Collects replacement text; dismisses with None on cancel.

    The input value is the staging copy; nothing reaches the store until the
    caller commits the returned text.
    """

    DEFAULT_CSS = """
    EditTaskModal {
        align: center middle;
    }

    EditTaskModal > Vertical {
        width: 60;
        height: auto;
        background: $panel;
        border: thick $primary;
        padding: 1 2;
    }

    EditTaskModal Label {
        width: 100%;
        content-align: center middle;
        text-style: bold;
        color: $text;
        margin-bottom: 1;
    }

    EditTaskModal Input {
        width: 100%;
        border: round $primary;
        margin-bottom: 1;
    }

    EditTaskModal Grid {
        width: 100%;
        height: auto;
        grid-size: 2;
        grid-gutter: 1;
    }

    EditTaskModal Button {
        width: 100%;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, text: str) -> None:
        super().__init__()
        self.initial_text = text

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label("Edit Todo")
            yield Input(value=self.initial_text, id="edit-input")
            with Grid():
                yield Button("Cancel", variant="default", id="cancel-button")
                yield Button("Update", variant="primary", id="update-button")

    def on_mount(self) -> None:
        self.query_one("#edit-input", Input).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel-button":
            self.dismiss(None)
        elif event.button.id == "update-button":
            self._submit()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self._submit()

    def action_cancel(self) -> None:
        self.dismiss(None)

    def _submit(self) -> None:
        edit_input = self.query_one("#edit-input", Input)
        if edit_input.value.strip():
            self.dismiss(edit_input.value)
        else:
            # Don't dismiss if empty
            edit_input.focus()
