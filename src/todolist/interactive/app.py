"""Textual application for interactive mode."""

from __future__ import annotations

from typing import Callable, List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Button, Footer, Input, Label

from ..state.adapter import StorageError
from ..state.tasks import Task, TaskListStore
from .widgets import EditTaskModal, TaskListWidget


class TodoApp(App):
    """Renders the task list and maps user intents onto the store."""

    CSS = """
    Screen {
        background: black;
        padding: 1 2;
    }

    #title {
        width: 100%;
        content-align: center middle;
        text-style: bold;
        margin-bottom: 1;
    }

    #input-row {
        height: auto;
        margin-bottom: 1;
    }

    #new-task-input {
        width: 1fr;
    }

    #add-button {
        width: auto;
        margin-left: 1;
    }

    #task-list-widget {
        height: 1fr;
        border: tall $primary;
    }
    """

    BINDINGS = [
        Binding("t", "toggle_task", "Toggle"),
        Binding("e", "edit_task", "Edit"),
        Binding("d", "delete_task", "Delete"),
        Binding("ctrl+c", "quit", "Quit"),
    ]

    def __init__(self, store: TaskListStore, heading: str = "Todo List", *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.store = store
        self.heading = heading
        if self.store.on_storage_error is None:
            self.store.on_storage_error = self._on_storage_error
        self._unsubscribe: Optional[Callable[[], None]] = None

    def compose(self) -> ComposeResult:
        yield Label(self.heading, id="title")
        with Horizontal(id="input-row"):
            yield Input(placeholder="Enter a todo", id="new-task-input", disabled=True)
            yield Button("Add", variant="primary", id="add-button", disabled=True)

        self.task_list = TaskListWidget(id="task-list-widget")
        yield self.task_list
        yield Footer()

    def on_mount(self) -> None:
        self._unsubscribe = self.store.subscribe(self._on_tasks_changed)
        self.run_worker(self._hydrate())

    async def _hydrate(self) -> None:
        """Load saved todos; input stays disabled until this settles."""
        await self.store.hydrate()
        self.task_list.update_tasks(self.store.list_all())

        if self.store.hydration_error is not None:
            self.notify("Could not load saved todos; starting with an empty list.", severity="warning")

        new_task_input = self.query_one("#new-task-input", Input)
        new_task_input.disabled = False
        self.query_one("#add-button", Button).disabled = False
        new_task_input.focus()

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ------------------------------------------------------------------ #
    # Store callbacks
    # ------------------------------------------------------------------ #
    def _on_tasks_changed(self, tasks: List[Task]) -> None:
        self.task_list.update_tasks(tasks)

    def _on_storage_error(self, exc: StorageError) -> None:
        self.notify(str(exc), title="Storage error", severity="warning")

    # ------------------------------------------------------------------ #
    # Intents
    # ------------------------------------------------------------------ #
    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "add-button":
            self._add_from_input()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "new-task-input":
            self._add_from_input()

    def _add_from_input(self) -> None:
        new_task_input = self.query_one("#new-task-input", Input)
        if self.store.add(new_task_input.value):
            new_task_input.value = ""

    def on_task_list_widget_task_toggled(self, event: TaskListWidget.TaskToggled) -> None:
        self.store.toggle_done(event.task.id)

    def action_toggle_task(self) -> None:
        task = self.task_list.selected_task()
        if task:
            self.store.toggle_done(task.id)

    def action_edit_task(self) -> None:
        """Done tasks are not editable from the UI."""
        task = self.task_list.selected_task()
        if task and not task.done:
            self.run_worker(self._show_edit_modal(task.id))

    def action_delete_task(self) -> None:
        """Done tasks are not deletable from the UI."""
        task = self.task_list.selected_task()
        if task and not task.done:
            self.store.remove(task.id)

    async def _show_edit_modal(self, task_id: int) -> None:
        draft = self.store.start_edit(task_id)
        if draft is None:
            return
        result = await self.push_screen_wait(EditTaskModal(draft.text))
        if result is not None:
            self.store.commit_edit(task_id, result)

    async def action_quit(self) -> None:
        """Let pending writes land before exiting."""
        await self.store.flush()
        self.exit()
