"""Task list widget for interactive mode."""

from __future__ import annotations

from typing import List, Optional

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.message import Message
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Label, ListItem, ListView

from ...state.tasks import Task


class TaskListWidget(Widget):
    """Widget displaying the task list with done markers."""

    DEFAULT_CSS = """
    TaskListWidget Vertical {
        height: 100%;
    }

    TaskListWidget ListView {
        height: 1fr;
    }

    TaskListWidget #empty-label {
        color: $text-muted;
        padding: 1 2;
    }
    """

    tasks: List[Task] = reactive([], layout=True)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.border_title = "Tasks"

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label("Nothing to do yet.", id="empty-label")
            yield ListView(id="task-list-view")

    def watch_tasks(self, tasks: List[Task]) -> None:
        list_view = self.query_one("#task-list-view", ListView)
        index = list_view.index
        list_view.clear()

        for task in tasks:
            list_view.append(ListItem(Label(self._render_task(task))))

        self.query_one("#empty-label", Label).display = not tasks
        if tasks and index is not None:
            list_view.index = min(index, len(tasks) - 1)

    @staticmethod
    def _render_task(task: Task) -> Text:
        text = Text()
        if task.done:
            text.append("✓ ", style="green")
            text.append(task.text, style="dim strike")
        else:
            text.append("○ ", style="#888888")
            text.append(task.text)
            text.append("  e:edit  d:delete", style="dim")
        return text

    def update_tasks(self, tasks: List[Task]) -> None:
        self.tasks = tasks

    def selected_task(self) -> Optional[Task]:
        """Task under the cursor, if any."""
        index = self.query_one("#task-list-view", ListView).index
        if index is None or index >= len(self.tasks):
            return None
        return self.tasks[index]

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        """Selecting a row toggles it."""
        if event.list_view.index is not None and event.list_view.index < len(self.tasks):
            selected_task = self.tasks[event.list_view.index]
            self.post_message(self.TaskToggled(selected_task))
            event.stop()

    class TaskToggled(Message):
        """Message sent when a task row is activated."""

        def __init__(self, task: Task) -> None:
            super().__init__()
            self.task = task
