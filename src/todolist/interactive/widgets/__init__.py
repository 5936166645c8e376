"""Interactive mode widgets."""

from .edit_task_modal import EditTaskModal
from .task_list import TaskListWidget

__all__ = ["EditTaskModal", "TaskListWidget"]
