"""todolist - a personal task list that survives restarts."""

__version__ = "0.1.0"
__author__ = "todolist Contributors"

from .config import Config
from .state.tasks import Task, TaskListStore

__all__ = ["Config", "Task", "TaskListStore"]
