"""State management modules."""

from .adapter import PersistenceAdapter, StorageError, StorageReadError, StorageWriteError
from .persistence import JsonFileStore, KeyValueStore, MemoryStore, Persistence
from .tasks import StoreNotReadyError, Task, TaskListStore, decode_tasks, encode_tasks

__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "Persistence",
    "PersistenceAdapter",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "StoreNotReadyError",
    "Task",
    "TaskListStore",
    "decode_tasks",
    "encode_tasks",
]
