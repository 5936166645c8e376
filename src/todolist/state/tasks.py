"""Task list state and its persistence lifecycle."""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from ..utils.logger import Logger
from .adapter import PersistenceAdapter, StorageError, StorageReadError, StorageWriteError

Listener = Callable[[List["Task"]], None]
ErrorHandler = Callable[[StorageError], None]


class StoreNotReadyError(RuntimeError):
    """Raised when the list is mutated before hydration has settled."""


@dataclass
class Task:
    """A single to-do entry."""

    id: int
    text: str
    done: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"id": self.id, "text": self.text, "done": self.done}

    @staticmethod
    def from_dict(data: Any) -> "Task":
        """Create from dictionary, rejecting anything that is not a task record."""
        if not isinstance(data, dict):
            raise ValueError("task record must be an object")
        if set(data) != {"id", "text", "done"}:
            raise ValueError(f"unexpected keys {sorted(data)}")
        task_id, text, done = data["id"], data["text"], data["done"]
        # bool is a subclass of int
        if not isinstance(task_id, int) or isinstance(task_id, bool):
            raise ValueError("id must be an integer")
        if not isinstance(text, str) or not text.strip():
            raise ValueError("text must be a non-empty string")
        if not isinstance(done, bool):
            raise ValueError("done must be a boolean")
        return Task(id=task_id, text=text, done=done)


def encode_tasks(tasks: List[Task]) -> str:
    """Serialize the full ordered task list."""
    return json.dumps([task.to_dict() for task in tasks], ensure_ascii=False)


def decode_tasks(blob: str) -> List[Task]:
    """Parse a snapshot back into an ordered task list.

    Anything that is not a JSON array of well-formed task records is rejected
    with StorageReadError rather than partially recovered.
    """
    try:
        data = json.loads(blob)
    except (TypeError, ValueError, RecursionError) as exc:
        raise StorageReadError(f"Snapshot is not valid JSON: {exc}") from exc

    if not isinstance(data, list):
        raise StorageReadError("Snapshot must be a JSON array")

    tasks: List[Task] = []
    seen = set()
    for index, entry in enumerate(data):
        try:
            task = Task.from_dict(entry)
        except ValueError as exc:
            raise StorageReadError(f"Invalid task at index {index}: {exc}") from exc
        if task.id in seen:
            raise StorageReadError(f"Duplicate task id {task.id}")
        seen.add(task.id)
        tasks.append(task)
    return tasks


class TaskListStore:
    """Owns the ordered task list and keeps storage in step with it.

    Every mutation updates memory synchronously, notifies subscribers and
    schedules a write of the whole list. Writes go through a single-writer
    chain so they complete in the order they were issued; a failed write is
    logged and never rolls back the in-memory change.

    Mutating methods need a running event loop.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        logger: Optional[Logger] = None,
        on_storage_error: Optional[ErrorHandler] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.adapter = adapter
        self.logger = logger or Logger()
        self.on_storage_error = on_storage_error
        self.clock = clock
        self.hydration_error: Optional[StorageReadError] = None
        self._tasks: List[Task] = []
        self._listeners: List[Listener] = []
        self._last_id = 0
        self._ready = False
        self._hydration: Optional[asyncio.Task] = None
        self._last_write: Optional[asyncio.Task] = None

    @property
    def is_ready(self) -> bool:
        return self._ready

    # ------------------------------------------------------------------ #
    # Startup
    # ------------------------------------------------------------------ #
    async def hydrate(self) -> None:
        """Load the persisted snapshot once; failures leave the list as is.

        Concurrent callers all wait for the same load.
        """
        if self._ready:
            return
        if self._hydration is None:
            self._hydration = asyncio.get_running_loop().create_task(self._load())
        await asyncio.shield(self._hydration)

    async def _load(self) -> None:
        try:
            blob = await self.adapter.load()
            if blob is not None:
                tasks = decode_tasks(blob)
                self._tasks = tasks
                self._last_id = max((task.id for task in tasks), default=0)
                self.logger.log_hydrated(len(tasks))
                self._notify()
        except StorageReadError as exc:
            self.hydration_error = exc
            self._report(exc, self.logger.log_hydrate_failed)
        finally:
            self._ready = True

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    def list_all(self) -> List[Task]:
        """List all tasks in insertion order."""
        return [replace(task) for task in self._tasks]

    def get(self, task_id: int) -> Optional[Task]:
        """Get task by ID."""
        task = self._find(task_id)
        return replace(task) if task else None

    def start_edit(self, task_id: int) -> Optional[Task]:
        """Return the task to pre-populate an editor; does not mutate."""
        return self.get(task_id)

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #
    def add(self, text: str) -> Optional[Task]:
        """Append a new task; blank text is ignored and returns None."""
        self._require_ready()
        trimmed = text.strip()
        if not trimmed:
            return None
        task = Task(id=self._next_id(), text=trimmed)
        self._tasks.append(task)
        self._changed("task_added", task.id)
        return replace(task)

    def toggle_done(self, task_id: int) -> None:
        """Flip the done flag; unknown ids are ignored."""
        self._require_ready()
        task = self._find(task_id)
        if not task:
            return
        task.done = not task.done
        self._changed("task_toggled", task_id)

    def commit_edit(self, task_id: int, new_text: str) -> bool:
        """Replace a task's text. Returns False for blank text or unknown ids."""
        self._require_ready()
        trimmed = new_text.strip()
        if not trimmed:
            return False
        task = self._find(task_id)
        if not task:
            return False
        task.text = trimmed
        self._changed("task_edited", task_id)
        return True

    def remove(self, task_id: int) -> None:
        """Delete a task; unknown ids are ignored."""
        self._require_ready()
        if not self._find(task_id):
            return
        self._tasks = [t for t in self._tasks if t.id != task_id]
        self._changed("task_removed", task_id)

    # ------------------------------------------------------------------ #
    # Observers and writes
    # ------------------------------------------------------------------ #
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener with the current list after every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def flush(self) -> None:
        """Wait until every issued write has finished."""
        while self._last_write is not None and not self._last_write.done():
            await asyncio.shield(self._last_write)

    def _changed(self, event: str, task_id: int) -> None:
        self.logger.log_task_event(event, task_id)
        self._schedule_save()
        self._notify()

    def _schedule_save(self) -> None:
        blob = encode_tasks(self._tasks)
        previous = self._last_write
        self._last_write = asyncio.get_running_loop().create_task(self._write(previous, blob))

    async def _write(self, previous: Optional[asyncio.Task], blob: str) -> None:
        if previous is not None:
            # An earlier write's outcome must not stop this one.
            await asyncio.gather(previous, return_exceptions=True)
        try:
            await self.adapter.save(blob)
        except StorageWriteError as exc:
            self._report(exc, self.logger.log_save_failed)

    def _notify(self) -> None:
        snapshot = self.list_all()
        for listener in list(self._listeners):
            listener(snapshot)

    def _report(self, exc: StorageError, log: Callable[[str], None]) -> None:
        """Log and forward a storage failure.

        A logger or handler that fails here goes to the event loop's
        exception handler instead of breaking the store.
        """
        self._guarded(exc, log, str(exc))
        if self.on_storage_error is not None:
            self._guarded(exc, self.on_storage_error, exc)

    @staticmethod
    def _guarded(exc: StorageError, step: Callable[[Any], None], arg: Any) -> None:
        try:
            step(arg)
        except Exception as secondary:
            asyncio.get_running_loop().call_exception_handler(
                {"message": f"Failed to report storage error: {exc}", "exception": secondary}
            )

    def _require_ready(self) -> None:
        if not self._ready:
            raise StoreNotReadyError("Task list has not been loaded yet")

    def _find(self, task_id: int) -> Optional[Task]:
        return next((task for task in self._tasks if task.id == task_id), None)

    def _next_id(self) -> int:
        """Timestamp-derived id, bumped past the last one issued."""
        candidate = int(self.clock() * 1000)
        self._last_id = max(candidate, self._last_id + 1)
        return self._last_id
