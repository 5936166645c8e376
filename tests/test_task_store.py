import asyncio
import json

import pytest

from todolist.state.adapter import PersistenceAdapter, StorageReadError, StorageWriteError
from todolist.state.persistence import KeyValueStore, MemoryStore
from todolist.state.tasks import StoreNotReadyError, Task, TaskListStore, decode_tasks
from todolist.utils.logger import Logger


class FailingStore(KeyValueStore):
    """Store stand-in whose reads and/or writes blow up."""

    def __init__(self, fail_get: bool = False, fail_set: bool = False) -> None:
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.data = {}

    async def get(self, key):
        if self.fail_get:
            raise OSError("disk unplugged")
        return self.data.get(key)

    async def set(self, key, value):
        if self.fail_set:
            raise OSError("disk full")
        self.data[key] = value


class SlowStore(MemoryStore):
    """Earlier writes take longer, so unserialized writes would land out of order."""

    def __init__(self) -> None:
        super().__init__()
        self.delays = [0.05, 0.03, 0.01, 0.0]
        self.completed = []

    async def set(self, key, value):
        delay = self.delays.pop(0) if self.delays else 0.0
        await asyncio.sleep(delay)
        await super().set(key, value)
        self.completed.append(value)


def make_store(backend=None, **kwargs) -> TaskListStore:
    backend = backend if backend is not None else MemoryStore()
    return TaskListStore(PersistenceAdapter(backend), **kwargs)


def run(coro):
    return asyncio.run(coro)


def test_add_appends_task_and_persists() -> None:
    async def scenario():
        backend = MemoryStore()
        store = make_store(backend)
        await store.hydrate()

        task = store.add("  Buy milk  ")
        await store.flush()

        assert task is not None
        assert task.text == "Buy milk"
        assert task.done is False
        assert store.list_all() == [task]
        assert decode_tasks(backend.data["todos"]) == [task]

    run(scenario())


@pytest.mark.parametrize("text", ["", "   ", "\t\n"])
def test_add_blank_text_is_noop(text: str) -> None:
    async def scenario():
        backend = MemoryStore()
        store = make_store(backend)
        await store.hydrate()

        assert store.add(text) is None
        await store.flush()
        assert store.list_all() == []
        assert "todos" not in backend.data

    run(scenario())


def test_ids_are_unique_under_same_clock_tick() -> None:
    async def scenario():
        store = make_store(clock=lambda: 1000.0)
        await store.hydrate()

        ids = [store.add(f"task {i}").id for i in range(5)]
        assert ids == [1_000_000, 1_000_001, 1_000_002, 1_000_003, 1_000_004]

    run(scenario())


def test_ids_continue_after_hydrated_maximum() -> None:
    async def scenario():
        blob = json.dumps([{"id": 5_000_000, "text": "old", "done": False}])
        store = make_store(MemoryStore({"todos": blob}), clock=lambda: 1.0)
        await store.hydrate()

        assert store.add("new").id == 5_000_001

    run(scenario())


def test_removed_id_is_not_reused() -> None:
    async def scenario():
        store = make_store(clock=lambda: 2.0)
        await store.hydrate()

        first = store.add("a")
        store.remove(first.id)
        second = store.add("b")
        assert second.id != first.id

    run(scenario())


def test_toggle_done_is_an_involution() -> None:
    async def scenario():
        store = make_store()
        await store.hydrate()
        task = store.add("Walk dog")

        store.toggle_done(task.id)
        assert store.get(task.id).done is True
        store.toggle_done(task.id)
        assert store.get(task.id).done is False

    run(scenario())


def test_toggle_unknown_id_leaves_list_unchanged() -> None:
    async def scenario():
        backend = MemoryStore()
        store = make_store(backend)
        await store.hydrate()
        task = store.add("a")
        await store.flush()
        before = backend.data["todos"]
        notified = []
        store.subscribe(notified.append)

        store.toggle_done(task.id + 12345)
        await store.flush()

        assert backend.data["todos"] == before
        assert store.list_all() == [task]
        assert notified == []

    run(scenario())


def test_toggle_after_remove_does_not_crash() -> None:
    async def scenario():
        store = make_store()
        await store.hydrate()
        task = store.add("a")
        store.remove(task.id)
        store.toggle_done(task.id)
        assert store.list_all() == []

    run(scenario())


def test_commit_edit_changes_only_text() -> None:
    async def scenario():
        store = make_store()
        await store.hydrate()
        task = store.add("old")
        store.toggle_done(task.id)

        assert store.commit_edit(task.id, "  new text ") is True
        edited = store.get(task.id)
        assert edited == Task(id=task.id, text="new text", done=True)

    run(scenario())


def test_commit_edit_rejects_blank_and_unknown() -> None:
    async def scenario():
        store = make_store()
        await store.hydrate()
        task = store.add("keep me")

        assert store.commit_edit(task.id, "") is False
        assert store.commit_edit(task.id, "   ") is False
        assert store.commit_edit(task.id + 1, "other") is False
        assert store.list_all() == [task]

    run(scenario())


def test_start_edit_returns_copy_and_reflects_commit() -> None:
    async def scenario():
        store = make_store()
        await store.hydrate()
        task = store.add("X")

        draft = store.start_edit(task.id)
        draft.text = "scratch"
        assert store.get(task.id).text == "X"

        store.commit_edit(task.id, "Y")
        assert store.start_edit(task.id).text == "Y"
        assert store.start_edit(task.id + 1) is None

    run(scenario())


def test_remove_twice_removes_once() -> None:
    async def scenario():
        store = make_store()
        await store.hydrate()
        keep = store.add("keep")
        drop = store.add("drop")

        store.remove(drop.id)
        store.remove(drop.id)
        assert store.list_all() == [keep]

    run(scenario())


def test_done_tasks_can_be_edited_and_removed() -> None:
    async def scenario():
        store = make_store()
        await store.hydrate()
        task = store.add("done already")
        store.toggle_done(task.id)

        assert store.commit_edit(task.id, "still editable") is True
        store.remove(task.id)
        assert store.list_all() == []

    run(scenario())


def test_snapshot_reload_scenario() -> None:
    async def scenario():
        backend = MemoryStore()
        store = make_store(backend)
        await store.hydrate()
        first = store.add("Buy milk")
        store.add("Walk dog")
        store.toggle_done(first.id)
        await store.flush()

        reloaded = make_store(MemoryStore(dict(backend.data)))
        await reloaded.hydrate()
        return [(t.text, t.done) for t in reloaded.list_all()]

    assert run(scenario()) == [("Buy milk", True), ("Walk dog", False)]


def test_writes_complete_in_issue_order() -> None:
    async def scenario():
        backend = SlowStore()
        store = make_store(backend)
        await store.hydrate()

        a = store.add("a")
        store.add("b")
        store.toggle_done(a.id)
        store.remove(a.id)
        await store.flush()

        assert len(backend.completed) == 4
        assert [len(decode_tasks(blob)) for blob in backend.completed] == [1, 2, 2, 1]
        assert decode_tasks(backend.data["todos"]) == store.list_all()

    run(scenario())


def test_write_failure_keeps_memory_and_reports() -> None:
    async def scenario():
        errors = []
        logger = Logger()
        store = make_store(FailingStore(fail_set=True), logger=logger, on_storage_error=errors.append)
        await store.hydrate()

        task = store.add("survives")
        await store.flush()
        store.toggle_done(task.id)
        await store.flush()

        assert store.list_all() == [Task(id=task.id, text="survives", done=True)]
        assert len(errors) == 2
        assert all(isinstance(exc, StorageWriteError) for exc in errors)
        assert [e["event"] for e in logger.recent].count("save_failed") == 2

    run(scenario())


def test_hydrate_read_failure_degrades_to_empty() -> None:
    async def scenario():
        errors = []
        store = make_store(FailingStore(fail_get=True), on_storage_error=errors.append)
        await store.hydrate()

        assert store.is_ready
        assert store.list_all() == []
        assert isinstance(store.hydration_error, StorageReadError)
        assert errors == [store.hydration_error]
        assert store.add("still works") is not None

    run(scenario())


@pytest.mark.parametrize(
    "blob",
    [
        "not json",
        '{"id": 1}',
        '[{"id": 1, "text": "a"}]',
        '[{"id": "1", "text": "a", "done": false}]',
        '[{"id": 1, "text": "   ", "done": false}]',
        '[{"id": 1, "text": "a", "done": false}, {"id": 1, "text": "b", "done": true}]',
        "[" * 200000,
    ],
)
def test_hydrate_rejects_malformed_snapshot(blob: str) -> None:
    async def scenario():
        store = make_store(MemoryStore({"todos": blob}))
        await store.hydrate()
        assert store.list_all() == []
        assert isinstance(store.hydration_error, StorageReadError)

    run(scenario())


def test_hydrate_without_snapshot_stays_empty() -> None:
    async def scenario():
        store = make_store()
        await store.hydrate()
        assert store.list_all() == []
        assert store.hydration_error is None

    run(scenario())


def test_mutations_before_hydration_are_rejected() -> None:
    async def scenario():
        store = make_store()
        with pytest.raises(StoreNotReadyError):
            store.add("too early")
        with pytest.raises(StoreNotReadyError):
            store.toggle_done(1)
        with pytest.raises(StoreNotReadyError):
            store.commit_edit(1, "x")
        with pytest.raises(StoreNotReadyError):
            store.remove(1)

        await store.hydrate()
        assert store.add("on time") is not None

    run(scenario())


def test_subscribers_see_every_change() -> None:
    async def scenario():
        blob = json.dumps([{"id": 1, "text": "seed", "done": False}])
        store = make_store(MemoryStore({"todos": blob}))
        seen = []
        unsubscribe = store.subscribe(lambda tasks: seen.append([t.text for t in tasks]))

        await store.hydrate()
        task = store.add("two")
        store.commit_edit(task.id, "2")
        unsubscribe()
        store.remove(task.id)

        assert seen == [["seed"], ["seed", "two"], ["seed", "2"]]

    run(scenario())


def test_second_hydrate_is_noop() -> None:
    async def scenario():
        backend = MemoryStore()
        store = make_store(backend)
        await store.hydrate()
        store.add("only")
        await store.flush()

        backend.data["todos"] = "[]"
        await store.hydrate()
        assert [t.text for t in store.list_all()] == ["only"]

    run(scenario())


class FlakyStore(MemoryStore):
    """Fails the first write only."""

    def __init__(self) -> None:
        super().__init__()
        self.failures_left = 1

    async def set(self, key, value):
        if self.failures_left:
            self.failures_left -= 1
            raise OSError("transient")
        await super().set(key, value)


class BrokenLogger(Logger):
    def log_save_failed(self, reason: str) -> None:
        raise OSError("log disk full")


def test_failing_error_handler_does_not_stop_later_writes() -> None:
    def handler(exc):
        raise RuntimeError("ui handler blew up")

    async def scenario():
        reported = []
        asyncio.get_running_loop().set_exception_handler(lambda loop, ctx: reported.append(ctx))
        backend = FlakyStore()
        store = make_store(backend, on_storage_error=handler)
        await store.hydrate()

        store.add("a")
        store.add("b")
        store.add("c")
        await store.flush()

        assert [t.text for t in decode_tasks(backend.data["todos"])] == ["a", "b", "c"]
        assert isinstance(reported[0]["exception"], RuntimeError)

    run(scenario())


def test_failing_logger_does_not_stop_later_writes() -> None:
    async def scenario():
        asyncio.get_running_loop().set_exception_handler(lambda loop, ctx: None)
        errors = []
        backend = FlakyStore()
        store = make_store(backend, logger=BrokenLogger(), on_storage_error=errors.append)
        await store.hydrate()

        store.add("lost write")
        store.add("kept")
        await store.flush()

        assert [t.text for t in decode_tasks(backend.data["todos"])] == ["lost write", "kept"]
        assert len(errors) == 1

    run(scenario())


def test_concurrent_hydrate_callers_wait_for_same_load() -> None:
    class GatedStore(MemoryStore):
        def __init__(self) -> None:
            super().__init__({"todos": json.dumps([{"id": 1, "text": "seed", "done": False}])})
            self.gate = asyncio.Event()
            self.reads = 0

        async def get(self, key):
            self.reads += 1
            await self.gate.wait()
            return await super().get(key)

    async def scenario():
        backend = GatedStore()
        store = make_store(backend)
        first = asyncio.ensure_future(store.hydrate())
        second = asyncio.ensure_future(store.hydrate())
        await asyncio.sleep(0)
        assert not store.is_ready

        backend.gate.set()
        await asyncio.gather(first, second)

        assert store.is_ready
        assert backend.reads == 1
        assert store.add("after both") is not None

    run(scenario())
