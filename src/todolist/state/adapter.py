"""Persistence adapter for the task list snapshot."""

from __future__ import annotations

from typing import Optional

from .persistence import KeyValueStore

DEFAULT_KEY = "todos"


class StorageError(Exception):
    """Base exception for persistence failures."""


class StorageReadError(StorageError):
    """Raised when a snapshot cannot be read or decoded."""


class StorageWriteError(StorageError):
    """Raised when a snapshot cannot be written."""


class PersistenceAdapter:
    """Reads and writes the snapshot blob under a single key."""

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_KEY) -> None:
        self.store = store
        self.key = key

    async def load(self) -> Optional[str]:
        """Return the last saved blob, or None if nothing was ever saved."""
        try:
            blob = await self.store.get(self.key)
        except Exception as exc:
            raise StorageReadError(f"Failed to read '{self.key}': {exc}") from exc
        if blob is not None and not isinstance(blob, str):
            raise StorageReadError(f"Value under '{self.key}' is not a string")
        return blob

    async def save(self, blob: str) -> None:
        """Overwrite the stored blob."""
        try:
            await self.store.set(self.key, blob)
        except Exception as exc:
            raise StorageWriteError(f"Failed to write '{self.key}': {exc}") from exc
