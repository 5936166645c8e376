"""Key-value backends and atomic JSON file helpers."""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional


class Persistence:
    """Handles atomic JSON file operations."""

    @staticmethod
    def load_json(file_path: Path) -> Dict[str, Any]:
        """Load a JSON object from file, return {} if the file does not exist.

        Unreadable files, invalid JSON and non-object documents raise.
        """
        if not file_path.exists():
            return {}

        with file_path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
        if not isinstance(data, dict):
            raise ValueError(f"{file_path} does not contain a JSON object")
        return data

    @staticmethod
    def save_json(file_path: Path, data: Dict[str, Any]) -> None:
        """Atomically save JSON to file."""
        Persistence.ensure_dir(file_path.parent)
        tmp_fd, tmp_path = tempfile.mkstemp(dir=file_path.parent, suffix=".tmp")
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as fp:
                json.dump(data, fp, indent=2, ensure_ascii=False)
                fp.flush()
                os.fsync(fp.fileno())
            shutil.move(tmp_path, file_path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

    @staticmethod
    def ensure_dir(dir_path: Path) -> None:
        """Create directory if it doesn't exist."""
        dir_path.mkdir(parents=True, exist_ok=True)


class KeyValueStore(ABC):
    """Asynchronous string key-value store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""


class MemoryStore(KeyValueStore):
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStore(KeyValueStore):
    """All keys kept in one JSON object file.

    File I/O runs in a worker thread so the event loop is never blocked.
    Callers are expected to serialize writes.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(Persistence.load_json, self.path)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    def _write(self, key: str, value: str) -> None:
        try:
            data = Persistence.load_json(self.path)
        except (ValueError, RecursionError):
            # Unparseable file: keep a copy aside and start a fresh object.
            shutil.copyfile(self.path, self.path.with_name(self.path.name + ".corrupt"))
            data = {}
        data[key] = value
        Persistence.save_json(self.path, data)
