"""JSONL event logger for task list activity."""

from __future__ import annotations

import json
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Deque, Dict, Optional


class Logger:
    """Appends store events to ``<logs_dir>/store.log``.

    With no directory the logger only keeps the most recent entries in memory.
    """

    LOG_FILE = "store.log"

    def __init__(self, logs_dir: Optional[Path] = None, keep: int = 100) -> None:
        self.logs_dir = logs_dir
        self.recent: Deque[Dict[str, Any]] = deque(maxlen=keep)
        if self.logs_dir is not None:
            self.logs_dir.mkdir(parents=True, exist_ok=True)

    @property
    def log_path(self) -> Optional[Path]:
        if self.logs_dir is None:
            return None
        return self.logs_dir / self.LOG_FILE

    def _write(self, payload: dict) -> None:
        entry = {"timestamp": datetime.now(timezone.utc).isoformat(), **payload}
        self.recent.append(entry)
        path = self.log_path
        if path is None:
            return
        with path.open("a", encoding="utf-8") as fp:
            fp.write(json.dumps(entry, ensure_ascii=False) + "\n")

    def log_hydrated(self, count: int) -> None:
        self._write({"event": "hydrated", "count": count})

    def log_hydrate_failed(self, reason: str) -> None:
        self._write({"event": "hydrate_failed", "reason": reason})

    def log_save_failed(self, reason: str) -> None:
        self._write({"event": "save_failed", "reason": reason})

    def log_task_event(self, event: str, task_id: int) -> None:
        """Record a mutation (task_added, task_toggled, task_edited, task_removed)."""
        self._write({"event": event, "task_id": task_id})
