"""
In-memory run table.

The only place montage runs live. Every read hands out a copy and every
write is a read-modify-write under one lock, so background workers, the
cleanup timer and status requests never observe a half-applied update.
State does not survive a restart.
"""

import threading
import time
from dataclasses import replace
from typing import Callable, Dict, Optional

from .models import Run, RunStatus


class RunStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._runs: Dict[str, Run] = {}

    def create(self, run: Run) -> Run:
        with self._lock:
            if run.id in self._runs:
                raise KeyError(f"run {run.id} already exists")
            self._runs[run.id] = replace(run)
            return replace(run)

    def get(self, run_id: str) -> Optional[Run]:
        with self._lock:
            run = self._runs.get(run_id)
            return replace(run) if run else None

    def transition(self, run_id: str, fn: Callable[[Run], Optional[Run]]) -> Optional[Run]:
        """
        Atomically replace a run with ``fn(copy)``.

        ``fn`` may return None to leave the run untouched. Returns the stored
        run after the call, or None if the run does not exist.
        """
        with self._lock:
            current = self._runs.get(run_id)
            if current is None:
                return None
            updated = fn(replace(current))
            if updated is None:
                return replace(current)
            updated.updated_at = time.time()
            self._runs[run_id] = updated
            return replace(updated)

    def delete(self, run_id: str) -> Optional[Run]:
        with self._lock:
            return self._runs.pop(run_id, None)

    def count(self, status: Optional[RunStatus] = None) -> int:
        with self._lock:
            if status is None:
                return len(self._runs)
            return sum(1 for run in self._runs.values() if run.status is status)

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, run_id: str) -> bool:
        with self._lock:
            return run_id in self._runs
