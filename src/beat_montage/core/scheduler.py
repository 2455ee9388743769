"""
Keyed delayed tasks.

Run cleanup and cache eviction are deferred actions. Each one is
registered under a key so that re-arming replaces the old deadline and an
early deletion can cancel it, leaving nothing behind that points at state
which no longer exists.

One daemon worker drains a heap of deadlines, so the thread count stays
constant no matter how many runs or cache entries are waiting. Replaced
and cancelled entries stay in the heap and are skipped when they surface.

Usage:
    scheduler = DelayedTaskScheduler()
    scheduler.schedule("run:abc", 600, lambda: manager.cleanup("abc"))
    scheduler.cancel("run:abc")
    scheduler.shutdown()
"""

import heapq
import itertools
import threading
import time
from typing import Callable, Dict, Hashable, List, Optional, Tuple

from ..logger import logger


class DelayedTaskScheduler:
    """Single worker thread over a deadline heap, guarded by a condition."""

    def __init__(self, name: str = "scheduler"):
        self.name = name
        self._cond = threading.Condition()
        self._heap: List[Tuple[float, int, Hashable]] = []
        # key -> (sequence, task); a heap entry is live only if its sequence matches
        self._tasks: Dict[Hashable, Tuple[int, Callable[[], None]]] = {}
        self._sequence = itertools.count()
        self._worker: Optional[threading.Thread] = None
        self._closed = False

    def schedule(self, key: Hashable, delay: float, fn: Callable[[], None]) -> None:
        """Run ``fn`` after ``delay`` seconds, replacing any task under ``key``."""
        deadline = time.monotonic() + max(0.0, delay)
        with self._cond:
            if self._closed:
                logger.debug(f"[{self.name}] Ignoring {key!r}, scheduler is shut down")
                return
            seq = next(self._sequence)
            self._tasks[key] = (seq, fn)
            heapq.heappush(self._heap, (deadline, seq, key))
            if len(self._heap) > 2 * len(self._tasks) + 64:
                self._compact()
            self._ensure_worker()
            self._cond.notify()

    def _compact(self) -> None:
        self._heap = [entry for entry in self._heap if self._is_live(entry)]
        heapq.heapify(self._heap)

    def _is_live(self, entry: Tuple[float, int, Hashable]) -> bool:
        task = self._tasks.get(entry[2])
        return task is not None and task[0] == entry[1]

    def _ensure_worker(self) -> None:
        if self._worker is None or not self._worker.is_alive():
            self._worker = threading.Thread(target=self._run, name=f"{self.name}-worker", daemon=True)
            self._worker.start()

    def _next_due(self) -> Optional[Tuple[Hashable, Callable[[], None]]]:
        """Block until a task is due; None once shut down."""
        with self._cond:
            while not self._closed:
                while self._heap and not self._is_live(self._heap[0]):
                    heapq.heappop(self._heap)
                if not self._heap:
                    self._cond.wait()
                    continue

                deadline, _, key = self._heap[0]
                wait = deadline - time.monotonic()
                if wait > 0:
                    self._cond.wait(wait)
                    continue

                heapq.heappop(self._heap)
                _, fn = self._tasks.pop(key)
                return key, fn
        return None

    def _run(self) -> None:
        while True:
            due = self._next_due()
            if due is None:
                return
            key, fn = due
            try:
                fn()
            except Exception as e:
                logger.error(f"[{self.name}] Deferred task {key!r} failed: {e}", exc_info=True)

    def cancel(self, key: Hashable) -> bool:
        """Cancel a pending task. Returns False if nothing was pending."""
        with self._cond:
            return self._tasks.pop(key, None) is not None

    def is_scheduled(self, key: Hashable) -> bool:
        with self._cond:
            return key in self._tasks

    def pending(self) -> int:
        with self._cond:
            return len(self._tasks)

    def shutdown(self) -> None:
        """Drop every pending task, refuse new ones and stop the worker."""
        with self._cond:
            self._closed = True
            self._tasks.clear()
            self._heap.clear()
            self._cond.notify_all()
