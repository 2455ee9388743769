"""
Analysis Response Cache

Memoizes the raw analysis text per source so that repeated montages of the
same video within the TTL make a single model call. Entries are evicted by a
scheduled action once their TTL elapses; there is no capacity bound and no
LRU, only one entry per source.

Concurrent misses for the same source each call upstream unless the cache is
created with ``single_flight=True``, in which case one caller fetches and the
others wait for its result.

Usage:
    from beat_montage.core.analysis_cache import AnalysisResponseCache

    cache = AnalysisResponseCache(scheduler, ttl_seconds=3600)
    text = cache.get_or_fetch(source_uri, lambda: client.analyze(source_uri))
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..logger import logger
from .scheduler import DelayedTaskScheduler


@dataclass
class CacheEntry:
    """Cached analysis text for one source."""
    key: str
    value: str
    expires_at: float


class _InFlight:
    """A fetch other callers can wait on."""

    def __init__(self):
        self.done = threading.Event()
        self.value: Optional[str] = None
        self.error: Optional[BaseException] = None


class AnalysisResponseCache:
    """Thread-safe TTL map from source key to raw analysis text."""

    def __init__(
        self,
        scheduler: DelayedTaskScheduler,
        ttl_seconds: float = 3600,
        single_flight: bool = False,
    ):
        self.scheduler = scheduler
        self.ttl_seconds = ttl_seconds
        self.single_flight = single_flight
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry] = {}
        self._in_flight: Dict[str, _InFlight] = {}

    @staticmethod
    def _timer_key(key: str) -> str:
        return f"analysis-cache:{key}"

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        logger.info("Cache hit! Returning cached analysis response.")
        return entry.value

    def put(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        """Store or overwrite an entry and (re)arm its eviction."""
        ttl = self.ttl_seconds if ttl is None else ttl
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=time.time() + ttl)
        self.scheduler.schedule(self._timer_key(key), ttl, lambda: self._evict(key))

    def _evict(self, key: str) -> None:
        with self._lock:
            removed = self._entries.pop(key, None)
        if removed is not None:
            logger.info(f"Cache entry for key '{key}' expired and deleted.")

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            keys = list(self._entries)
            self._entries.clear()
        for key in keys:
            self.scheduler.cancel(self._timer_key(key))

    def get_or_fetch(self, key: str, fetch: Callable[[], str]) -> str:
        """
        Return the cached value or call ``fetch`` and cache its result.

        Exceptions from ``fetch`` propagate and nothing is cached.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        if not self.single_flight:
            value = fetch()
            self.put(key, value)
            return value

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                return entry.value
            flight = self._in_flight.get(key)
            leader = flight is None
            if leader:
                flight = _InFlight()
                self._in_flight[key] = flight

        if not leader:
            logger.debug(f"Waiting for in-flight analysis of '{key}'")
            flight.done.wait()
            if flight.error is not None:
                raise flight.error
            return flight.value

        try:
            flight.value = fetch()
            self.put(key, flight.value)
            return flight.value
        except BaseException as e:
            flight.error = e
            raise
        finally:
            with self._lock:
                self._in_flight.pop(key, None)
            flight.done.set()
