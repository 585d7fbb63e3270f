# Overview: Process-local TTL cache in front of the aggregate report queries.

"""
Report cache.

One instance per Flask app (``app.extensions["report_cache"]``), created by
the app factory and handed to the reporting and stock accounting services.
Entries live for ``ttl_seconds``; any successful ledger mutation calls
``clear()``. A stale read is possible only between a write by another process
and TTL expiry.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Hashable

_MISSING = object()


class ReportCache:
    def __init__(
        self,
        ttl_seconds: float = 30.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval_seconds: float = 60.0,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.ttl_seconds = ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()
        # Bumped by clear(); lets a writer detect that it computed from stale data
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def _expired(self, stored_at: float, now: float) -> bool:
        return now - stored_at > self.ttl_seconds

    def get(self, key: Hashable, default: Any = None) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                return default
            stored_at, value = entry
            if self._expired(stored_at, now):
                del self._entries[key]
                return default
            return value

    def set(self, key: Hashable, value: Any, *, generation: int | None = None) -> bool:
        """
        Store value under key. With ``generation`` (read before computing value),
        the write is dropped if clear() ran in between. Returns whether it was stored.
        """
        now = self._clock()
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._entries[key] = (now, value)
            due = now - self._last_sweep >= self.sweep_interval_seconds
        if due:
            self.cleanup()
        return True

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generation += 1

    def cleanup(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (stored_at, _) in self._entries.items() if self._expired(stored_at, now)]
            for key in expired:
                del self._entries[key]
            self._last_sweep = now
        return len(expired)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
