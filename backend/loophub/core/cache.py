"""TTL Cache: in-process key/value store for hot read results.

Invariants:
    - get() never returns an entry older than its ttl; expired entries are deleted on read
    - Keys are built only through CacheKeys so invalidation prefixes stay in sync
    - A lock guards the underlying dict
    - Above PURGE_THRESHOLD keys, set() drops every expired entry before storing

Design Decisions:
    - Monotonic clock for expiry (wall-clock jumps do not resurrect entries)
    - Clock is injectable for tests
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable


DEFAULT_TTL_SECONDS = 60.0
PURGE_THRESHOLD = 500


class CacheTTL:
    """Seconds each kind of cached read stays fresh."""
    FORUMS = 300
    THREADS = 120
    COMMENTS = 60
    SEARCH = 30


class CacheKeys:
    @staticmethod
    def forums(slug: str | None = None) -> str:
        return f"forums:{slug or 'all'}"

    @staticmethod
    def forum_stats() -> str:
        return "forums:stats"

    @staticmethod
    def forum_threads(slug: str, page: int, sort: str) -> str:
        return f"forum:{slug}:threads:{page}:{sort}"

    @staticmethod
    def thread(thread_id: str) -> str:
        return f"thread:{thread_id}"

    @staticmethod
    def thread_comments(thread_id: str, page: int) -> str:
        return f"thread:{thread_id}:comments:{page}"

    @staticmethod
    def search(query: str, search_type: str, page: int) -> str:
        return f"search:{query}:{search_type}:{page}"


@dataclass
class _Entry:
    value: Any
    stored_at: float
    ttl: float


class TTLCache:
    """Dict with per-entry expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._data: dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at > entry.ttl:
                del self._data[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: float = DEFAULT_TTL_SECONDS) -> None:
        with self._lock:
            now = self._clock()
            if len(self._data) >= PURGE_THRESHOLD:
                self._purge_expired(now)
            self._data[key] = _Entry(value, now, ttl)

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, e in self._data.items() if now - e.stored_at > e.ttl]
        for k in expired:
            del self._data[k]

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix. Returns how many were dropped."""
        with self._lock:
            doomed = [k for k in self._data if k.startswith(prefix)]
            for k in doomed:
                del self._data[k]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def size(self) -> int:
        return len(self._data)
