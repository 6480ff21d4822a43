"""In-memory TTL cache shared by concurrent permission checks."""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _Entry:
    value: Any
    expires_at: float


class MemoryCache:
    """Dict-backed cache with per-entry TTL, lazy expiry and explicit sweep.

    Reads never lock. Writes lock one stripe chosen by key hash, so writers
    to different keys rarely contend and no lock is held across an await.
    """

    def __init__(
        self,
        name: str,
        default_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        stripes: int = 64,
    ) -> None:
        self.name = name
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._locks = [threading.Lock() for _ in range(stripes)]
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0
        self._evictions = 0

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if entry.expires_at <= self._clock():
            self._evict(key, entry)
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        entry = _Entry(value=value, expires_at=self._clock() + ttl)
        with self._lock_for(key):
            self._entries[key] = entry
        self._sets += 1

    def delete(self, key: str) -> bool:
        with self._lock_for(key):
            removed = self._entries.pop(key, None) is not None
        if removed:
            self._deletes += 1
        return removed

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix; returns how many were removed."""
        removed = 0
        for key in [k for k in list(self._entries) if k.startswith(prefix)]:
            if self.delete(key):
                removed += 1
        return removed

    def clear(self) -> None:
        for key in list(self._entries):
            self.delete(key)

    def sweep(self) -> int:
        """Evict all expired entries; returns the eviction count."""
        now = self._clock()
        evicted = 0
        for key, entry in list(self._entries.items()):
            if entry.expires_at <= now and self._evict(key, entry):
                evicted += 1
        if evicted:
            log.debug("cache_swept", cache=self.name, evicted=evicted)
        return evicted

    def _evict(self, key: str, entry: _Entry) -> bool:
        # Only drop the entry we saw expire; a concurrent set may have replaced it.
        with self._lock_for(key):
            if self._entries.get(key) is not entry:
                return False
            del self._entries[key]
        self._evictions += 1
        return True

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def stats(self) -> dict[str, Any]:
        lookups = self._hits + self._misses
        return {
            "name": self.name,
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "sets": self._sets,
            "deletes": self._deletes,
            "evictions": self._evictions,
            "hit_rate": round(self._hits / lookups, 4) if lookups else 0.0,
        }
