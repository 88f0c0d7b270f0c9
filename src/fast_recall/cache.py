"""
LRU result cache with age-based expiry.

Entries are kept in an ``OrderedDict`` ordered from least to most recently
accessed, so eviction is O(1) and always removes the entry with the oldest
``last_accessed``.  Expiry is checked lazily on ``get``.
"""

from __future__ import annotations

import copy
import logging
import os
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .snapshot import load_or_empty, pairs, write_snapshot

logger = logging.getLogger(__name__)

#: Default maximum number of cached results.
DEFAULT_CAPACITY: int = 1000

#: Default maximum entry age in seconds (24 hours).
DEFAULT_MAX_AGE: float = 24 * 60 * 60


@dataclass
class CacheEntry:
    key: str
    value: Any
    created_at: float
    last_accessed: float
    access_count: int = 0

    def touch(self, now: float) -> None:
        self.last_accessed = now
        self.access_count += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "created_at": self.created_at,
            "last_accessed": self.last_accessed,
            "access_count": self.access_count,
        }

    @classmethod
    def from_dict(cls, key: str, data: dict[str, Any]) -> CacheEntry:
        return cls(
            key=key,
            value=data["value"],
            created_at=float(data["created_at"]),
            last_accessed=float(data["last_accessed"]),
            access_count=int(data["access_count"]),
        )


class LRUCache:
    """
    Size-bounded, age-bounded cache of JSON-serializable values.

    Values are deep-copied on the way in and on the way out, so callers can
    never mutate what the cache holds.

    Parameters
    ----------
    path:
        Snapshot file.  ``None`` keeps the cache in memory only.
    capacity:
        Maximum number of entries.
    max_age:
        Seconds after creation at which an entry expires.
    autosave:
        Write the snapshot after every ``set`` / ``delete`` / ``clear``.
        When ``False`` the owner calls ``flush()`` itself.
    clock:
        Time source, in seconds.
    """

    def __init__(
        self,
        path: str | os.PathLike[str] | None = None,
        capacity: int = DEFAULT_CAPACITY,
        max_age: float = DEFAULT_MAX_AGE,
        autosave: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.path = path
        self.capacity = capacity
        self.max_age = max_age
        self.autosave = autosave
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self.hits = 0
        self.misses = 0
        self._load()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        """
        Return a copy of the value cached under *key*, or ``None`` on a miss.

        An expired entry is evicted and reported as a miss.
        """
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        now = self._clock()
        if now - entry.created_at > self.max_age:
            del self._entries[key]
            self.misses += 1
            logger.debug("Cache entry %s expired", key)
            return None

        entry.touch(now)
        self._entries.move_to_end(key)
        self.hits += 1
        return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any) -> None:
        """Cache *value* under *key*, evicting the LRU entry when full."""
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None:
            entry.value = copy.deepcopy(value)
            entry.touch(now)
            self._entries.move_to_end(key)
        else:
            while len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry %s", evicted)
            self._entries[key] = CacheEntry(
                key=key,
                value=copy.deepcopy(value),
                created_at=now,
                last_accessed=now,
            )
        self._autosave()

    def delete(self, key: str) -> bool:
        """Remove *key*; returns whether it was present."""
        if self._entries.pop(key, None) is None:
            return False
        self._autosave()
        return True

    def clear(self) -> None:
        """Drop every entry and reset the hit/miss counters."""
        self._entries.clear()
        self.hits = 0
        self.misses = 0
        self._autosave()

    def stats(self) -> dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "capacity": self.capacity,
            "hitRate": round(self.hits / lookups, 4) if lookups else 0.0,
        }

    def keys(self) -> list[str]:
        """Keys from least to most recently accessed."""
        return list(self._entries)

    def entry(self, key: str) -> CacheEntry | None:
        """Return the raw entry for *key* without touching it."""
        return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def flush(self) -> None:
        """Write the cache snapshot.  No-op for an in-memory cache."""
        if self.path is None:
            return
        write_snapshot(
            self.path,
            {
                "hits": self.hits,
                "misses": self.misses,
                "entries": pairs({k: e.to_dict() for k, e in self._entries.items()}),
            },
        )

    def _autosave(self) -> None:
        if self.autosave:
            self.flush()

    def _load(self) -> None:
        data = load_or_empty(self.path, "cache")
        if data is None:
            return
        try:
            entries = [CacheEntry.from_dict(key, item) for key, item in data["entries"]]
            hits = int(data.get("hits", 0))
            misses = int(data.get("misses", 0))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Corrupt cache snapshot, starting empty: %s", exc)
            return
        entries.sort(key=lambda e: e.last_accessed)
        # Keep the most recently used entries if capacity shrank.
        for entry in entries[-self.capacity :]:
            self._entries[entry.key] = entry
        self.hits, self.misses = hits, misses
        logger.info("Loaded cache: %d entries", len(self._entries))
