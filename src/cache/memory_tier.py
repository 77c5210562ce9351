# src/cache/memory_tier.py — v1
"""Bounded in-memory LRU tier."""

from __future__ import annotations

import threading
from collections import OrderedDict

from dociium.cache.models import CacheEntry


class MemoryTier:
    """Entry-count bounded LRU map of CacheEntry objects.

    Thread-safe: every operation holds the tier lock. Entries are swapped
    whole, so a reader either sees the old entry or the new one.
    """

    def __init__(self, max_entries: int = 1000) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, key: str, now: float) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry

    def put(self, entry: CacheEntry) -> int:
        """Insert or replace; returns number of entries evicted."""
        evicted = 0
        with self._lock:
            self._entries[entry.key] = entry
            self._entries.move_to_end(entry.key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
                evicted += 1
        return evicted

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self, prefix: str | None = None) -> set[str]:
        with self._lock:
            if prefix is None:
                removed = set(self._entries)
                self._entries.clear()
                return removed
            removed = {k for k in self._entries if k.startswith(prefix)}
            for k in removed:
                del self._entries[k]
            return removed

    def sweep(self, now: float) -> int:
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for k in expired:
                del self._entries[k]
            return len(expired)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def total_bytes(self) -> int:
        with self._lock:
            return sum(e.size for e in self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
