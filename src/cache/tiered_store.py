# src/cache/tiered_store.py — v1
"""Two-tier cache store: LRU memory tier in front of an optional disk tier.

Read path: memory, then disk (unexpired disk hits are promoted into memory).
Write path: write-through to both tiers. Disk work runs in a worker thread
so the event loop is never blocked on file I/O.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Callable

from dociium.cache.base_cache_store import BaseCacheStore
from dociium.cache.disk_tier import DiskTier
from dociium.cache.memory_tier import MemoryTier
from dociium.cache.models import CacheEntry, CacheMetrics

logger = logging.getLogger(__name__)


class TieredCacheStore(BaseCacheStore):
    """Memory + disk cache with hit/miss/eviction accounting."""

    def __init__(
        self,
        memory: MemoryTier,
        disk: DiskTier | None = None,
        clock: Callable[[], float] = time.time,
        name: str = "cache",
    ) -> None:
        self._memory = memory
        self._disk = disk
        self._clock = clock
        self._name = name
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._bytes_stored = 0
        self._disk_errors = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def persistent(self) -> bool:
        return self._disk is not None

    async def get(self, key: str) -> bytes | None:
        now = self._clock()
        entry = self._memory.get(key, now)
        evicted = 0

        if entry is None and self._disk is not None:
            entry = await asyncio.to_thread(self._disk.read, key)
            if entry is not None and entry.is_expired(now):
                entry = None
            if entry is not None:
                evicted = self._memory.put(entry)

        with self._lock:
            self._evictions += evicted
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1

        return None if entry is None else entry.payload

    async def put(self, key: str, value: bytes, ttl: float | None = None) -> None:
        entry = CacheEntry(key=key, payload=bytes(value), created_at=self._clock(), ttl=ttl)
        evicted = self._memory.put(entry)
        with self._lock:
            self._evictions += evicted
            self._bytes_stored += entry.size

        if self._disk is not None:
            ok = await asyncio.to_thread(self._disk.write, entry)
            if not ok:
                # Value stays usable from memory.
                with self._lock:
                    self._disk_errors += 1

    async def invalidate(self, key: str) -> bool:
        removed = self._memory.delete(key)
        if self._disk is not None:
            removed = await asyncio.to_thread(self._disk.delete, key) or removed
        return removed

    async def clear(self, prefix: str | None = None) -> int:
        removed = self._memory.clear(prefix)
        if self._disk is not None:
            removed |= await asyncio.to_thread(self._disk.clear, prefix)
        if prefix is None:
            with self._lock:
                self._hits = 0
                self._misses = 0
                self._evictions = 0
                self._bytes_stored = 0
                self._disk_errors = 0
        logger.info("%s: cleared %d entries (prefix=%r)", self._name, len(removed), prefix)
        return len(removed)

    async def sweep_expired(self) -> int:
        now = self._clock()
        in_memory = self._memory.sweep(now)
        on_disk = 0
        if self._disk is not None:
            on_disk = await asyncio.to_thread(self._disk.sweep, now)
        logger.debug("%s: sweep removed %d memory / %d disk entries", self._name, in_memory, on_disk)
        return on_disk if self._disk is not None else in_memory

    def stats(self) -> CacheMetrics:
        with self._lock:
            return CacheMetrics(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                bytes_stored=self._bytes_stored,
                entries=len(self._memory),
                disk_errors=self._disk_errors,
            )
