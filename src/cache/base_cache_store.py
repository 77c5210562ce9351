# src/cache/base_cache_store.py — v1
"""Abstract cache store interface.

Values are opaque bytes; stores know nothing about documentation semantics.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from dociium.cache.models import CacheMetrics


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the payload for key, or None on miss or expiry."""

    @abstractmethod
    async def put(self, key: str, value: bytes, ttl: float | None = None) -> None:
        """Store payload under key. ttl=None never expires."""

    @abstractmethod
    async def invalidate(self, key: str) -> bool:
        """Remove a single key. Returns True if something was removed."""

    @abstractmethod
    async def clear(self, prefix: str | None = None) -> int:
        """Remove every key (or every key starting with prefix). Returns count."""

    @abstractmethod
    async def sweep_expired(self) -> int:
        """Drop expired entries. Returns number of persisted entries removed."""

    @abstractmethod
    def stats(self) -> CacheMetrics:
        """Snapshot of hit/miss/eviction counters."""
