# src/cache/cache_factory.py — v1
"""Factory for cache store instantiation.

Each consumer (documentation engine, import resolver) asks for its own
namespace so keyspaces never mix.
"""

from __future__ import annotations

import time
from typing import Callable

from dociium.cache.base_cache_store import BaseCacheStore
from dociium.cache.disk_tier import DiskTier
from dociium.cache.memory_tier import MemoryTier
from dociium.cache.tiered_store import TieredCacheStore
from dociium.config.settings import Settings


def create_cache_store(
    settings: Settings | None = None,
    namespace: str = "docs",
    persistent: bool = True,
    max_entries: int | None = None,
    clock: Callable[[], float] = time.time,
) -> BaseCacheStore:
    """Build a tiered cache store.

    Args:
        settings: Application settings. Defaults are used when None.
        namespace: Subdirectory under the cache root for the disk tier.
        persistent: Attach a disk tier (ignored when disk caching is disabled).
        max_entries: Memory tier capacity; defaults to settings.memory_max_entries.
        clock: Time source, injectable for tests.

    Returns:
        Configured TieredCacheStore.
    """
    settings = settings or Settings(_env_file=None)  # type: ignore[call-arg]
    if not namespace or not namespace.replace("_", "").replace("-", "").isalnum():
        raise ValueError(f"Invalid cache namespace: {namespace!r}")

    memory = MemoryTier(max_entries or settings.memory_max_entries)
    disk = None
    if persistent and settings.cache_enabled_disk:
        disk = DiskTier(
            settings.cache_root / namespace,
            compression_threshold=settings.compression_threshold,
        )
    return TieredCacheStore(memory, disk, clock=clock, name=namespace)
