# tests/unit/cache/test_tiered_store.py — v1
"""Tests for cache/tiered_store.py, cache/base_cache_store.py and cache/cache_factory.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from dociium.cache.base_cache_store import BaseCacheStore
from dociium.cache.cache_factory import create_cache_store
from dociium.cache.disk_tier import DiskTier
from dociium.cache.memory_tier import MemoryTier
from dociium.cache.tiered_store import TieredCacheStore
from dociium.config.settings import Settings


class TestBaseCacheStore:
    def test_cannot_instantiate(self):
        with pytest.raises(TypeError):
            BaseCacheStore()  # type: ignore[abstract]

    def test_has_required_methods(self):
        for method in ["get", "put", "invalidate", "clear", "sweep_expired", "stats"]:
            assert hasattr(BaseCacheStore, method)


class TestTieredCacheStore:
    @pytest.mark.asyncio
    async def test_put_get(self, clock):
        store = TieredCacheStore(MemoryTier(10), clock=clock)
        await store.put("k", b"v", ttl=10)
        assert await store.get("k") == b"v"

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, clock):
        store = TieredCacheStore(MemoryTier(10), clock=clock)
        await store.put("k", b"v", ttl=10)
        clock.advance(10)
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_hits_plus_misses_equals_gets(self, clock):
        store = TieredCacheStore(MemoryTier(2), clock=clock)
        await store.put("a", b"1")
        keys = ["a", "b", "a", "c", "a", "zz"]
        for key in keys:
            await store.get(key)
        stats = store.stats()
        assert stats.hits + stats.misses == len(keys)
        assert stats.hits == 3

    @pytest.mark.asyncio
    async def test_evictions_counted(self, clock):
        store = TieredCacheStore(MemoryTier(2), clock=clock)
        for key in ("a", "b", "c", "d"):
            await store.put(key, b"x")
        stats = store.stats()
        assert stats.evictions == 2
        assert stats.entries == 2

    @pytest.mark.asyncio
    async def test_disk_hit_promoted_to_memory(self, tmp_path: Path, clock):
        disk = DiskTier(tmp_path)
        first = TieredCacheStore(MemoryTier(10), disk, clock=clock)
        await first.put("k", b"persisted", ttl=100)

        second = TieredCacheStore(MemoryTier(10), DiskTier(tmp_path), clock=clock)
        assert await second.get("k") == b"persisted"
        assert second.stats().entries == 1

    @pytest.mark.asyncio
    async def test_expired_disk_entry_is_miss(self, tmp_path: Path, clock):
        store = TieredCacheStore(MemoryTier(10), DiskTier(tmp_path), clock=clock)
        await store.put("k", b"v", ttl=5)
        fresh = TieredCacheStore(MemoryTier(10), DiskTier(tmp_path), clock=clock)
        clock.advance(6)
        assert await fresh.get("k") is None

    @pytest.mark.asyncio
    async def test_sweep_with_injected_clock(self, tmp_path: Path, clock):
        store = TieredCacheStore(MemoryTier(10), DiskTier(tmp_path), clock=clock)
        await store.put("short", b"1", ttl=10)
        await store.put("long", b"2", ttl=1000)
        await store.put("forever", b"3")
        clock.advance(11)
        assert await store.sweep_expired() == 1
        assert await store.get("short") is None
        assert await store.get("long") == b"2"
        assert await store.get("forever") == b"3"

    @pytest.mark.asyncio
    async def test_sweep_memory_only(self, clock):
        store = TieredCacheStore(MemoryTier(10), clock=clock)
        await store.put("a", b"1", ttl=1)
        await store.put("b", b"2", ttl=1)
        clock.advance(2)
        assert await store.sweep_expired() == 2

    @pytest.mark.asyncio
    async def test_invalidate(self, tmp_path: Path, clock):
        store = TieredCacheStore(MemoryTier(10), DiskTier(tmp_path), clock=clock)
        await store.put("k", b"v")
        assert await store.invalidate("k") is True
        assert await store.get("k") is None
        assert await store.invalidate("k") is False

    @pytest.mark.asyncio
    async def test_clear_prefix_spans_tiers(self, tmp_path: Path, clock):
        store = TieredCacheStore(MemoryTier(10), DiskTier(tmp_path), clock=clock)
        await store.put("doc:a:1", b"1")
        await store.put("doc:b:1", b"2")
        assert await store.clear("doc:a:") == 1
        assert await store.get("doc:b:1") == b"2"

    @pytest.mark.asyncio
    async def test_full_clear_resets_metrics(self, clock):
        store = TieredCacheStore(MemoryTier(10), clock=clock)
        await store.put("a", b"1")
        await store.get("a")
        await store.get("b")
        await store.clear()
        stats = store.stats()
        assert (stats.hits, stats.misses, stats.entries) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_disk_write_failure_keeps_memory_value(self, tmp_path: Path, clock):
        disk = DiskTier(tmp_path / "d")
        (tmp_path / "d").rmdir()
        store = TieredCacheStore(MemoryTier(10), disk, clock=clock)
        await store.put("k", b"v")
        assert await store.get("k") == b"v"
        assert store.stats().disk_errors == 1


class TestCacheFactory:
    def test_persistent_store_uses_namespace_dir(self, settings: Settings):
        store = create_cache_store(settings, namespace="docs")
        assert isinstance(store, TieredCacheStore)
        assert store.persistent is True
        assert (settings.cache_root / "docs").is_dir()

    def test_memory_only_when_not_persistent(self, settings: Settings):
        store = create_cache_store(settings, namespace="imports", persistent=False, max_entries=3)
        assert store.persistent is False
        assert not (settings.cache_root / "imports").exists()

    def test_disk_disabled_by_settings(self, tmp_path: Path):
        s = Settings(_env_file=None, cache_dir=tmp_path, cache_enabled_disk=False)
        assert create_cache_store(s).persistent is False

    @pytest.mark.parametrize("namespace", ["", "../x", "a/b"])
    def test_invalid_namespace(self, settings: Settings, namespace):
        with pytest.raises(ValueError):
            create_cache_store(settings, namespace=namespace)
