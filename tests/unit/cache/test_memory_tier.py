# tests/unit/cache/test_memory_tier.py — v1
"""Tests for cache/memory_tier.py and cache/models.py."""

from __future__ import annotations

import pytest

from dociium.cache.memory_tier import MemoryTier
from dociium.cache.models import CacheEntry, CacheMetrics


def _entry(key: str, created_at: float = 100.0, ttl: float | None = None) -> CacheEntry:
    return CacheEntry(key=key, payload=key.encode(), created_at=created_at, ttl=ttl)


class TestCacheModels:
    def test_entry_expiry(self):
        e = _entry("a", created_at=100.0, ttl=10)
        assert e.expires_at() == 110.0
        assert not e.is_expired(109.9)
        assert e.is_expired(110.0)

    def test_entry_without_ttl_never_expires(self):
        assert not _entry("a").is_expired(10**12)

    def test_metrics_derived_fields(self):
        m = CacheMetrics(hits=3, misses=1)
        assert m.total_requests == 4
        assert m.hit_rate == 0.75
        assert CacheMetrics().hit_rate == 0.0


class TestMemoryTier:
    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            MemoryTier(0)

    def test_lru_eviction_order(self):
        tier = MemoryTier(2)
        tier.put(_entry("a"))
        tier.put(_entry("b"))
        assert tier.get("a", now=100.0) is not None  # a becomes most recent
        evicted = tier.put(_entry("c"))
        assert evicted == 1
        assert "b" not in tier
        assert tier.keys() == ["a", "c"]

    def test_expired_entry_dropped_on_read(self):
        tier = MemoryTier(4)
        tier.put(_entry("a", created_at=100.0, ttl=5))
        assert tier.get("a", now=106.0) is None
        assert len(tier) == 0

    def test_replace_does_not_evict(self):
        tier = MemoryTier(1)
        tier.put(_entry("a"))
        assert tier.put(_entry("a", created_at=200.0)) == 0
        assert tier.get("a", now=200.0).created_at == 200.0

    def test_clear_by_prefix(self):
        tier = MemoryTier(10)
        for k in ("doc:serde:1", "doc:serde:2", "doc:tokio:1"):
            tier.put(_entry(k))
        assert tier.clear("doc:serde:") == {"doc:serde:1", "doc:serde:2"}
        assert tier.keys() == ["doc:tokio:1"]

    def test_sweep(self):
        tier = MemoryTier(10)
        tier.put(_entry("old", created_at=0.0, ttl=10))
        tier.put(_entry("fresh", created_at=95.0, ttl=10))
        tier.put(_entry("forever"))
        assert tier.sweep(now=100.0) == 1
        assert sorted(tier.keys()) == ["forever", "fresh"]

    def test_total_bytes(self):
        tier = MemoryTier(10)
        tier.put(_entry("abc"))
        tier.put(_entry("de"))
        assert tier.total_bytes() == 5
