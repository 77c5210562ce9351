# src/cache/models.py — v1
"""Cache domain models: CacheEntry and CacheMetrics."""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field, computed_field


class CacheEntry(BaseModel):
    """One stored value. Entries are replaced, never mutated in place."""

    model_config = ConfigDict(frozen=True)

    key: str
    payload: bytes
    created_at: float = Field(default_factory=time.time)
    ttl: float | None = None
    compressed: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def size(self) -> int:
        return len(self.payload)

    def expires_at(self) -> float | None:
        return None if self.ttl is None else self.created_at + self.ttl

    def is_expired(self, now: float | None = None) -> bool:
        if self.ttl is None:
            return False
        return (now if now is not None else time.time()) >= self.created_at + self.ttl


class CacheMetrics(BaseModel):
    """Process-lifetime counters, reset only by a full clear."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    bytes_stored: int = 0
    entries: int = 0
    disk_errors: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @computed_field  # type: ignore[prop-decorator]
    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0
