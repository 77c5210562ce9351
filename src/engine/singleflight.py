# src/engine/singleflight.py — v1
"""Coalesce concurrent calls for the same key into one execution."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from dociium.core.errors import TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight:
    """Map of key -> in-flight future, guarded by an asyncio lock.

    The first caller for a key (the leader) runs the work; callers arriving
    while it runs await the same future. The slot is released when the work
    finishes, fails, is cancelled or exceeds ``timeout``, so the next caller
    after that starts fresh. A cancelled leader hands its followers a
    TransientError; only the cancelled task itself sees CancelledError.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout
        self._lock = asyncio.Lock()
        self._inflight: dict[str, asyncio.Future[Any]] = {}

    def inflight(self) -> int:
        return len(self._inflight)

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        async with self._lock:
            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = asyncio.get_running_loop().create_future()
                self._inflight[key] = future

        assert future is not None
        if not leader:
            logger.debug("singleflight: joining in-flight call for %s", key)
            # shield: a cancelled follower must not cancel the shared result
            return await asyncio.shield(future)

        try:
            if self._timeout is not None:
                result = await asyncio.wait_for(fn(), timeout=self._timeout)
            else:
                result = await fn()
        except asyncio.CancelledError:
            if not future.done():
                future.set_exception(TransientError(f"{key}: leading request was cancelled", retry_after=0.0))
                future.exception()
            raise
        except Exception as exc:
            if not future.done():
                future.set_exception(exc)
                # followers may not exist; avoid "exception never retrieved"
                future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            # synchronous: nothing can interleave between the check and the delete
            if self._inflight.get(key) is future:
                del self._inflight[key]
