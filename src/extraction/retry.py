# src/extraction/retry.py — v1
"""Retry policy for upstream HTTP calls with exponential backoff.

Timeouts, transport failures and 5xx/429 are retried; any other 4xx is
final and surfaces as NotFoundError.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from dociium.core.errors import NotFoundError, TransientError

logger = logging.getLogger(__name__)

RETRYABLE = frozenset({"timeout", "network", "server_error", "rate_limit"})


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration shared by all HTTP calls of a fetcher."""

    max_retries: int = 2
    base_delay_s: float = 0.5
    backoff_factor: float = 2.0
    max_delay_s: float = 10.0
    jitter: bool = True


def classify_error(error: Exception) -> str:
    """Classify an httpx exception into a retry error type."""
    if isinstance(error, httpx.TimeoutException):
        return "timeout"
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status == 429:
            return "rate_limit"
        if status >= 500:
            return "server_error"
        if status == 404 or status == 410:
            return "not_found"
        return "client_error"
    if isinstance(error, httpx.TransportError):
        return "network"
    return "unknown"


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given attempt (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return min(delay, config.max_delay_s)


def _retry_after_header(error: Exception) -> float | None:
    if not isinstance(error, httpx.HTTPStatusError):
        return None
    value = error.response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    label: str = "request",
    config: RetryConfig | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs: Any,
) -> Any:
    """Execute an async HTTP call with retry logic.

    Raises:
        NotFoundError: Upstream answered 4xx (never retried).
        TransientError: Retryable failures outlived the retry budget.
    """
    config = config or RetryConfig()
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            error_type = "timeout" if isinstance(e, asyncio.TimeoutError) else classify_error(e)
            attempts += 1

            if error_type in ("not_found", "client_error"):
                raise NotFoundError(f"{label}: not found upstream ({e})") from e

            if error_type not in RETRYABLE:
                raise TransientError(f"{label}: {e}") from e

            if attempts > config.max_retries:
                retry_after = _retry_after_header(e) or compute_delay(config, attempts - 1)
                raise TransientError(
                    f"{label}: {error_type} after {attempts} attempts ({e})",
                    retry_after=round(retry_after, 2),
                ) from e

            delay = min(
                _retry_after_header(e) or compute_delay(config, attempts - 1),
                config.max_delay_s,
            )
            logger.warning(
                "%s - %s (attempt %d/%d), retrying in %.1fs",
                label, error_type, attempts, config.max_retries, delay,
            )
            await sleep(delay)
