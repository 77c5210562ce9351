# src/extraction/fetcher.py — v1
"""HTTP fetcher for the documentation host, with bounded timeout and retry."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from dociium.config.settings import Settings
from dociium.extraction.retry import RetryConfig, with_retry

logger = logging.getLogger(__name__)


class HttpFetcher:
    """Thin httpx wrapper returning response text.

    The client can be injected (tests pass one built on httpx.MockTransport);
    otherwise one is created lazily and closed by ``aclose``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings or Settings(_env_file=None)  # type: ignore[call-arg]
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self._retry = RetryConfig(
            max_retries=self._settings.http_max_retries,
            base_delay_s=self._settings.http_backoff_base_s,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.http_timeout_s,
                follow_redirects=True,
                headers={"User-Agent": self._settings.user_agent},
            )
        return self._client

    async def get_text(self, url: str) -> str:
        """GET url and return the decoded body.

        Raises:
            NotFoundError: 4xx response.
            TransientError: timeouts / 5xx after retries.
        """
        return await with_retry(
            self._get_once, url, label=url, config=self._retry, sleep=self._sleep
        )

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        return await with_retry(
            self._get_json_once, url, params,
            label=url, config=self._retry, sleep=self._sleep,
        )

    async def _get_once(self, url: str) -> str:
        response = await self._get_client().get(url)
        response.raise_for_status()
        logger.debug("GET %s -> %d (%d bytes)", url, response.status_code, len(response.content))
        return response.text

    async def _get_json_once(self, url: str, params: dict[str, Any] | None) -> Any:
        response = await self._get_client().get(url, params=params)
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpFetcher:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
