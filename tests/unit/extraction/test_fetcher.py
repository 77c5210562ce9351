# tests/unit/extraction/test_fetcher.py — v1
"""Tests for extraction/fetcher.py against httpx.MockTransport."""

from __future__ import annotations

import pytest

from dociium.core.errors import NotFoundError, TransientError


class TestHttpFetcher:
    @pytest.mark.asyncio
    async def test_get_text(self, make_fetcher):
        fetcher, transport = make_fetcher({"https://docs.rs/a": "hello"})
        assert await fetcher.get_text("https://docs.rs/a") == "hello"
        assert transport.calls == ["https://docs.rs/a"]

    @pytest.mark.asyncio
    async def test_get_json_with_params(self, make_fetcher):
        fetcher, transport = make_fetcher({"https://crates.io/api/v1/crates": {"crates": []}})
        data = await fetcher.get_json("https://crates.io/api/v1/crates", {"q": "serde"})
        assert data == {"crates": []}
        assert transport.calls == ["https://crates.io/api/v1/crates?q=serde"]

    @pytest.mark.asyncio
    async def test_404_is_not_found_without_retry(self, make_fetcher):
        fetcher, transport = make_fetcher({})
        with pytest.raises(NotFoundError):
            await fetcher.get_text("https://docs.rs/missing")
        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_5xx_retried_then_transient(self, make_fetcher):
        fetcher, transport = make_fetcher({"https://docs.rs/down": 503})
        with pytest.raises(TransientError):
            await fetcher.get_text("https://docs.rs/down")
        # settings fixture allows one retry
        assert len(transport.calls) == 2

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self, make_fetcher):
        fetcher, _ = make_fetcher({"https://docs.rs/a": "x"})
        async with fetcher:
            await fetcher.get_text("https://docs.rs/a")
        assert await fetcher.get_text("https://docs.rs/a") == "x"
