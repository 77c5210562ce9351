# tests/unit/logging/test_context.py — v1
"""Tests for logging/context.py — contextual logging variables."""

from __future__ import annotations

import asyncio

import pytest

from dociium.logging.context import (
    clear_context,
    get_context,
    set_package_context,
    set_request_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.request_id is None
        assert ctx.operation is None
        assert ctx.package is None

    def test_set_request_context_generates_id(self):
        rid = set_request_context("search")
        ctx = get_context()
        assert ctx.operation == "search"
        assert ctx.request_id == rid
        assert len(rid) == 12

    def test_explicit_request_id(self):
        set_request_context("get_item", request_id="abc")
        assert get_context().request_id == "abc"

    def test_set_package_context(self):
        set_package_context("serde", "1.0.200")
        ctx = get_context()
        assert ctx.package == "serde"
        assert ctx.version == "1.0.200"

    def test_as_dict_filters_none(self):
        set_package_context("serde")
        d = get_context().as_dict()
        assert d == {"package": "serde"}

    def test_clear(self):
        set_request_context("search")
        set_package_context("serde", "1.0.0")
        clear_context()
        assert get_context().as_dict() == {}

    @pytest.mark.asyncio
    async def test_tasks_do_not_share_context(self):
        async def worker(name: str) -> str | None:
            set_package_context(name)
            await asyncio.sleep(0)
            return get_context().package

        results = await asyncio.gather(worker("a"), worker("b"))
        assert results == ["a", "b"]
