# tests/unit/api/test_facade.py — v1
"""Tests for api/facade.py — end-to-end over MockTransport and local packages."""

from __future__ import annotations

import logging

import pytest

from dociium.api.facade import DocService
from dociium.cache.memory_tier import MemoryTier
from dociium.cache.tiered_store import TieredCacheStore
from dociium.core.errors import InvalidInputError
from dociium.logging.context import get_context
from dociium.resolver.import_resolver import ImportResolver
from dociium.resolver.locator import PackageLocator


class _ContextSnapshot(logging.Handler):
    """Records the logging context active when each record is emitted."""

    def __init__(self) -> None:
        super().__init__(logging.DEBUG)
        self.contexts: list[dict] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.contexts.append(get_context().as_dict())


@pytest.fixture
def service(settings, make_fetcher, docs_routes, rust_crate, clock) -> DocService:
    fetcher, _ = make_fetcher(docs_routes)
    # import resolver reads the fixture crate instead of the real cargo registry
    locator = PackageLocator(env={"DOC_RUST_PACKAGE_PATH_MYCRATE": str(rust_crate)})
    return DocService.from_settings(
        settings,
        fetcher=fetcher,
        cache=TieredCacheStore(MemoryTier(100), clock=clock),
        resolver=ImportResolver(settings, locator=locator, clock=clock),
    )


class TestDocumentation:
    @pytest.mark.asyncio
    async def test_get_item_latest(self, service):
        record = await service.get_item("demo", "shapes::Bar")
        assert record.path == "demo::shapes::Bar"
        assert record.anchor.file == "demo/shapes.rs"

    @pytest.mark.asyncio
    async def test_search(self, service):
        hits = await service.search("demo", "bar", version="1.0.0")
        assert [h.symbol.name for h in hits[:2]] == ["Bar", "bar_helper"]

    @pytest.mark.asyncio
    async def test_impls_sorted(self, service):
        edges = await service.impls_of_trait("demo", "shapes::Render", "1.0.0")
        assert [e.type_path for e in edges] == ["Vec", "demo::shapes::Bar"]
        by_type = await service.impls_for_type("demo", "shapes::Bar", "1.0.0")
        assert [e.trait_path for e in by_type] == ["demo::shapes::Render"]

    @pytest.mark.asyncio
    async def test_trait_and_type_views_agree(self, service):
        for edge in await service.impls_of_trait("demo", "shapes::Render", "1.0.0"):
            assert edge in await service.impls_for_type("demo", edge.type_path, "1.0.0")
        vec_edges = await service.impls_for_type("demo", "Vec", "1.0.0")
        assert [e.trait_path for e in vec_edges] == ["demo::shapes::Render"]

    @pytest.mark.asyncio
    async def test_get_item_from_cached_document(self, service):
        await service.get_document("demo", "1.0.0")
        record = await service.get_item("demo", "shapes::Bar", "1.0.0")
        assert record.anchor is None
        paged = await service.get_item("demo", "shapes::Bar", "1.0.0", fetch_page=True)
        assert paged.anchor.file == "demo/shapes.rs"

    @pytest.mark.asyncio
    async def test_source_snippet(self, service):
        snippet = await service.source_snippet("demo", "shapes::Bar", context_lines=2)
        assert (snippet.line_start, snippet.line_end) == (8, 26)
        assert snippet.highlighted_line == 10
        assert get_context().as_dict() == {}

    @pytest.mark.asyncio
    async def test_get_document(self, service):
        doc = await service.get_document("demo")
        assert doc.version == "1.0.0"

    @pytest.mark.asyncio
    async def test_context_cleared_after_call(self, service):
        await service.get_document("demo", "1.0.0")
        assert get_context().as_dict() == {}

    @pytest.mark.asyncio
    async def test_context_cleared_after_error(self, service):
        with pytest.raises(InvalidInputError):
            await service.get_item("demo", "not a path")
        assert get_context().as_dict() == {}

    @pytest.mark.asyncio
    async def test_log_records_carry_context(self, service):
        handler = _ContextSnapshot()
        root = logging.getLogger("dociium")
        previous = root.level
        root.addHandler(handler)
        root.setLevel(logging.INFO)
        try:
            await service.get_document("demo", "1.0.0")
        finally:
            root.removeHandler(handler)
            root.setLevel(previous)
        assert handler.contexts
        assert handler.contexts[-1]["operation"] == "get_document"
        assert handler.contexts[-1]["package"] == "demo"
        assert handler.contexts[-1]["version"] == "1.0.0"


class TestImports:
    @pytest.mark.asyncio
    async def test_resolve_import(self, service):
        result = await service.resolve_import("rust", "mycrate", "use mycrate::util::Helper;")
        assert result.is_resolved
        assert result.line == 3

    @pytest.mark.asyncio
    async def test_resolve_imports_block(self, service):
        results = await service.resolve_imports(
            "rust", "mycrate", "use mycrate::Thing;\nuse mycrate::util::*;\n"
        )
        assert [r.status for r in results] == ["resolved", "unresolved"]

    @pytest.mark.asyncio
    async def test_get_implementation(self, service):
        ctx = await service.get_implementation("rust", "mycrate", "src/util.rs#Helper")
        assert ctx.implementation == "pub struct Helper;"
        assert ctx.item_name == "Helper"

    @pytest.mark.asyncio
    async def test_get_implementation_needs_item_name(self, service):
        with pytest.raises(InvalidInputError):
            await service.get_implementation("rust", "mycrate", "src/util.rs")
        assert get_context().as_dict() == {}


class TestRegistryAndAdmin:
    @pytest.mark.asyncio
    async def test_crate_info(self, service):
        info = await service.crate_info("demo")
        assert info.latest_version == "1.0.0"
        assert info.versions[0].version == "1.1.0-rc.1"

    @pytest.mark.asyncio
    async def test_crate_info_validates_name(self, service):
        with pytest.raises(InvalidInputError):
            await service.crate_info("../etc")

    @pytest.mark.asyncio
    async def test_search_registry_validates(self, service):
        with pytest.raises(InvalidInputError):
            await service.search_registry("", 10)
        with pytest.raises(InvalidInputError):
            await service.search_registry("serde", 0)

    @pytest.mark.asyncio
    async def test_cache_stats_and_clear(self, service):
        await service.get_document("demo", "1.0.0")
        await service.resolve_import("rust", "mycrate", "use mycrate::top_level;")
        stats = service.cache_stats()
        assert set(stats) == {"docs", "imports"}
        assert stats["docs"]["entries"] >= 1
        assert stats["imports"]["entries"] == 1

        assert await service.clear("demo@1.0.0") >= 1
        assert await service.clear() >= 1
        assert service.cache_stats()["imports"]["entries"] == 0

    @pytest.mark.asyncio
    async def test_sweep(self, service, clock, settings):
        await service.resolve_import("rust", "mycrate", "use mycrate::top_level;")
        clock.advance(settings.import_cache_ttl_s + 1)
        assert await service.sweep_expired() == 1

    @pytest.mark.asyncio
    async def test_async_context_manager(self, service):
        async with service as svc:
            assert svc.engine is not None
