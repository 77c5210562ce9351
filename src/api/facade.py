# src/api/facade.py — v1
"""Public API facade: single entry point for documentation and import lookups.

Usage:
    from dociium.api.facade import DocService

    async with DocService.from_settings() as service:
        item = await service.get_item("serde", "Serializer")
        snippet = await service.source_snippet("serde", "Serializer", context_lines=3)
        hits = await service.search("tokio", "mutex", kinds=["struct"])
        res = await service.resolve_import("python", "requests", "from requests import Session")

Every public call tags its log records with an operation name and request
id, plus the package/version it is about.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from dociium.cache.base_cache_store import BaseCacheStore
from dociium.cache.cache_factory import create_cache_store
from dociium.config.settings import Settings
from dociium.core.models import (
    CrateInfo,
    CrateSummary,
    ImplEdge,
    ImplementationContext,
    ImportResolution,
    NormalizedDocument,
    SearchHit,
    SourceSnippet,
    SymbolRecord,
)
from dociium.engine.doc_engine import DocEngine
from dociium.engine.validation import validate_limit, validate_package, validate_query
from dociium.extraction.base_extractor import BaseDocExtractor
from dociium.extraction.extractor_factory import create_extractor
from dociium.extraction.fetcher import HttpFetcher
from dociium.logging.context import clear_context, set_package_context, set_request_context
from dociium.registry.client import RegistryClient
from dociium.resolver.import_resolver import ImportResolver

logger = logging.getLogger(__name__)


class DocService:
    """Wires engine, registry client and import resolver together.

    Components are injected so tests can swap any of them; ``from_settings``
    builds the production wiring with one shared HTTP client.
    """

    def __init__(
        self,
        engine: DocEngine,
        registry: RegistryClient,
        resolver: ImportResolver,
        extractor: BaseDocExtractor | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or Settings(_env_file=None)  # type: ignore[call-arg]
        self._engine = engine
        self._registry = registry
        self._resolver = resolver
        self._extractor = extractor

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        source: str = "docs.rs",
        fetcher: HttpFetcher | None = None,
        cache: BaseCacheStore | None = None,
        resolver: ImportResolver | None = None,
    ) -> DocService:
        """Production wiring: docs cache on disk, import cache in memory."""
        settings = settings or Settings()
        fetcher = fetcher or HttpFetcher(settings)
        extractor = create_extractor(source, settings=settings, fetcher=fetcher)
        registry = RegistryClient(settings, fetcher=fetcher)
        engine = DocEngine(
            extractor,
            registry,
            cache or create_cache_store(settings, namespace="docs"),
            settings=settings,
        )
        return cls(
            engine,
            registry,
            resolver or ImportResolver(settings),
            extractor=extractor,
            settings=settings,
        )

    @property
    def engine(self) -> DocEngine:
        return self._engine

    # --- documentation ---

    async def get_document(self, package: str, version: str | None = None) -> NormalizedDocument:
        self._begin("get_document", package, version)
        try:
            return await self._engine.get_document(package, version)
        finally:
            clear_context()

    async def get_item(
        self,
        package: str,
        path: str,
        version: str | None = None,
        fetch_page: bool = False,
    ) -> SymbolRecord:
        self._begin("get_item", package, version)
        try:
            return await self._engine.get_item(package, path, version, fetch_page=fetch_page)
        finally:
            clear_context()

    async def source_snippet(
        self,
        package: str,
        path: str,
        context_lines: int = 5,
        version: str | None = None,
    ) -> SourceSnippet:
        self._begin("source_snippet", package, version)
        try:
            return await self._engine.source_snippet(package, path, context_lines, version)
        finally:
            clear_context()

    async def search(
        self,
        package: str,
        query: str,
        kinds: list[str] | None = None,
        limit: int = 10,
        version: str | None = None,
    ) -> list[SearchHit]:
        self._begin("search", package, version)
        try:
            return await self._engine.search(package, query, kinds=kinds, limit=limit, version=version)
        finally:
            clear_context()

    async def impls_of_trait(
        self, package: str, trait_path: str, version: str | None = None
    ) -> list[ImplEdge]:
        self._begin("impls_of_trait", package, version)
        try:
            edges = await self._engine.impls_of_trait(package, trait_path, version)
            return sorted(edges, key=_edge_order)
        finally:
            clear_context()

    async def impls_for_type(
        self, package: str, type_path: str, version: str | None = None
    ) -> list[ImplEdge]:
        self._begin("impls_for_type", package, version)
        try:
            edges = await self._engine.impls_for_type(package, type_path, version)
            return sorted(edges, key=_edge_order)
        finally:
            clear_context()

    # --- imports ---

    async def resolve_import(
        self,
        language: str,
        package: str,
        import_text: str,
        context_path: str | Path | None = None,
    ) -> ImportResolution:
        self._begin("resolve_import", package)
        try:
            return await self._resolver.resolve(language, package, import_text, context_path)
        finally:
            clear_context()

    async def resolve_imports(
        self,
        language: str,
        package: str,
        code: str,
        context_path: str | Path | None = None,
    ) -> list[ImportResolution]:
        """Resolve every import statement of a code block."""
        self._begin("resolve_imports", package)
        try:
            return await self._resolver.resolve_block(language, package, code, context_path)
        finally:
            clear_context()

    async def get_implementation(
        self,
        language: str,
        package: str,
        item_path: str,
        context_path: str | Path | None = None,
    ) -> ImplementationContext:
        """Definition and docs of ``file#name`` in a locally installed package."""
        self._begin("get_implementation", package)
        try:
            return await self._resolver.get_implementation(language, package, item_path, context_path)
        finally:
            clear_context()

    # --- registry ---

    async def crate_info(self, package: str) -> CrateInfo:
        self._begin("crate_info", package)
        try:
            return await self._registry.crate_info(validate_package(package))
        finally:
            clear_context()

    async def search_registry(self, query: str, limit: int = 10) -> list[CrateSummary]:
        set_request_context("search_registry")
        try:
            query = validate_query(query)
            limit = validate_limit(limit, self._settings.max_search_limit)
            return await self._registry.search_registry(query, limit)
        finally:
            clear_context()

    # --- cache administration ---

    def cache_stats(self) -> dict[str, Any]:
        return {
            "docs": self._engine.cache_stats().model_dump(),
            "imports": self._resolver.cache_stats().model_dump(),
        }

    async def clear(self, scope: str | None = None) -> int:
        """Clear cached docs for everything, ``pkg`` or ``pkg@version``.

        A full clear also drops memoized import resolutions.
        """
        set_request_context("clear")
        try:
            removed = await self._engine.clear(scope)
            if scope is None:
                removed += await self._resolver.clear()
            logger.info("Cleared %d cache entries (scope=%s)", removed, scope or "all")
            return removed
        finally:
            clear_context()

    async def sweep_expired(self) -> int:
        set_request_context("sweep_expired")
        try:
            removed = await self._engine.sweep_expired() + await self._resolver.sweep_expired()
            logger.info("Swept %d expired cache entries", removed)
            return removed
        finally:
            clear_context()

    async def aclose(self) -> None:
        if self._extractor is not None:
            await self._extractor.aclose()
        await self._registry.aclose()

    async def __aenter__(self) -> DocService:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    # --- helpers ---

    @staticmethod
    def _begin(operation: str, package: str, version: str | None = None) -> None:
        set_request_context(operation)
        set_package_context(package, version)


def _edge_order(edge: ImplEdge) -> tuple[str, str, tuple[str, ...]]:
    return (edge.trait_path, edge.type_path, edge.generics)
