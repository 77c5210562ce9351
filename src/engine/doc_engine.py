# src/engine/doc_engine.py — v1
"""Documentation engine: cache-first orchestration of the extractor.

Cache keys (all in the engine's private store)::

    latest:{package}                    resolved "latest" version
    doc:{package}:{version}             NormalizedDocument JSON
    item:{package}:{version}:{path}     SymbolRecord JSON
    src:{package}:{version}:{file}      source file text
    neg:doc:{package}:{version}         cached failure, short TTL
    neg:item:{package}:{version}:{path}
    neg:src:{package}:{version}:{file}

Versions are always resolved before they reach a key, so "latest" never
becomes a cache key component.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import OrderedDict
from typing import Awaitable, Callable, TypeVar

from pydantic import ValidationError

from dociium.cache.base_cache_store import BaseCacheStore
from dociium.cache.models import CacheMetrics
from dociium.config.settings import Settings
from dociium.core.errors import (
    DociiumError,
    NotFoundError,
    ParseDriftError,
    TransientError,
)
from dociium.core.models import (
    ImplEdge,
    NormalizedDocument,
    SearchHit,
    SourceSnippet,
    SymbolKind,
    SymbolRecord,
)
from dociium.engine.singleflight import SingleFlight
from dociium.engine.validation import (
    validate_context_lines,
    validate_limit,
    validate_package,
    validate_path,
    validate_query,
    validate_type_path,
    validate_version,
)
from dociium.extraction.base_extractor import BaseDocExtractor
from dociium.extraction.decoders import crate_keys
from dociium.extraction.source_page import slice_lines
from dociium.index.document_index import DocumentIndex
from dociium.registry.client import RegistryClient

logger = logging.getLogger(__name__)

_INDEX_MEMO_SIZE = 16

T = TypeVar("T")


def doc_key(package: str, version: str) -> str:
    return f"doc:{package}:{version}"


def item_key(package: str, version: str, path: str) -> str:
    return f"item:{package}:{version}:{path}"


def source_key(package: str, version: str, file: str) -> str:
    return f"src:{package}:{version}:{file}"


class DocEngine:
    """Cache + singleflight + negative caching around a BaseDocExtractor."""

    def __init__(
        self,
        extractor: BaseDocExtractor,
        registry: RegistryClient,
        cache: BaseCacheStore,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or Settings(_env_file=None)  # type: ignore[call-arg]
        self._extractor = extractor
        self._registry = registry
        self._cache = cache
        self._flight = SingleFlight(timeout=self._settings.fetch_timeout_s)
        self._indexes: OrderedDict[tuple[str, str], DocumentIndex] = OrderedDict()

    # --- version resolution ---

    async def resolve_version(self, package: str, version: str | None = None) -> str:
        """Concrete version for package; None/"latest"/"*" go through the registry."""
        package = validate_package(package)
        version = validate_version(version)
        if version not in (None, "latest", "*"):
            return version

        key = f"latest:{package}"
        cached = await self._cache.get(key)
        if cached is not None:
            return cached.decode("utf-8")

        async def lookup() -> str:
            resolved = await self._registry.resolve_latest_version(package)
            await self._cache.put(key, resolved.encode("utf-8"), ttl=self._settings.latest_version_ttl_s)
            logger.info("Resolved %s@latest -> %s", package, resolved)
            return resolved

        return await self._run(key, lookup)

    # --- documents ---

    async def get_document(self, package: str, version: str | None = None) -> NormalizedDocument:
        package = validate_package(package)
        version = await self.resolve_version(package, version)
        key = doc_key(package, version)

        async def load() -> NormalizedDocument:
            cached = await self._read_document(key)
            if cached is not None:
                return cached
            await self._raise_if_negative(f"neg:{key}")
            try:
                doc = await self._extractor.fetch(package, version)
            except (NotFoundError, ParseDriftError) as e:
                await self._store_negative(f"neg:{key}", e)
                raise
            await self._cache.put(
                key, doc.model_dump_json().encode("utf-8"), ttl=self._settings.doc_ttl_s
            )
            logger.info(
                "Cached %s@%s: %d symbols, %d impls, completeness %.2f",
                package, version, len(doc.symbols), len(doc.impls), doc.completeness,
            )
            return doc

        return await self._run(key, load)

    async def _read_document(self, key: str) -> NormalizedDocument | None:
        raw = await self._cache.get(key)
        if raw is None:
            return None
        try:
            return NormalizedDocument.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Dropping undecodable cached document %s: %s", key, e)
            await self._cache.invalidate(key)
            return None

    # --- items ---

    async def get_item(
        self,
        package: str,
        path: str,
        version: str | None = None,
        fetch_page: bool = False,
    ) -> SymbolRecord:
        """One item. A cached document that already indexes ``path`` answers
        without touching the network unless ``fetch_page`` asks for the item
        page (source anchors and full docs only live there)."""
        package = validate_package(package)
        path = self._qualify(package, validate_path(path))
        version = await self.resolve_version(package, version)
        key = item_key(package, version, path)

        async def load() -> SymbolRecord:
            raw = await self._cache.get(key)
            if raw is not None:
                try:
                    return SymbolRecord.model_validate_json(raw)
                except ValidationError as e:
                    logger.warning("Dropping undecodable cached item %s: %s", key, e)

            doc = await self._read_document(doc_key(package, version))
            indexed = doc.find(path) if doc is not None else None
            if indexed is not None and not fetch_page:
                return indexed
            await self._raise_if_negative(f"neg:{key}")

            # the indexed kind saves probes
            hint = indexed.kind if indexed is not None and indexed.kind is not SymbolKind.UNKNOWN else None

            try:
                record = await self._extractor.fetch_item(package, version, path, kind_hint=hint)
            except (NotFoundError, ParseDriftError) as e:
                if indexed is None:
                    await self._store_negative(f"neg:{key}", e)
                    raise
                logger.info("%s: item page unavailable (%s), serving index record", path, e.kind)
                record = indexed
            else:
                if indexed is not None and not record.doc and indexed.doc:
                    record = record.model_copy(update={"doc": indexed.doc})

            await self._cache.put(
                key, record.model_dump_json().encode("utf-8"), ttl=self._settings.doc_ttl_s
            )
            return record

        return await self._run(f"{key}#page" if fetch_page else key, load)

    def _qualify(self, package: str, path: str) -> str:
        crate = crate_keys(package)[-1]
        head = path.split("::", 1)[0]
        if head in crate_keys(package):
            return crate + path[len(head):]
        return f"{crate}::{path}"

    # --- source ---

    async def source_snippet(
        self,
        package: str,
        path: str,
        context_lines: int = 5,
        version: str | None = None,
    ) -> SourceSnippet:
        """The item's source lines widened by ``context_lines`` on each side."""
        context_lines = validate_context_lines(context_lines)
        record = await self.get_item(package, path, version, fetch_page=True)
        anchor = record.anchor
        if anchor is None or anchor.start_line is None:
            raise NotFoundError(f"{record.path}: no source location in the documentation")

        version = await self.resolve_version(package, version)
        lines = await self._source_lines(package, version, anchor.file)
        end = anchor.end_line if anchor.end_line is not None else anchor.start_line
        first, last, code = slice_lines(lines, anchor.start_line, end, context_lines)
        return SourceSnippet(
            code=code,
            file=anchor.file,
            line_start=first,
            line_end=last,
            context_lines=context_lines,
            highlighted_line=anchor.start_line,
            language="rust",
        )

    async def _source_lines(self, package: str, version: str, file: str) -> list[str]:
        key = source_key(package, version, file)

        async def load() -> list[str]:
            raw = await self._cache.get(key)
            if raw is not None:
                return raw.decode("utf-8").split("\n")
            await self._raise_if_negative(f"neg:{key}")
            try:
                lines = await self._extractor.fetch_source(package, version, file)
            except (NotFoundError, ParseDriftError) as e:
                await self._store_negative(f"neg:{key}", e)
                raise
            await self._cache.put(key, "\n".join(lines).encode("utf-8"), ttl=self._settings.doc_ttl_s)
            return lines

        return await self._run(key, load)

    # --- index ---

    async def get_index(self, package: str, version: str | None = None) -> DocumentIndex:
        """Index for package@version, memoized while its document stays cached."""
        package = validate_package(package)
        version = await self.resolve_version(package, version)
        memo_key = (package, version)
        index = self._indexes.get(memo_key)
        if index is not None and await self._cache.get(doc_key(package, version)) is not None:
            self._indexes.move_to_end(memo_key)
            return index

        doc = await self.get_document(package, version)
        if index is not None and index.content_hash == doc.content_hash:
            # document was refetched but did not change
            self._indexes.move_to_end(memo_key)
            return index

        index = DocumentIndex.build(doc)
        self._indexes[memo_key] = index
        self._indexes.move_to_end(memo_key)
        while len(self._indexes) > _INDEX_MEMO_SIZE:
            self._indexes.popitem(last=False)
        logger.debug("Built index for %s@%s (%s)", doc.package, doc.version, index.content_hash)
        return index

    async def search(
        self,
        package: str,
        query: str,
        kinds: list[str] | None = None,
        limit: int = 10,
        version: str | None = None,
    ) -> list[SearchHit]:
        query = validate_query(query)
        limit = validate_limit(limit, self._settings.max_search_limit)
        index = await self.get_index(package, version)
        return index.symbols.search_scored(query, kinds, limit)

    async def impls_of_trait(
        self, package: str, trait_path: str, version: str | None = None
    ) -> frozenset[ImplEdge]:
        trait_path = validate_type_path(trait_path)
        index = await self.get_index(package, version)
        return self._lookup(package, trait_path, index.relations.impls_of_trait)

    async def impls_for_type(
        self, package: str, type_path: str, version: str | None = None
    ) -> frozenset[ImplEdge]:
        # Edges keep the path rustdoc printed: `Vec`, `alloc::vec::Vec`, `T` as
        # well as crate-qualified local types, so try it verbatim first.
        type_path = validate_type_path(type_path)
        index = await self.get_index(package, version)
        return self._lookup(package, type_path, index.relations.impls_for_type)

    def _lookup(
        self, package: str, path: str, find: Callable[[str], frozenset[ImplEdge]]
    ) -> frozenset[ImplEdge]:
        found = find(path)
        if found:
            return found
        qualified = self._qualify(package, path)
        if qualified == path:
            return found
        return find(qualified)

    # --- cache administration ---

    def cache_stats(self) -> CacheMetrics:
        return self._cache.stats()

    async def clear(self, scope: str | None = None) -> int:
        """Clear everything, one package ("serde") or one version ("serde@1.0.0")."""
        if scope is None:
            self._indexes.clear()
            return await self._cache.clear()

        package, _, version = scope.partition("@")
        package = validate_package(package)
        version = validate_version(version)
        if version is None:
            self._drop_indexes(package)
            removed = 0
            for prefix in (f"doc:{package}:", f"item:{package}:", f"src:{package}:",
                           f"neg:doc:{package}:", f"neg:item:{package}:", f"neg:src:{package}:"):
                removed += await self._cache.clear(prefix)
            removed += int(await self._cache.invalidate(f"latest:{package}"))
            return removed

        self._drop_indexes(package, version)
        removed = 0
        for key in (doc_key(package, version), f"neg:{doc_key(package, version)}"):
            removed += int(await self._cache.invalidate(key))
        for prefix in (f"item:{package}:{version}:", f"src:{package}:{version}:",
                       f"neg:item:{package}:{version}:", f"neg:src:{package}:{version}:"):
            removed += await self._cache.clear(prefix)
        return removed

    def _drop_indexes(self, package: str, version: str | None = None) -> None:
        for memo_key in list(self._indexes):
            if memo_key[0] == package and (version is None or memo_key[1] == version):
                del self._indexes[memo_key]

    async def sweep_expired(self) -> int:
        return await self._cache.sweep_expired()

    # --- helpers ---

    async def _run(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await self._flight.do(key, fn)
        except asyncio.TimeoutError as e:
            raise TransientError(
                f"{key}: gave up after {self._settings.fetch_timeout_s:.0f}s",
                retry_after=self._settings.http_backoff_base_s * 4,
            ) from e

    async def _raise_if_negative(self, key: str) -> None:
        raw = await self._cache.get(key)
        if raw is None:
            return
        try:
            data = json.loads(raw)
        except ValueError:
            await self._cache.invalidate(key)
            return
        message = data.get("message", key)
        if data.get("kind") == ParseDriftError.kind:
            raise ParseDriftError(message, attempted=data.get("attempted", []))
        raise NotFoundError(message)

    async def _store_negative(self, key: str, error: DociiumError) -> None:
        payload = json.dumps(error.to_dict()).encode("utf-8")
        await self._cache.put(key, payload, ttl=self._settings.negative_ttl_s)
        logger.info("Negative-cached %s (%s) for %ds", key, error.kind, self._settings.negative_ttl_s)
