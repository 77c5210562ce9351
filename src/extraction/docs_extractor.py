# src/extraction/docs_extractor.py — v1
"""docs.rs extractor: search index, item pages and trait implementors.

Layout of a documentation bundle on the host::

    {base}/{crate}/{version}/search-index.js              (older builds)
    {base}/{crate}/{version}/{crate_}/index.html          (names the hashed index)
    {base}/{crate}/{version}/{crate_}/{mod}/{prefix}.{Name}.html
    {base}/{crate}/{version}/trait.impl/{mod}/trait.{Name}.js
    {base}/{crate}/{version}/implementors/{mod}/trait.{Name}.js
    {base}/{crate}/{version}/src/{crate_}/{file}.rs.html
"""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from dociium.config.settings import Settings
from dociium.core.errors import InvalidInputError, NotFoundError, ParseDriftError, TransientError
from dociium.core.models import ImplEdge, NormalizedDocument, SymbolKind, SymbolRecord
from dociium.extraction.base_extractor import BaseDocExtractor
from dociium.extraction.decoders import crate_keys, decode_search_index
from dociium.extraction.fetcher import HttpFetcher
from dociium.extraction.html_item import parse_item_page
from dociium.extraction.implementors import parse_implementors
from dociium.extraction.source_page import parse_source_page

logger = logging.getLogger(__name__)

# Probe order when the item kind is unknown.
PROBE_PREFIXES: list[tuple[str, SymbolKind]] = [
    ("struct", SymbolKind.STRUCT),
    ("fn", SymbolKind.FUNCTION),
    ("trait", SymbolKind.TRAIT),
    ("enum", SymbolKind.ENUM),
    ("type", SymbolKind.TYPE_ALIAS),
    ("macro", SymbolKind.MACRO),
    ("constant", SymbolKind.CONSTANT),
    ("static", SymbolKind.STATIC),
    ("mod", SymbolKind.MODULE),
    ("union", SymbolKind.UNION),
    ("derive", SymbolKind.DERIVE_MACRO),
    ("attr", SymbolKind.ATTRIBUTE_MACRO),
]


class DocsRsExtractor(BaseDocExtractor):
    """Extractor for rustdoc output hosted on docs.rs."""

    def __init__(
        self,
        settings: Settings | None = None,
        fetcher: HttpFetcher | None = None,
    ) -> None:
        self._settings = settings or Settings(_env_file=None)  # type: ignore[call-arg]
        self._fetcher = fetcher or HttpFetcher(self._settings)
        self._base = self._settings.docs_base_url

    @property
    def name(self) -> str:
        return "docs.rs"

    # --- whole document ---

    async def fetch(self, package: str, version: str) -> NormalizedDocument:
        text = await self._fetch_search_index(package, version)
        doc = decode_search_index(
            text,
            package,
            version,
            max_bytes=self._settings.max_index_bytes,
            max_symbols=self._settings.max_symbols,
        )
        edges, impl_ratio = await self._collect_impls(package, version, doc)
        completeness = round(doc.completeness * (0.75 + 0.25 * impl_ratio), 4)
        return doc.model_copy(update={"impls": frozenset(edges), "completeness": completeness})

    async def _fetch_search_index(self, package: str, version: str) -> str:
        plain = f"{self._base}/{package}/{version}/search-index.js"
        try:
            return await self._fetcher.get_text(plain)
        except NotFoundError:
            logger.debug("%s@%s: no plain search-index.js, reading crate root", package, version)

        crate_dir = crate_keys(package)[-1]
        root_url = f"{self._base}/{package}/{version}/{crate_dir}/index.html"
        try:
            root_html = await self._fetcher.get_text(root_url)
        except NotFoundError as e:
            raise NotFoundError(f"no documentation for {package}@{version}") from e

        index_url = discover_search_index_url(root_html, root_url)
        if index_url is None:
            raise ParseDriftError(
                f"{package}@{version}: crate page does not reference a search index",
                attempted=["search-index.js", "rustdoc-vars", "script-src"],
            )
        try:
            return await self._fetcher.get_text(index_url)
        except NotFoundError as e:
            raise NotFoundError(f"search index missing for {package}@{version}") from e

    # --- single item ---

    async def fetch_item(
        self,
        package: str,
        version: str,
        path: str,
        kind_hint: SymbolKind | None = None,
    ) -> SymbolRecord:
        crate_dir = crate_keys(package)[-1]
        segments = [s for s in path.split("::") if s]
        if segments and segments[0] in crate_keys(package):
            segments = segments[1:]
        full_path = "::".join([crate_dir, *segments])

        attempted: list[str] = []
        for url, kind in self._item_candidates(package, version, crate_dir, segments, kind_hint):
            attempted.append(url.rsplit("/", 1)[-1])
            try:
                html = await self._fetcher.get_text(url)
            except NotFoundError:
                continue
            logger.debug("%s: resolved via %s", full_path, url)
            return parse_item_page(html, full_path, kind)

        raise NotFoundError(
            f"item {full_path} not found in {package}@{version} "
            f"(tried {', '.join(attempted)})"
        )

    def _item_candidates(
        self,
        package: str,
        version: str,
        crate_dir: str,
        segments: list[str],
        kind_hint: SymbolKind | None,
    ) -> list[tuple[str, SymbolKind]]:
        root = f"{self._base}/{package}/{version}/{crate_dir}"
        if not segments:
            return [(f"{root}/index.html", SymbolKind.MODULE)]

        module_dir = "/".join([root, *segments[:-1]])
        name = segments[-1]
        prefixes = list(PROBE_PREFIXES)
        if kind_hint is not None:
            hinted = [p for p in prefixes if p[1] is kind_hint]
            prefixes = hinted + [p for p in prefixes if p[1] is not kind_hint]

        candidates = []
        for prefix, kind in prefixes:
            if kind is SymbolKind.MODULE:
                candidates.append((f"{module_dir}/{name}/index.html", kind))
            else:
                candidates.append((f"{module_dir}/{prefix}.{name}.html", kind))
        candidates.append((f"{module_dir}/{name}.html", kind_hint or SymbolKind.UNKNOWN))
        return candidates

    # --- source files ---

    async def fetch_source(self, package: str, version: str, file: str) -> list[str]:
        """``{base}/{crate}/{version}/src/{file}.html`` -> source lines."""
        parts = [p for p in file.split("/") if p]
        if not parts or any(p in (".", "..") for p in parts):
            raise InvalidInputError(f"invalid source file: {file!r}")
        url = f"{self._base}/{package}/{version}/src/{'/'.join(parts)}.html"
        html = await self._fetcher.get_text(url)
        return parse_source_page(html, file)

    # --- implementors ---

    async def _collect_impls(
        self, package: str, version: str, doc: NormalizedDocument
    ) -> tuple[set[ImplEdge], float]:
        traits = sorted(
            (s for s in doc.symbols if s.kind is SymbolKind.TRAIT), key=lambda s: s.path
        )
        limit = self._settings.max_implementor_fetches
        if len(traits) > limit:
            logger.debug("%s@%s: fetching implementors for %d of %d traits",
                         package, version, limit, len(traits))
            traits = traits[:limit]
        if not traits:
            return set(), 1.0

        semaphore = asyncio.Semaphore(self._settings.implementor_concurrency)

        async def one(trait: SymbolRecord) -> set[ImplEdge] | None:
            async with semaphore:
                return await self._fetch_implementors(package, version, trait.path)

        results = await asyncio.gather(*(one(t) for t in traits))
        edges: set[ImplEdge] = set()
        failed = 0
        for result in results:
            if result is None:
                failed += 1
            else:
                edges |= result
        return edges, 1.0 - failed / len(traits)

    async def _fetch_implementors(
        self, package: str, version: str, trait_path: str
    ) -> set[ImplEdge] | None:
        """Edges for one trait; empty set if it has no implementor file, None on failure."""
        *module, name = trait_path.split("::")
        rel = "/".join([*module, f"trait.{name}.js"])
        for folder in ("trait.impl", "implementors"):
            url = f"{self._base}/{package}/{version}/{folder}/{rel}"
            try:
                text = await self._fetcher.get_text(url)
            except NotFoundError:
                continue
            except TransientError as e:
                logger.warning("Implementors for %s unavailable: %s", trait_path, e)
                return None
            try:
                return parse_implementors(text, trait_path)
            except ValueError as e:
                logger.warning("Implementors for %s undecodable: %s", trait_path, e)
                return None
        return set()

    async def aclose(self) -> None:
        await self._fetcher.aclose()


def discover_search_index_url(root_html: str, page_url: str) -> str | None:
    """Find the hashed search-index script referenced by a crate page."""
    soup = BeautifulSoup(root_html, "html.parser")
    vars_el = soup.find(attrs={"data-search-index-js": True})
    if vars_el is not None:
        value = str(vars_el["data-search-index-js"])
        root_path = str(vars_el.get("data-root-path", "") or "")
        if value.startswith((".", "/", "http")) or not root_path:
            return urljoin(page_url, value)
        return urljoin(urljoin(page_url, root_path), value)

    for script in soup.find_all("script", src=True):
        src = str(script["src"])
        if "search-index" in src:
            return urljoin(page_url, src)
    return None

