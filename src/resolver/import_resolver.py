# src/resolver/import_resolver.py — v1
"""Cross-language import resolution with its own bounded cache.

Results (resolved or not) are memoized in a private memory-only store
for ``import_cache_ttl_s`` under
``import:{lang}:{package}:{resolved_context}:{import_text}``. Locator
failures are not cached: the package may be installed a moment later.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from dociium.cache.base_cache_store import BaseCacheStore
from dociium.cache.cache_factory import create_cache_store
from dociium.cache.models import CacheMetrics
from dociium.config.settings import Settings
from dociium.core.errors import InvalidInputError
from dociium.core.models import ImplementationContext, ImportResolution
from dociium.engine.validation import validate_import_package, validate_import_text
from dociium.resolver.base import Language, LanguageResolver
from dociium.resolver.implementation import read_implementation, split_item_path
from dociium.resolver.locator import PackageLocator
from dociium.resolver.node_resolver import NodeResolver
from dociium.resolver.python_resolver import PythonResolver
from dociium.resolver.rust_resolver import RustResolver

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT = "<default>"

_STATEMENT_PREFIXES = ("use ", "pub use ", "pub(crate) use ", "import ", "from ", "export ")


def default_resolvers() -> dict[Language, LanguageResolver]:
    return {
        Language.RUST: RustResolver(),
        Language.PYTHON: PythonResolver(),
        Language.NODE: NodeResolver(),
    }


def import_cache_key(language: Language, package: str, context: str, import_text: str) -> str:
    return f"import:{language.value}:{package}:{context}:{import_text}"


def extract_import_statements(code: str) -> list[str]:
    """Import statements of a code block, one per entry.

    Rust ``use`` groups and parenthesized Python imports spanning several
    lines are joined back together.
    """
    statements: list[str] = []
    pending: list[str] = []
    for raw in code.splitlines():
        line = raw.strip()
        if pending:
            pending.append(line)
            joined = " ".join(pending)
            if joined.count("{") <= joined.count("}") and joined.count("(") <= joined.count(")"):
                statements.append(joined)
                pending = []
            continue
        if not line.startswith(_STATEMENT_PREFIXES):
            continue
        if line.count("{") > line.count("}") or line.count("(") > line.count(")"):
            pending = [line]
        else:
            statements.append(line)
    if pending:
        statements.append(" ".join(pending))
    return statements


class ImportResolver:
    """Dispatches import statements to the per-language resolvers."""

    def __init__(
        self,
        settings: Settings | None = None,
        locator: PackageLocator | None = None,
        resolvers: dict[Language, LanguageResolver] | None = None,
        cache: BaseCacheStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or Settings(_env_file=None)  # type: ignore[call-arg]
        self._locator = locator or PackageLocator()
        self._resolvers = resolvers or default_resolvers()
        self._cache = cache or create_cache_store(
            self._settings,
            namespace="imports",
            persistent=False,
            max_entries=self._settings.import_cache_max_entries,
            clock=clock,
        )

    def supported_languages(self) -> list[str]:
        return sorted(lang.value for lang in self._resolvers)

    def _resolver_for(self, language: Language) -> LanguageResolver:
        resolver = self._resolvers.get(language)
        if resolver is None:
            raise InvalidInputError(f"no resolver registered for {language.value}")
        return resolver

    async def resolve(
        self,
        language: Language | str,
        package: str,
        import_text: str,
        context_path: str | Path | None = None,
    ) -> ImportResolution:
        """Resolve one import statement against the locally installed package.

        Raises:
            InvalidInputError: Unknown language, bad package name, or text
                that is not an import statement of that language.
            NotFoundError: The package root cannot be located.
        """
        lang = Language.parse(language)
        package = validate_import_package(package)
        text = validate_import_text(import_text)
        resolver = self._resolver_for(lang)
        context = _normalize_context(context_path)
        key = import_cache_key(lang, package, context, text)

        raw = await self._cache.get(key)
        if raw is not None:
            try:
                return ImportResolution.model_validate_json(raw)
            except ValidationError as e:
                logger.warning("Dropping undecodable cached resolution %s: %s", key, e)
                await self._cache.invalidate(key)

        parsed = resolver.parse(text, package, _module_context(context_path, lang))
        if parsed.reason is not None:
            result = resolver.unresolved(package, parsed, parsed.reason)
        else:
            root = await self._locator.locate(lang, package, context_path)
            result = await asyncio.to_thread(resolver.resolve, root, parsed, package)

        await self._cache.put(
            key, result.model_dump_json().encode("utf-8"), ttl=self._settings.import_cache_ttl_s
        )
        if result.is_resolved:
            logger.info("Resolved %r -> %s:%s via %s", text, result.file, result.line, result.strategy)
        else:
            logger.info("Unresolved %r: %s", text, result.reason)
        return result

    async def resolve_block(
        self,
        language: Language | str,
        package: str,
        code: str,
        context_path: str | Path | None = None,
    ) -> list[ImportResolution]:
        """Resolve every import statement found in a code block, in order."""
        results = []
        for statement in extract_import_statements(code):
            results.append(await self.resolve(language, package, statement, context_path))
        return results

    async def get_implementation(
        self,
        language: Language | str,
        package: str,
        item_path: str,
        context_path: str | Path | None = None,
    ) -> ImplementationContext:
        """Source and docs of ``file#name`` inside the locally installed package.

        Not cached: the file is read fresh on every call.
        """
        lang = Language.parse(language)
        package = validate_import_package(package)
        rel_path, name = split_item_path(item_path)
        root = await self._locator.locate(lang, package, context_path)
        context = await asyncio.to_thread(read_implementation, lang, root, rel_path, name)
        logger.info("Read %s#%s from %s (%s)", rel_path, name, package, lang.value)
        return context

    def cache_stats(self) -> CacheMetrics:
        return self._cache.stats()

    async def clear(self) -> int:
        return await self._cache.clear()

    async def sweep_expired(self) -> int:
        return await self._cache.sweep_expired()


def _normalize_context(context_path: str | Path | None) -> str:
    if context_path is None or str(context_path).strip() == "":
        return DEFAULT_CONTEXT
    return str(Path(context_path).expanduser().resolve())


def _module_context(context_path: str | Path | None, language: Language) -> str | None:
    """Dotted module path for Python relative imports, when context names one."""
    if language is not Language.PYTHON or context_path is None:
        return None
    value = str(context_path)
    if "/" in value or "\\" in value or value.endswith(".py"):
        return None
    return value or None
