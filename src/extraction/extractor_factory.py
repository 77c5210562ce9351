# src/extraction/extractor_factory.py — v1
"""Factory: instantiate a documentation extractor by source name."""

from __future__ import annotations

from dociium.config.settings import Settings
from dociium.extraction.base_extractor import BaseDocExtractor
from dociium.extraction.docs_extractor import DocsRsExtractor
from dociium.extraction.fetcher import HttpFetcher

# Registry maps source name -> extractor class.
_EXTRACTOR_REGISTRY: dict[str, type[BaseDocExtractor]] = {
    "docs.rs": DocsRsExtractor,
}


class UnsupportedSourceError(ValueError):
    """Raised when no extractor is registered for a source."""


def create_extractor(
    source: str = "docs.rs",
    settings: Settings | None = None,
    fetcher: HttpFetcher | None = None,
) -> BaseDocExtractor:
    """Create an extractor for the given documentation source.

    Raises:
        UnsupportedSourceError: If no extractor is registered.
    """
    cls = _EXTRACTOR_REGISTRY.get(source.lower())
    if cls is None:
        raise UnsupportedSourceError(
            f"No extractor for source {source!r}. "
            f"Supported: {', '.join(sorted(_EXTRACTOR_REGISTRY))}"
        )
    return cls(settings=settings, fetcher=fetcher)  # type: ignore[call-arg]


def register_extractor(source: str, cls: type[BaseDocExtractor]) -> None:
    """Register a custom extractor class."""
    _EXTRACTOR_REGISTRY[source.lower()] = cls


def supported_sources() -> list[str]:
    return sorted(_EXTRACTOR_REGISTRY)
