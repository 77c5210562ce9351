# src/extraction/base_extractor.py — v1
"""Abstract extractor interface for documentation sources."""

from __future__ import annotations

from abc import ABC, abstractmethod

from dociium.core.errors import NotFoundError
from dociium.core.models import NormalizedDocument, SymbolKind, SymbolRecord


class BaseDocExtractor(ABC):
    """Unified interface for documentation extractors.

    Implementations raise NotFoundError, TransientError or ParseDriftError;
    they never return an empty document.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry name of this extractor (e.g. 'docs.rs')."""

    @abstractmethod
    async def fetch(self, package: str, version: str) -> NormalizedDocument:
        """Fetch and normalize the whole public surface of package@version."""

    @abstractmethod
    async def fetch_item(
        self,
        package: str,
        version: str,
        path: str,
        kind_hint: SymbolKind | None = None,
    ) -> SymbolRecord:
        """Fetch one item page and return its detailed record."""

    async def fetch_source(self, package: str, version: str, file: str) -> list[str]:
        """Lines of one source file, as the source anchor of an item names it."""
        raise NotFoundError(f"{self.name} does not serve source files")

    async def aclose(self) -> None:
        """Release network resources."""
        return None
