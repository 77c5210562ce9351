# src/index/document_index.py — v1
"""Symbol + relationship index bundle for one document."""

from __future__ import annotations

from dataclasses import dataclass

from dociium.core.models import NormalizedDocument
from dociium.index.relationships import RelationshipIndex
from dociium.index.symbol_index import SymbolIndex


@dataclass(frozen=True)
class DocumentIndex:
    """Immutable view built once per document; rebuilt, never mutated."""

    document: NormalizedDocument
    symbols: SymbolIndex
    relations: RelationshipIndex
    content_hash: str

    @classmethod
    def build(cls, document: NormalizedDocument) -> DocumentIndex:
        return cls(
            document=document,
            symbols=SymbolIndex(document.symbols),
            relations=RelationshipIndex(document.impls),
            content_hash=document.content_hash,
        )
