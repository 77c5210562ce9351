# src/index/symbol_index.py — v1
"""Bounded fuzzy symbol search over one NormalizedDocument.

A linear scorer, not an inverted index: every symbol is scored against the
query and the best ``limit`` are kept. Ranking bands, highest first:

    1.00  exact path or exact name (case-insensitive)
    0.95  path ends with the query (multi-segment queries like ``sync::Mutex``)
    0.90  name starts with the query
    0.60-0.85  query inside the name, scaled by how much of the name it covers
    0.40-0.60  query inside the path, scaled the same way
    <0.50 name similarity (difflib ratio x 0.5), below ``min_similarity`` dropped

Equal scores are ordered by path so results are deterministic.
"""

from __future__ import annotations

import heapq
import logging
from difflib import SequenceMatcher
from typing import Iterable, Sequence

from dociium.core.models import SearchHit, SymbolKind, SymbolRecord

logger = logging.getLogger(__name__)

DEFAULT_MIN_SIMILARITY = 0.5


def score_symbol(
    query: str,
    name: str,
    path: str,
    min_similarity: float = DEFAULT_MIN_SIMILARITY,
) -> float:
    """Relevance of one symbol for an already lower-cased query."""
    if name == query or path == query:
        return 1.0
    if "::" in query and path.endswith("::" + query):
        return 0.95
    if name.startswith(query):
        return 0.9
    if query in name:
        return 0.6 + 0.25 * len(query) / len(name)
    if query in path:
        return 0.4 + 0.2 * len(query) / len(path)
    similarity = SequenceMatcher(None, query, name).ratio()
    if similarity >= min_similarity:
        return 0.5 * similarity
    return 0.0


def _coerce_kinds(kinds: Iterable[SymbolKind | str] | None) -> frozenset[SymbolKind] | None:
    if kinds is None:
        return None
    out = set()
    for k in kinds:
        out.add(k if isinstance(k, SymbolKind) else SymbolKind.parse(k))
    return frozenset(out) if out else None


class SymbolIndex:
    """Read-only search view over a document's symbols."""

    def __init__(
        self,
        symbols: Sequence[SymbolRecord],
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
    ) -> None:
        self._symbols = tuple(symbols)
        self._by_path = {s.path: s for s in self._symbols}
        self._lowered = [(s.name.lower(), s.path.lower(), s) for s in self._symbols]
        self._min_similarity = min_similarity

    def __len__(self) -> int:
        return len(self._symbols)

    def get(self, path: str) -> SymbolRecord | None:
        return self._by_path.get(path)

    def search_scored(
        self,
        query: str,
        kinds: Iterable[SymbolKind | str] | None = None,
        limit: int = 10,
    ) -> list[SearchHit]:
        q = query.strip().lower()
        if not q or limit <= 0:
            return []
        kind_filter = _coerce_kinds(kinds)

        scored: list[tuple[float, str, SymbolRecord]] = []
        for name_l, path_l, rec in self._lowered:
            if kind_filter is not None and rec.kind not in kind_filter:
                continue
            score = score_symbol(q, name_l, path_l, self._min_similarity)
            if score > 0.0:
                scored.append((score, rec.path, rec))

        best = heapq.nsmallest(limit, scored, key=lambda t: (-t[0], t[1]))
        return [SearchHit(symbol=rec, score=round(score, 4)) for score, _, rec in best]

    def search(
        self,
        query: str,
        kinds: Iterable[SymbolKind | str] | None = None,
        limit: int = 10,
    ) -> list[SymbolRecord]:
        """Symbols ordered by descending relevance."""
        return [hit.symbol for hit in self.search_scored(query, kinds, limit)]
