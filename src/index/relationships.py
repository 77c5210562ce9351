# src/index/relationships.py — v1
"""Trait <-> type implementation index backed by a NetworkX MultiDiGraph.

Edges run trait -> implementing type, keyed by the ImplEdge itself so two
impls that differ only in generics stay distinct. Both lookup directions
are materialized from the same edge iteration at build time and checked
against each other before the index is handed out.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

import networkx as nx

from dociium.core.models import ImplEdge

logger = logging.getLogger(__name__)


class InconsistentIndexError(RuntimeError):
    """Forward and reverse edge maps disagree."""


class RelationshipIndex:
    """Exact-match lookups of implementation edges from either endpoint."""

    def __init__(self, edges: Iterable[ImplEdge]) -> None:
        self._graph = build_impl_graph(edges)
        by_trait: dict[str, set[ImplEdge]] = defaultdict(set)
        by_type: dict[str, set[ImplEdge]] = defaultdict(set)
        for trait_path, type_path, edge in self._graph.edges(keys=True):
            by_trait[trait_path].add(edge)
            by_type[type_path].add(edge)
        self._by_trait = {k: frozenset(v) for k, v in by_trait.items()}
        self._by_type = {k: frozenset(v) for k, v in by_type.items()}
        self._verify()

    def _verify(self) -> None:
        forward = {e for edges in self._by_trait.values() for e in edges}
        reverse = {e for edges in self._by_type.values() for e in edges}
        if forward != reverse:
            raise InconsistentIndexError(
                f"{len(forward ^ reverse)} edges present in only one direction"
            )
        for edge in forward:
            if edge not in self._by_type.get(edge.type_path, ()):
                raise InconsistentIndexError(f"edge {edge} missing from type side")

    @property
    def graph(self) -> nx.MultiDiGraph:
        return self._graph

    def __len__(self) -> int:
        return self._graph.number_of_edges()

    def impls_of_trait(self, trait_path: str) -> frozenset[ImplEdge]:
        return self._by_trait.get(trait_path, frozenset())

    def impls_for_type(self, type_path: str) -> frozenset[ImplEdge]:
        return self._by_type.get(type_path, frozenset())

    def traits(self) -> list[str]:
        return sorted(self._by_trait)

    def types(self) -> list[str]:
        return sorted(self._by_type)


def build_impl_graph(edges: Iterable[ImplEdge]) -> nx.MultiDiGraph:
    """Build a directed multigraph with trait and type nodes."""
    graph = nx.MultiDiGraph()
    for edge in edges:
        graph.add_node(edge.trait_path, role="trait")
        if edge.type_path not in graph or graph.nodes[edge.type_path].get("role") != "trait":
            graph.add_node(edge.type_path, role="type")
        graph.add_edge(
            edge.trait_path,
            edge.type_path,
            key=edge,
            generics=list(edge.generics),
            is_blanket=edge.is_blanket,
        )
    logger.debug(
        "Built impl graph: %d nodes, %d edges",
        graph.number_of_nodes(), graph.number_of_edges(),
    )
    return graph
