"""
ontoslice: Term-Driven Ontology Module Extraction
Hierarchy Module

A subsumption hierarchy restricted to a chosen set of entities. Edges point
from child to parent; a node may have several parents.
"""

from __future__ import annotations
from typing import Set, Iterable, Tuple, Optional, List, Dict
import logging

import networkx as nx

from .ontology import (
    Axiom, ClassAssertion, Declaration, Entity, EntityType, NamedClass,
    SubClassOf, SubObjectPropertyOf, OWL_THING
)

logger = logging.getLogger(__name__)

KIND = "kind"


class Hierarchy:
    """
    A directed acyclic graph of child -> parent edges.

    Each node records the EntityType it stands for (classes by default,
    object properties for property hierarchies) so it can be turned back
    into axioms.
    """

    def __init__(self, graph: Optional[nx.DiGraph] = None):
        self._graph = graph if graph is not None else nx.DiGraph()

    @classmethod
    def from_edges(
        cls,
        edges: Iterable[Tuple[str, str]],
        kind: EntityType = EntityType.CLASS
    ) -> 'Hierarchy':
        """Build a hierarchy from (child, parent) pairs."""
        hierarchy = cls()
        for child, parent in edges:
            hierarchy.add_edge(child, parent, kind)
        return hierarchy

    def add_node(self, node: str, kind: EntityType = EntityType.CLASS) -> None:
        if node in self._graph:
            return
        self._graph.add_node(node, **{KIND: kind})

    def add_edge(
        self,
        child: str,
        parent: str,
        kind: EntityType = EntityType.CLASS
    ) -> None:
        """Add a child -> parent edge. Self loops are ignored."""
        if child == parent:
            return
        self.add_node(child, kind)
        self.add_node(parent, kind)
        self._graph.add_edge(child, parent)

    def remove_edge(self, child: str, parent: str) -> None:
        if self._graph.has_edge(child, parent):
            self._graph.remove_edge(child, parent)

    def kind(self, node: str) -> EntityType:
        return self._graph.nodes[node].get(KIND, EntityType.CLASS)

    @property
    def nodes(self) -> Set[str]:
        return set(self._graph.nodes)

    @property
    def edges(self) -> Set[Tuple[str, str]]:
        return set(self._graph.edges)

    def parents(self, node: str) -> Set[str]:
        if node not in self._graph:
            return set()
        return set(self._graph.successors(node))

    def children(self, node: str) -> Set[str]:
        if node not in self._graph:
            return set()
        return set(self._graph.predecessors(node))

    def ancestors(self, node: str) -> Set[str]:
        """Return all direct and indirect parents."""
        if node not in self._graph:
            return set()
        return set(nx.descendants(self._graph, node))

    def descendants(self, node: str) -> Set[str]:
        """Return all direct and indirect children."""
        if node not in self._graph:
            return set()
        return set(nx.ancestors(self._graph, node))

    @property
    def roots(self) -> Set[str]:
        """Nodes without parents."""
        return {n for n in self._graph.nodes if self._graph.out_degree(n) == 0}

    @property
    def leaves(self) -> Set[str]:
        """Nodes without children."""
        return {n for n in self._graph.nodes if self._graph.in_degree(n) == 0}

    def bridge_out(self, node: str) -> None:
        """
        Remove a node, reattaching each of its children to each of its
        parents so that reachability between the remaining nodes is kept.
        """
        if node not in self._graph:
            return
        parents = self.parents(node)
        children = self.children(node)
        for child in children:
            for parent in parents:
                if child != parent:
                    self._graph.add_edge(child, parent)
        self._graph.remove_node(node)
        logger.debug(f"Removed intermediate {node}")

    def remove_node(self, node: str) -> None:
        if node in self._graph:
            self._graph.remove_node(node)

    def restricted_to(self, nodes: Iterable[str]) -> 'Hierarchy':
        """Return the sub-hierarchy induced by the given nodes."""
        keep = [n for n in nodes if n in self._graph]
        return Hierarchy(self._graph.subgraph(keep).copy())

    def union(self, other: 'Hierarchy') -> 'Hierarchy':
        return Hierarchy(nx.compose(self._graph, other._graph))

    def copy(self) -> 'Hierarchy':
        return Hierarchy(self._graph.copy())

    def is_acyclic(self) -> bool:
        return nx.is_directed_acyclic_graph(self._graph)

    def to_axioms(self) -> Set[Axiom]:
        """
        Convert the hierarchy back into Declaration, SubClassOf,
        SubObjectPropertyOf and (for individual nodes) ClassAssertion axioms.
        """
        axioms: Set[Axiom] = set()
        for node in self._graph.nodes:
            if node == OWL_THING:
                continue
            axioms.add(Declaration(Entity(node, self.kind(node))))
        for child, parent in self._graph.edges:
            if parent == OWL_THING:
                continue
            kind = self.kind(child)
            if kind == EntityType.OBJECT_PROPERTY:
                axioms.add(SubObjectPropertyOf(child, parent))
            elif kind == EntityType.INDIVIDUAL:
                axioms.add(ClassAssertion(child, NamedClass(parent)))
            else:
                axioms.add(SubClassOf(NamedClass(child), NamedClass(parent)))
        return axioms

    def adjacency(self) -> Dict[str, List[str]]:
        """Return node -> sorted parents, useful for debugging and tests."""
        return {n: sorted(self.parents(n)) for n in sorted(self._graph.nodes)}

    def __contains__(self, node: str) -> bool:
        return node in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, Hierarchy)
            and self.nodes == other.nodes
            and self.edges == other.edges
        )

    def __repr__(self) -> str:
        return (
            f"Hierarchy(|nodes|={self._graph.number_of_nodes()}, "
            f"|edges|={self._graph.number_of_edges()})"
        )
