"""
ontoslice: Term-Driven Ontology Module Extraction
MIREOT Traversal

Minimum Information to Reference an External Ontology Term: collect the
ancestors of a set of lower terms up to optional upper terms, and/or the
full branch below a set of branch-from terms. No entailment preservation is
attempted; only the hierarchy and the terms' annotations are kept.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, Iterable, Optional, Set
import logging

from .errors import MissingLowerTermError, MissingUpperDependentError
from .hierarchy import Hierarchy
from .ontology import (
    Axiom, AnnotationAssertion, ClassAssertion, EntityType, OntologyGraph
)

logger = logging.getLogger(__name__)


def validate_mireot_terms(
    lower_terms: Iterable[str],
    upper_terms: Iterable[str],
    branch_terms: Iterable[str]
) -> None:
    """Check that the boundary terms describe a traversal."""
    lower, upper, branch = set(lower_terms), set(upper_terms), set(branch_terms)
    if upper and not lower and not branch:
        raise MissingUpperDependentError(
            "Upper terms require lower terms or branch-from terms"
        )
    if not lower and not branch:
        raise MissingLowerTermError(
            "MIREOT requires lower terms or branch-from terms"
        )


class MireotTraversal:
    """
    Walks subsumption edges of a graph.

    Class hierarchies follow named SubClassOf axioms, property hierarchies
    follow SubObjectPropertyOf, and individuals step up to their asserted
    named types.
    """

    def __init__(self, graph: OntologyGraph):
        self.graph = graph
        self._parents: Dict[str, Set[str]] = defaultdict(set)
        self._children: Dict[str, Set[str]] = defaultdict(set)
        self._properties = graph.object_properties
        self._individuals = graph.individuals - graph.classes

        for child, parent in graph.subclass_edges() | graph.subproperty_edges():
            self._parents[child].add(parent)
            self._children[parent].add(child)

        for axiom in graph.axioms:
            if isinstance(axiom, ClassAssertion) and axiom.class_expression.is_named:
                self._parents[axiom.individual].add(axiom.class_expression.iri)

    def kind(self, iri: str) -> EntityType:
        if iri in self._individuals:
            return EntityType.INDIVIDUAL
        if iri in self._properties:
            return EntityType.OBJECT_PROPERTY
        return EntityType.CLASS

    def parents(self, iri: str) -> Set[str]:
        return set(self._parents.get(iri, ()))

    def children(self, iri: str) -> Set[str]:
        return set(self._children.get(iri, ()))

    def ancestors_hierarchy(
        self,
        lower_terms: Iterable[str],
        upper_terms: Iterable[str] = ()
    ) -> Hierarchy:
        """
        Walk upward from each lower term. An upper term is kept but not
        walked past; with no upper terms the walk runs to the roots.
        """
        upper = set(upper_terms)
        hierarchy = Hierarchy()

        for term in sorted(set(lower_terms)):
            hierarchy.add_node(term, self.kind(term))
            visited: Set[str] = set()
            stack = [term]
            while stack:
                node = stack.pop()
                if node in visited:
                    continue
                visited.add(node)
                if node in upper:
                    continue
                for parent in sorted(self.parents(node)):
                    hierarchy.add_edge(node, parent, self.kind(parent))
                    stack.append(parent)
            logger.debug(f"Collected {len(visited)} nodes above {term}")

        return hierarchy

    def descendants_hierarchy(self, branch_terms: Iterable[str]) -> Hierarchy:
        """Collect every direct and indirect child of each branch term."""
        hierarchy = Hierarchy()

        for term in sorted(set(branch_terms)):
            hierarchy.add_node(term, self.kind(term))
            visited: Set[str] = set()
            stack = [term]
            while stack:
                node = stack.pop()
                if node in visited:
                    continue
                visited.add(node)
                for child in sorted(self.children(node)):
                    hierarchy.add_edge(child, node, self.kind(child))
                    stack.append(child)
            logger.debug(f"Collected {len(visited)} nodes below {term}")

        return hierarchy


def mireot_hierarchy(
    graph: OntologyGraph,
    lower_terms: Iterable[str] = (),
    upper_terms: Iterable[str] = (),
    branch_terms: Iterable[str] = (),
    traversal: Optional[MireotTraversal] = None
) -> Hierarchy:
    """
    Compute the bounded MIREOT hierarchy.

    Args:
        graph: Source graph (already merged with imports if they apply)
        lower_terms: Terms to collect ancestors for
        upper_terms: Terms at which the upward walk stops
        branch_terms: Terms whose whole branch is collected
        traversal: Prebuilt traversal over graph, reused when given

    Returns:
        Hierarchy holding the union of every node and edge visited
    """
    lower, upper, branch = set(lower_terms), set(upper_terms), set(branch_terms)
    validate_mireot_terms(lower, upper, branch)

    if traversal is None:
        traversal = MireotTraversal(graph)
    hierarchy = Hierarchy()

    if lower:
        hierarchy = hierarchy.union(traversal.ancestors_hierarchy(lower, upper))
    if branch:
        hierarchy = hierarchy.union(traversal.descendants_hierarchy(branch))
        if upper:
            hierarchy = hierarchy.union(traversal.ancestors_hierarchy(branch, upper))

    logger.info(
        f"MIREOT hierarchy has {len(hierarchy)} nodes "
        f"and {len(hierarchy.edges)} edges"
    )
    return hierarchy


def mireot_module(
    graph: OntologyGraph,
    hierarchy: Hierarchy,
    annotation_properties: Optional[Iterable[str]] = None,
    iri: Optional[str] = None
) -> OntologyGraph:
    """
    Turn a MIREOT hierarchy into an output graph: declarations, hierarchy
    edges and the source annotations of the retained terms.

    Args:
        graph: Source graph the hierarchy was computed from
        hierarchy: Hierarchy after pruning and overrides
        annotation_properties: If given, only these annotation properties
            are copied
        iri: IRI of the output graph
    """
    allowed = set(annotation_properties) if annotation_properties is not None else None
    axioms: Set[Axiom] = hierarchy.to_axioms()
    nodes = hierarchy.nodes

    for axiom in graph.axioms:
        if not isinstance(axiom, AnnotationAssertion) or axiom.subject not in nodes:
            continue
        if allowed is None or axiom.property in allowed:
            axioms.add(axiom)

    return OntologyGraph(axioms, iri=iri)


__all__ = [
    'MireotTraversal',
    'mireot_hierarchy',
    'mireot_module',
    'validate_mireot_terms',
]
