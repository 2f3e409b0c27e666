"""
ontoslice: Term-Driven Ontology Module Extraction
Intermediate Pruning Engine

Removes filler classes from a MIREOT hierarchy or from the named subclass
structure of an extracted module. A removed node is bridged out: each of
its children is reattached to each of its parents.
"""

from __future__ import annotations
from typing import Iterable, Mapping, Sequence, Set
import logging

from .extraction import IntermediatesPolicy
from .hierarchy import Hierarchy
from .ontology import (
    AnnotationAssertion, Axiom, Declaration, Entity, EntityType, NamedClass,
    OntologyGraph, SubClassOf, SubObjectPropertyOf
)

logger = logging.getLogger(__name__)


def removable_nodes(
    hierarchy: Hierarchy,
    policy: IntermediatesPolicy,
    keep: Iterable[str] = ()
) -> Set[str]:
    """
    Return the nodes the policy removes, judged on the input hierarchy.

    Roots and leaves are never intermediates. Under MINIMAL only nodes with
    exactly one parent and exactly one child are removed.
    """
    policy = IntermediatesPolicy.parse(policy)
    if policy == IntermediatesPolicy.ALL:
        return set()

    keep = set(keep)
    removable = set()
    for node in hierarchy.nodes:
        if node in keep:
            continue
        parents = hierarchy.parents(node)
        children = hierarchy.children(node)
        if not parents or not children:
            continue
        if policy == IntermediatesPolicy.MINIMAL and (len(parents) != 1 or len(children) != 1):
            continue
        removable.add(node)
    return removable


def prune_hierarchy(
    hierarchy: Hierarchy,
    policy,
    keep: Iterable[str] = ()
) -> Hierarchy:
    """
    Prune intermediate nodes from a hierarchy.

    Args:
        hierarchy: Input hierarchy (not modified)
        policy: ALL, MINIMAL or NONE
        keep: Explicitly requested terms, never removed

    Returns:
        A new pruned hierarchy
    """
    policy = IntermediatesPolicy.parse(policy)
    result = hierarchy.copy()
    removed = removable_nodes(hierarchy, policy, keep)
    for node in sorted(removed):
        result.bridge_out(node)
    if removed:
        logger.info(
            f"Intermediates {policy.name.lower()}: removed {len(removed)} "
            f"of {len(hierarchy)} nodes"
        )
    return result


def prune_module(
    graph: OntologyGraph,
    policy,
    keep: Iterable[str] = ()
) -> OntologyGraph:
    """
    Prune the named subclass structure of an extracted module.

    A class is only a candidate when no retained logical axiom other than a
    named subclass edge mentions it. Removed classes lose their declaration
    and annotations; their subclass edges are replaced by bridged edges.
    """
    policy = IntermediatesPolicy.parse(policy)
    if policy == IntermediatesPolicy.ALL:
        return graph.with_axioms(graph.axioms)

    referenced = set(keep)
    for axiom in graph.logical_axioms:
        if isinstance(axiom, SubClassOf) and axiom.is_named_edge:
            continue
        referenced.update(axiom.signature)

    hierarchy = Hierarchy.from_edges(graph.subclass_edges())
    removed = removable_nodes(hierarchy, policy, referenced)
    if not removed:
        return graph.with_axioms(graph.axioms)

    pruned = hierarchy.copy()
    for node in sorted(removed):
        pruned.bridge_out(node)

    axioms: Set[Axiom] = set()
    for axiom in graph.axioms:
        if isinstance(axiom, SubClassOf) and axiom.is_named_edge:
            continue
        if isinstance(axiom, Declaration) and axiom.entity.iri in removed:
            continue
        if isinstance(axiom, AnnotationAssertion) and axiom.subject in removed:
            continue
        axioms.add(axiom)
    for child, parent in pruned.edges:
        axioms.add(SubClassOf(NamedClass(child), NamedClass(parent)))

    logger.info(
        f"Intermediates {policy.name.lower()}: removed {len(removed)} classes from module"
    )
    return graph.with_axioms(axioms)


def apply_parent_overrides(
    hierarchy: Hierarchy,
    overrides: Mapping[str, Sequence[str]],
    anchors: Iterable[str],
    keep: Iterable[str] = ()
) -> Hierarchy:
    """
    Replace the parents of each overridden term.

    Nodes are then kept only if they are an anchor, below an anchor, or
    above one of those; ancestors cut off by an override are dropped.
    Nodes in keep are never dropped, though they lose the edges to
    dropped nodes.
    """
    result = hierarchy.copy()
    for term, parents in sorted(overrides.items()):
        if not parents:
            continue
        kind = result.kind(term) if term in result else EntityType.CLASS
        parent_kind = (
            EntityType.OBJECT_PROPERTY if kind == EntityType.OBJECT_PROPERTY
            else EntityType.CLASS
        )
        result.add_node(term, kind)
        for old in result.parents(term):
            result.remove_edge(term, old)
        for parent in parents:
            result.add_node(parent, parent_kind)
            result.add_edge(term, parent)
        logger.debug(f"Overrode parents of {term}: {', '.join(parents)}")

    retained: Set[str] = set()
    for anchor in anchors:
        if anchor in result:
            retained.add(anchor)
            retained.update(result.descendants(anchor))
    for node in list(retained):
        retained.update(result.ancestors(node))
    retained.update(node for node in keep if node in result)

    return result.restricted_to(retained)


def apply_module_overrides(
    graph: OntologyGraph,
    overrides: Mapping[str, Sequence[str]]
) -> OntologyGraph:
    """
    Replace the named parents of each overridden term in a module graph.

    Object properties get SubObjectPropertyOf edges, everything else
    SubClassOf edges.
    """
    overrides = {term: parents for term, parents in overrides.items() if parents}
    if not overrides:
        return graph.with_axioms(graph.axioms)

    properties = graph.object_properties
    axioms: Set[Axiom] = set()
    for axiom in graph.axioms:
        if isinstance(axiom, SubClassOf) and axiom.is_named_edge and axiom.child in overrides:
            continue
        if isinstance(axiom, SubObjectPropertyOf) and axiom.sub in overrides:
            continue
        axioms.add(axiom)

    for term, parents in overrides.items():
        is_property = term in properties
        kind = EntityType.OBJECT_PROPERTY if is_property else EntityType.CLASS
        axioms.add(Declaration(Entity(term, kind)))
        for parent in parents:
            axioms.add(Declaration(Entity(parent, kind)))
            if is_property:
                axioms.add(SubObjectPropertyOf(term, parent))
            else:
                axioms.add(SubClassOf(NamedClass(term), NamedClass(parent)))

    return graph.with_axioms(axioms)


__all__ = [
    'removable_nodes',
    'prune_hierarchy',
    'prune_module',
    'apply_parent_overrides',
    'apply_module_overrides',
]
