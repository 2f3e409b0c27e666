"""
Tests for intermediate pruning and parent overrides.
"""

import pytest
from rdflib import Literal

from ontoslice.core.errors import InvalidIntermediatesPolicyError
from ontoslice.core.hierarchy import Hierarchy
from ontoslice.core.intermediates import (
    apply_module_overrides, apply_parent_overrides, prune_hierarchy,
    prune_module, removable_nodes
)
from ontoslice.core.ontology import (
    AnnotationAssertion, Declaration, Entity, EntityType, NamedClass,
    ObjectSomeValuesFrom, OntologyGraph, SubClassOf, SubObjectPropertyOf,
    RDFS_LABEL
)


def sub(child, parent):
    return SubClassOf(NamedClass(child), NamedClass(parent))


def chain():
    """E < A < B < C < Root"""
    return Hierarchy.from_edges([("E", "A"), ("A", "B"), ("B", "C"), ("C", "Root")])


def diamond():
    """E < D, D < B, D < C, B < A, C < A"""
    return Hierarchy.from_edges([("E", "D"), ("D", "B"), ("D", "C"), ("B", "A"), ("C", "A")])


class TestPruneHierarchy:
    """Test cases for hierarchy pruning."""

    def test_all_keeps_everything(self):
        """Test the all policy is the identity."""
        h = chain()
        assert prune_hierarchy(h, "all", keep={"E"}) == h

    def test_none_on_chain(self):
        """Test the none policy keeps only requested terms, roots and leaves."""
        pruned = prune_hierarchy(chain(), "none", keep={"E"})
        assert pruned.nodes == {"E", "Root"}
        assert pruned.edges == {("E", "Root")}

    def test_minimal_on_chain(self):
        """Test single-parent single-child nodes collapse."""
        pruned = prune_hierarchy(chain(), "minimal", keep={"E"})
        assert pruned.edges == {("E", "Root")}

    def test_minimal_keeps_branching_nodes(self):
        """Test nodes with several parents survive minimal pruning."""
        pruned = prune_hierarchy(diamond(), "minimal", keep={"E"})
        assert pruned.nodes == {"E", "D", "A"}
        assert pruned.edges == {("E", "D"), ("D", "A")}

    def test_none_on_diamond(self):
        """Test every intermediate is removed under none."""
        pruned = prune_hierarchy(diamond(), "none", keep={"E"})
        assert pruned.edges == {("E", "A")}

    def test_requested_terms_survive(self):
        """Test kept terms are never removed."""
        pruned = prune_hierarchy(diamond(), "none", keep={"E", "B"})
        assert "B" in pruned
        assert "D" not in pruned
        assert "B" in pruned.ancestors("E")

    def test_result_independent_of_order(self):
        """Test removal decisions use the input hierarchy."""
        h = chain()
        assert removable_nodes(h, "minimal", keep={"E"}) == {"A", "B", "C"}
        assert removable_nodes(h, "all") == set()

    def test_input_not_modified(self):
        """Test the input hierarchy is left intact."""
        h = chain()
        prune_hierarchy(h, "none")
        assert len(h) == 5

    def test_unknown_policy(self):
        """Test unknown policy tokens are rejected."""
        with pytest.raises(InvalidIntermediatesPolicyError):
            prune_hierarchy(chain(), "some")


class TestPruneModule:
    """Test cases for pruning extracted module graphs."""

    def _module(self):
        return OntologyGraph({
            sub("E", "A"), sub("A", "B"), sub("B", "C"),
            SubClassOf(NamedClass("A"), ObjectSomeValuesFrom("r", NamedClass("F"))),
            Declaration(Entity("B", EntityType.CLASS)),
            Declaration(Entity("C", EntityType.CLASS)),
            AnnotationAssertion("B", RDFS_LABEL, Literal("b")),
        }, iri="http://example.org/m")

    def test_bridges_removed_classes(self):
        """Test an unreferenced intermediate is bridged out."""
        pruned = prune_module(self._module(), "none", keep={"E"})
        assert sub("A", "C") in pruned
        assert sub("A", "B") not in pruned
        assert sub("B", "C") not in pruned
        assert Declaration(Entity("B", EntityType.CLASS)) not in pruned
        assert AnnotationAssertion("B", RDFS_LABEL, Literal("b")) not in pruned
        assert pruned.iri == "http://example.org/m"

    def test_referenced_classes_survive(self):
        """Test classes used in other logical axioms are kept."""
        pruned = prune_module(self._module(), "none", keep={"E"})
        assert sub("E", "A") in pruned
        assert SubClassOf(NamedClass("A"), ObjectSomeValuesFrom("r", NamedClass("F"))) in pruned

    def test_all_is_identity(self):
        """Test the all policy returns the same axioms."""
        module = self._module()
        assert prune_module(module, "all").axioms == module.axioms


class TestParentOverrides:
    """Test cases for overriding parents."""

    def test_override_replaces_parents(self):
        """Test overridden parents replace the originals."""
        h = Hierarchy.from_edges([("A", "B"), ("B", "C"), ("X", "Y")])
        result = apply_parent_overrides(h, {"A": ["X"]}, anchors={"A"})
        assert result.parents("A") == {"X"}
        assert result.nodes == {"A", "X", "Y"}

    def test_other_anchors_keep_ancestors(self):
        """Test ancestors of other anchors are retained."""
        h = Hierarchy.from_edges([("A", "B"), ("B", "C"), ("X", "Y")])
        result = apply_parent_overrides(h, {"A": ["X"]}, anchors={"A", "B"})
        assert result.nodes == {"A", "B", "C", "X", "Y"}
        assert ("A", "B") not in result.edges

    def test_kept_nodes_survive(self):
        """Test kept nodes stay even when cut off by an override."""
        h = Hierarchy.from_edges([("A", "B"), ("B", "C"), ("X", "Y")])
        result = apply_parent_overrides(h, {"A": ["X"]}, anchors={"A"}, keep={"C", "Z"})
        assert result.nodes == {"A", "C", "X", "Y"}
        assert result.parents("C") == set()

    def test_new_term(self):
        """Test overriding a term not yet in the hierarchy adds it."""
        h = Hierarchy.from_edges([("X", "Y")])
        result = apply_parent_overrides(h, {"N": ["X"]}, anchors={"N"})
        assert result.edges == {("N", "X"), ("X", "Y")}

    def test_empty_parents_ignored(self):
        """Test terms without parents are not overrides."""
        h = Hierarchy.from_edges([("A", "B")])
        assert apply_parent_overrides(h, {"A": []}, anchors={"A"}) == h

    def test_module_overrides(self):
        """Test module overrides for classes and properties."""
        graph = OntologyGraph({
            sub("A", "B"),
            SubClassOf(NamedClass("A"), ObjectSomeValuesFrom("r", NamedClass("F"))),
            SubObjectPropertyOf("p", "q"),
        })
        result = apply_module_overrides(graph, {"A": ["X"], "p": ["s"]})
        assert sub("A", "X") in result
        assert sub("A", "B") not in result
        assert SubClassOf(NamedClass("A"), ObjectSomeValuesFrom("r", NamedClass("F"))) in result
        assert SubObjectPropertyOf("p", "s") in result
        assert SubObjectPropertyOf("p", "q") not in result
        assert Declaration(Entity("X", EntityType.CLASS)) in result
        assert Declaration(Entity("s", EntityType.OBJECT_PROPERTY)) in result
