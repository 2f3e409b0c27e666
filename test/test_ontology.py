"""
Tests for the core ontology module.
"""

import pytest
from rdflib import Literal, URIRef

from ontoslice.core.ontology import (
    AnnotationAssertion, ClassAssertion, Declaration, DisjointClasses, Entity,
    EntityType, EquivalentClasses, NamedClass, Nothing, ObjectAllValuesFrom,
    ObjectComplementOf, ObjectHasValue, ObjectIntersectionOf, ObjectOneOf,
    ObjectPropertyAssertion, ObjectSomeValuesFrom, ObjectUnionOf,
    OntologyAnnotation, OntologyGraph, SubClassOf, SubObjectPropertyOf, Thing,
    RDFS_LABEL, declarations_for, make_intersection, make_union, short_form
)

EX = "http://example.org/"
A, B, C, D = (EX + n for n in "ABCD")
R = EX + "r"


class TestClassExpressions:
    """Test cases for class expressions."""

    def test_thing_and_nothing(self):
        """Test builtin expressions have empty signatures."""
        assert Thing().signature == set()
        assert Nothing().signature == set()
        assert Thing() == Thing()
        assert str(Thing()) == "owl:Thing"

    def test_named_class(self):
        """Test NamedClass properties."""
        a = NamedClass(A)
        assert a.signature == {A}
        assert a.is_named
        assert a.named_classes == {A}
        assert str(a) == "A"

    def test_named_class_equality(self):
        """Test NamedClass equality and hashing."""
        assert NamedClass(A) == NamedClass(A)
        assert NamedClass(A) != NamedClass(B)
        assert hash(NamedClass(A)) == hash(NamedClass(A))

    def test_restriction_signature(self):
        """Test restrictions report property and filler symbols."""
        some = ObjectSomeValuesFrom(R, NamedClass(B))
        assert some.signature == {R, B}
        assert Entity(R, EntityType.OBJECT_PROPERTY) in some.entities
        assert not some.is_named
        assert str(some) == "r some B"

        only = ObjectAllValuesFrom(R, ObjectComplementOf(NamedClass(C)))
        assert only.signature == {R, C}
        assert str(only) == "r only not C"

    def test_individual_expressions(self):
        """Test hasValue and oneOf expose individuals."""
        has_value = ObjectHasValue(R, EX + "a")
        assert has_value.individuals == {EX + "a"}
        one_of = ObjectOneOf(frozenset({EX + "a", EX + "b"}))
        assert one_of.individuals == {EX + "a", EX + "b"}
        assert one_of.named_classes == set()

    def test_boolean_expressions(self):
        """Test intersection and union signatures."""
        conj = ObjectIntersectionOf(frozenset({NamedClass(A), NamedClass(B)}))
        disj = ObjectUnionOf(frozenset({NamedClass(A), NamedClass(C)}))
        assert conj.signature == {A, B}
        assert disj.signature == {A, C}

    def test_make_intersection_flattens(self):
        """Test intersection construction simplifies."""
        inner = make_intersection(NamedClass(A), NamedClass(B))
        outer = make_intersection(inner, NamedClass(C))
        assert isinstance(outer, ObjectIntersectionOf)
        assert len(outer.operands) == 3
        assert make_intersection(NamedClass(A), Thing()) == NamedClass(A)
        assert make_intersection(NamedClass(A), Nothing()) == Nothing()
        assert make_intersection() == Thing()

    def test_make_union_simplifies(self):
        """Test union construction simplifies."""
        assert make_union(NamedClass(A), Nothing()) == NamedClass(A)
        assert make_union(NamedClass(A), Thing()) == Thing()
        assert make_union() == Nothing()


class TestAxioms:
    """Test cases for axioms."""

    def test_subclass_named_edge(self):
        """Test named SubClassOf exposes child and parent."""
        axiom = SubClassOf(NamedClass(A), NamedClass(B))
        assert axiom.is_named_edge
        assert axiom.child == A
        assert axiom.parent == B
        assert axiom.is_logical

    def test_subclass_with_restriction(self):
        """Test SubClassOf with an anonymous superclass."""
        axiom = SubClassOf(NamedClass(A), ObjectSomeValuesFrom(R, NamedClass(B)))
        assert not axiom.is_named_edge
        assert axiom.parent is None
        assert axiom.signature == {A, R, B}

    def test_duplicate_axioms_collapse(self):
        """Test that equal axioms collapse in sets."""
        axioms = {
            SubClassOf(NamedClass(A), NamedClass(B)),
            SubClassOf(NamedClass(A), NamedClass(B)),
            EquivalentClasses(frozenset({NamedClass(A), NamedClass(C)})),
            EquivalentClasses(frozenset({NamedClass(C), NamedClass(A)})),
        }
        assert len(axioms) == 2

    def test_non_logical_axioms(self):
        """Test declarations and annotations are not logical."""
        decl = Declaration(Entity(A, EntityType.CLASS))
        ann = AnnotationAssertion(A, RDFS_LABEL, Literal("a"))
        onto = OntologyAnnotation(RDFS_LABEL, Literal("onto"))
        assert not decl.is_logical
        assert not ann.is_logical
        assert not onto.is_logical

    def test_annotation_signature(self):
        """Test annotation signature covers subject and property."""
        ann = AnnotationAssertion(A, RDFS_LABEL, Literal("a"))
        assert ann.signature == {A, RDFS_LABEL}
        moved = ann.with_property(EX + "altLabel")
        assert moved.subject == A
        assert moved.value == Literal("a")
        assert moved.property == EX + "altLabel"

    def test_assertion_entities(self):
        """Test ABox axioms type their individuals."""
        assertion = ClassAssertion(EX + "a", NamedClass(A))
        assert Entity(EX + "a", EntityType.INDIVIDUAL) in assertion.entities
        triple = ObjectPropertyAssertion(R, EX + "a", EX + "b")
        assert triple.signature == {R, EX + "a", EX + "b"}

    def test_declarations_skip_builtins(self):
        """Test declarations_for skips owl:Thing."""
        entities = {
            Entity(A, EntityType.CLASS),
            Entity("http://www.w3.org/2002/07/owl#Thing", EntityType.CLASS),
        }
        assert declarations_for(entities) == {Declaration(Entity(A, EntityType.CLASS))}

    def test_short_form(self):
        """Test local names of IRIs."""
        assert short_form("http://purl.obolibrary.org/obo/GO_0005739") == "GO_0005739"
        assert short_form("http://www.w3.org/2002/07/owl#Thing") == "Thing"
        assert short_form("<http://example.org/x/>") == "x"


class TestOntologyGraph:
    """Test cases for OntologyGraph."""

    def _graph(self):
        return OntologyGraph({
            SubClassOf(NamedClass(A), NamedClass(B)),
            SubClassOf(NamedClass(B), NamedClass(C)),
            SubClassOf(NamedClass(A), ObjectSomeValuesFrom(R, NamedClass(D))),
            SubObjectPropertyOf(R, EX + "s"),
            ClassAssertion(EX + "a", NamedClass(A)),
            AnnotationAssertion(A, RDFS_LABEL, Literal("alpha")),
            AnnotationAssertion(B, RDFS_LABEL, Literal("beta")),
            OntologyAnnotation(EX + "version", Literal("1")),
        }, iri=EX + "onto")

    def test_signature(self):
        """Test signature covers every referenced entity."""
        graph = self._graph()
        assert {A, B, C, D, R, EX + "s", EX + "a", RDFS_LABEL} <= graph.signature
        assert EX + "version" not in graph.signature

    def test_entity_kinds(self):
        """Test entity kinds are inferred from axioms."""
        graph = self._graph()
        assert {A, B, C, D} <= graph.classes
        assert graph.object_properties == {R, EX + "s"}
        assert graph.individuals == {EX + "a"}

    def test_edges(self):
        """Test named subclass and subproperty edges."""
        graph = self._graph()
        assert graph.subclass_edges() == {(A, B), (B, C)}
        assert graph.subproperty_edges() == {(R, EX + "s")}

    def test_labels_and_annotations(self):
        """Test label map and ontology annotations."""
        graph = self._graph()
        assert graph.labels() == {"alpha": {A}, "beta": {B}}
        assert len(graph.ontology_annotations) == 1

    def test_logical_axioms(self):
        """Test logical axioms exclude annotations."""
        graph = self._graph()
        assert len(graph.logical_axioms) == 5
        assert all(ax.is_logical for ax in graph.logical_axioms)

    def test_axioms_returns_copy(self):
        """Test that the axiom set cannot be mutated from outside."""
        graph = self._graph()
        size = len(graph)
        graph.axioms.clear()
        assert len(graph) == size

    def test_with_axioms_leaves_original(self):
        """Test with_axioms returns a new graph."""
        graph = self._graph()
        smaller = graph.with_axioms({SubClassOf(NamedClass(A), NamedClass(B))})
        assert len(smaller) == 1
        assert smaller.iri == graph.iri
        assert len(graph) == 8

    def test_cache_invalidation(self):
        """Test signature cache is refreshed after mutation."""
        graph = OntologyGraph()
        assert graph.signature == set()
        graph.add_axiom(SubClassOf(NamedClass(A), NamedClass(B)))
        assert graph.signature == {A, B}
        graph.add_axiom(SubClassOf(NamedClass(B), NamedClass(C)))
        assert graph.signature == {A, B, C}


class TestImportClosure:
    """Test cases for imports."""

    def test_closure_axioms(self):
        """Test closure unions own and imported axioms."""
        imported = OntologyGraph({SubClassOf(NamedClass(B), NamedClass(C))}, iri=EX + "imp")
        graph = OntologyGraph({SubClassOf(NamedClass(A), NamedClass(B))}, imports=[imported])
        assert len(graph.axioms) == 1
        assert len(graph.closure_axioms()) == 2
        assert graph.merged().imports == []
        assert len(graph.merged()) == 2

    def test_transitive_imports(self):
        """Test imports of imports are included."""
        g3 = OntologyGraph({SubClassOf(NamedClass(C), NamedClass(D))})
        g2 = OntologyGraph({SubClassOf(NamedClass(B), NamedClass(C))}, imports=[g3])
        g1 = OntologyGraph({SubClassOf(NamedClass(A), NamedClass(B))}, imports=[g2])
        assert g1.import_closure() == [g1, g2, g3]
        assert len(g1.closure_axioms()) == 3

    def test_import_cycle(self):
        """Test cyclic imports terminate and deduplicate."""
        g1 = OntologyGraph({SubClassOf(NamedClass(A), NamedClass(B))})
        g2 = OntologyGraph({SubClassOf(NamedClass(B), NamedClass(C))}, imports=[g1])
        g1.imports.append(g2)
        assert len(g1.import_closure()) == 2
        assert len(g1.closure_axioms()) == 2

    def test_shared_import(self):
        """Test diamond imports appear once."""
        shared = OntologyGraph({SubClassOf(NamedClass(C), NamedClass(D))})
        left = OntologyGraph(imports=[shared])
        right = OntologyGraph(imports=[shared])
        top = OntologyGraph(imports=[left, right])
        assert len(top.import_closure()) == 4
