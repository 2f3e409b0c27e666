"""
ontoslice: Term-Driven Ontology Module Extraction
Core Ontology Module - Entity/Axiom Graph Representation

This module provides classes for representing OWL entities, class expressions,
axioms and ontology graphs with their import closure.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Set, List, Optional, Dict, FrozenSet, Iterator, Iterable, Tuple
from enum import Enum, auto

from rdflib import Literal
from rdflib.namespace import OWL, RDFS
from rdflib.term import Node

OWL_THING = str(OWL.Thing)
OWL_NOTHING = str(OWL.Nothing)
RDFS_LABEL = str(RDFS.label)
RDFS_IS_DEFINED_BY = str(RDFS.isDefinedBy)

BUILTIN_IRIS = frozenset({OWL_THING, OWL_NOTHING})


def short_form(iri: str) -> str:
    """Return the local name of an IRI (fragment or last path segment)."""
    if not iri:
        return ""
    if iri.startswith('<') and iri.endswith('>'):
        iri = iri[1:-1]
    if '#' in iri:
        return iri.rsplit('#', 1)[-1]
    if '/' in iri:
        return iri.rstrip('/').rsplit('/', 1)[-1]
    return iri


class EntityType(Enum):
    """Kinds of named entities."""
    CLASS = auto()
    OBJECT_PROPERTY = auto()
    DATA_PROPERTY = auto()
    ANNOTATION_PROPERTY = auto()
    INDIVIDUAL = auto()


@dataclass(frozen=True)
class Entity:
    """A named entity: an IRI tagged with its kind."""
    iri: str
    entity_type: EntityType

    def __str__(self) -> str:
        return f"{self.entity_type.name}({short_form(self.iri)})"


class ExpressionType(Enum):
    """Enumeration of supported class expression types."""
    THING = auto()
    NOTHING = auto()
    NAMED = auto()
    COMPLEMENT = auto()
    INTERSECTION = auto()
    UNION = auto()
    SOME_VALUES = auto()
    ALL_VALUES = auto()
    HAS_VALUE = auto()
    ONE_OF = auto()


class ClassExpression(ABC):
    """
    Abstract base class for OWL class expressions.

    Supported expressions:
    - owl:Thing, owl:Nothing
    - A (named class)
    - not C, C and D, C or D
    - r some C, r only C, r value a
    - {a, b, ...}
    """

    @property
    @abstractmethod
    def expression_type(self) -> ExpressionType:
        """Return the type of this expression."""
        pass

    @property
    @abstractmethod
    def entities(self) -> Set[Entity]:
        """Return the named entities used in this expression."""
        pass

    @property
    def signature(self) -> Set[str]:
        """Return the IRIs of all entities used in this expression."""
        return {e.iri for e in self.entities}

    @property
    def named_classes(self) -> Set[str]:
        return {e.iri for e in self.entities if e.entity_type == EntityType.CLASS}

    @property
    def individuals(self) -> Set[str]:
        return {e.iri for e in self.entities if e.entity_type == EntityType.INDIVIDUAL}

    @property
    def is_named(self) -> bool:
        return False

    @abstractmethod
    def __str__(self) -> str:
        pass

    def __repr__(self) -> str:
        return str(self)


@dataclass(frozen=True)
class Thing(ClassExpression):
    """Represents owl:Thing."""

    @property
    def expression_type(self) -> ExpressionType:
        return ExpressionType.THING

    @property
    def entities(self) -> Set[Entity]:
        return set()

    def __str__(self) -> str:
        return "owl:Thing"


@dataclass(frozen=True)
class Nothing(ClassExpression):
    """Represents owl:Nothing."""

    @property
    def expression_type(self) -> ExpressionType:
        return ExpressionType.NOTHING

    @property
    def entities(self) -> Set[Entity]:
        return set()

    def __str__(self) -> str:
        return "owl:Nothing"


@dataclass(frozen=True)
class NamedClass(ClassExpression):
    """Represents a named class A."""
    iri: str

    @property
    def expression_type(self) -> ExpressionType:
        return ExpressionType.NAMED

    @property
    def entities(self) -> Set[Entity]:
        return {Entity(self.iri, EntityType.CLASS)}

    @property
    def is_named(self) -> bool:
        return True

    def __str__(self) -> str:
        return short_form(self.iri)


@dataclass(frozen=True)
class ObjectComplementOf(ClassExpression):
    """Represents negation: not C."""
    operand: ClassExpression

    @property
    def expression_type(self) -> ExpressionType:
        return ExpressionType.COMPLEMENT

    @property
    def entities(self) -> Set[Entity]:
        return self.operand.entities

    def __str__(self) -> str:
        if self.operand.is_named:
            return f"not {self.operand}"
        return f"not ({self.operand})"


@dataclass(frozen=True)
class ObjectIntersectionOf(ClassExpression):
    """Represents conjunction C and D (and multiple operands)."""
    operands: FrozenSet[ClassExpression]

    @property
    def expression_type(self) -> ExpressionType:
        return ExpressionType.INTERSECTION

    @property
    def entities(self) -> Set[Entity]:
        result = set()
        for op in self.operands:
            result.update(op.entities)
        return result

    def __str__(self) -> str:
        parts = sorted(str(op) for op in self.operands)
        return f"({' and '.join(parts)})"


@dataclass(frozen=True)
class ObjectUnionOf(ClassExpression):
    """Represents disjunction C or D (and multiple operands)."""
    operands: FrozenSet[ClassExpression]

    @property
    def expression_type(self) -> ExpressionType:
        return ExpressionType.UNION

    @property
    def entities(self) -> Set[Entity]:
        result = set()
        for op in self.operands:
            result.update(op.entities)
        return result

    def __str__(self) -> str:
        parts = sorted(str(op) for op in self.operands)
        return f"({' or '.join(parts)})"


@dataclass(frozen=True)
class ObjectSomeValuesFrom(ClassExpression):
    """Represents existential restriction: r some C."""
    property: str
    filler: ClassExpression

    @property
    def expression_type(self) -> ExpressionType:
        return ExpressionType.SOME_VALUES

    @property
    def entities(self) -> Set[Entity]:
        return {Entity(self.property, EntityType.OBJECT_PROPERTY)} | self.filler.entities

    def __str__(self) -> str:
        return f"{short_form(self.property)} some {self.filler}"


@dataclass(frozen=True)
class ObjectAllValuesFrom(ClassExpression):
    """Represents universal restriction: r only C."""
    property: str
    filler: ClassExpression

    @property
    def expression_type(self) -> ExpressionType:
        return ExpressionType.ALL_VALUES

    @property
    def entities(self) -> Set[Entity]:
        return {Entity(self.property, EntityType.OBJECT_PROPERTY)} | self.filler.entities

    def __str__(self) -> str:
        return f"{short_form(self.property)} only {self.filler}"


@dataclass(frozen=True)
class ObjectHasValue(ClassExpression):
    """Represents a value restriction: r value a."""
    property: str
    individual: str

    @property
    def expression_type(self) -> ExpressionType:
        return ExpressionType.HAS_VALUE

    @property
    def entities(self) -> Set[Entity]:
        return {
            Entity(self.property, EntityType.OBJECT_PROPERTY),
            Entity(self.individual, EntityType.INDIVIDUAL),
        }

    def __str__(self) -> str:
        return f"{short_form(self.property)} value {short_form(self.individual)}"


@dataclass(frozen=True)
class ObjectOneOf(ClassExpression):
    """Represents an enumeration of individuals: {a, b}."""
    members: FrozenSet[str]

    @property
    def expression_type(self) -> ExpressionType:
        return ExpressionType.ONE_OF

    @property
    def entities(self) -> Set[Entity]:
        return {Entity(m, EntityType.INDIVIDUAL) for m in self.members}

    def __str__(self) -> str:
        parts = sorted(short_form(m) for m in self.members)
        return "{" + ", ".join(parts) + "}"


class Axiom(ABC):
    """Base class for axioms. Subclasses are frozen dataclasses."""

    is_logical = True

    @property
    @abstractmethod
    def entities(self) -> Set[Entity]:
        """Return the typed entities referenced by this axiom."""
        pass

    @property
    def signature(self) -> Set[str]:
        """Return the IRIs referenced by this axiom."""
        return {e.iri for e in self.entities}

    def __repr__(self) -> str:
        return str(self)


@dataclass(frozen=True)
class Declaration(Axiom):
    """Declaration(entity)"""
    entity: Entity

    is_logical = False

    @property
    def entities(self) -> Set[Entity]:
        return {self.entity}

    def __str__(self) -> str:
        return f"Declaration({self.entity})"


@dataclass(frozen=True)
class SubClassOf(Axiom):
    """SubClassOf(sub, sup): sub is subsumed by sup."""
    sub: ClassExpression
    sup: ClassExpression

    @property
    def entities(self) -> Set[Entity]:
        return self.sub.entities | self.sup.entities

    @property
    def is_named_edge(self) -> bool:
        """True when both sides are named classes."""
        return self.sub.is_named and self.sup.is_named

    @property
    def child(self) -> Optional[str]:
        return self.sub.iri if self.sub.is_named else None

    @property
    def parent(self) -> Optional[str]:
        return self.sup.iri if self.sup.is_named else None

    def __str__(self) -> str:
        return f"{self.sub} SubClassOf {self.sup}"


@dataclass(frozen=True)
class EquivalentClasses(Axiom):
    """EquivalentClasses(C1, ..., Cn)"""
    operands: FrozenSet[ClassExpression]

    @property
    def entities(self) -> Set[Entity]:
        result = set()
        for op in self.operands:
            result.update(op.entities)
        return result

    def __str__(self) -> str:
        return " EquivalentTo ".join(sorted(str(op) for op in self.operands))


@dataclass(frozen=True)
class DisjointClasses(Axiom):
    """DisjointClasses(C1, ..., Cn)"""
    operands: FrozenSet[ClassExpression]

    @property
    def entities(self) -> Set[Entity]:
        result = set()
        for op in self.operands:
            result.update(op.entities)
        return result

    def __str__(self) -> str:
        return " DisjointWith ".join(sorted(str(op) for op in self.operands))


@dataclass(frozen=True)
class SubObjectPropertyOf(Axiom):
    """SubObjectPropertyOf(sub, sup)"""
    sub: str
    sup: str

    @property
    def entities(self) -> Set[Entity]:
        return {
            Entity(self.sub, EntityType.OBJECT_PROPERTY),
            Entity(self.sup, EntityType.OBJECT_PROPERTY),
        }

    def __str__(self) -> str:
        return f"{short_form(self.sub)} SubPropertyOf {short_form(self.sup)}"


@dataclass(frozen=True)
class ClassAssertion(Axiom):
    """ClassAssertion(class_expression, individual)"""
    individual: str
    class_expression: ClassExpression

    @property
    def entities(self) -> Set[Entity]:
        return {Entity(self.individual, EntityType.INDIVIDUAL)} | self.class_expression.entities

    def __str__(self) -> str:
        return f"{short_form(self.individual)} Type {self.class_expression}"


@dataclass(frozen=True)
class ObjectPropertyAssertion(Axiom):
    """ObjectPropertyAssertion(property, subject, object)"""
    property: str
    subject: str
    object: str

    @property
    def entities(self) -> Set[Entity]:
        return {
            Entity(self.property, EntityType.OBJECT_PROPERTY),
            Entity(self.subject, EntityType.INDIVIDUAL),
            Entity(self.object, EntityType.INDIVIDUAL),
        }

    def __str__(self) -> str:
        return (
            f"{short_form(self.subject)} {short_form(self.property)} "
            f"{short_form(self.object)}"
        )


@dataclass(frozen=True)
class AnnotationAssertion(Axiom):
    """AnnotationAssertion(property, subject, value)"""
    subject: str
    property: str
    value: Node

    is_logical = False

    @property
    def entities(self) -> Set[Entity]:
        return {Entity(self.property, EntityType.ANNOTATION_PROPERTY)}

    @property
    def signature(self) -> Set[str]:
        return {self.subject, self.property}

    def with_property(self, property_iri: str) -> 'AnnotationAssertion':
        """Return the same assertion under another property."""
        return AnnotationAssertion(self.subject, property_iri, self.value)

    def __str__(self) -> str:
        if isinstance(self.value, Literal):
            value = f'"{self.value}"'
        else:
            value = short_form(str(self.value))
        return f"{short_form(self.subject)} {short_form(self.property)} {value}"


@dataclass(frozen=True)
class OntologyAnnotation(Axiom):
    """An annotation on the ontology itself."""
    property: str
    value: Node

    is_logical = False

    @property
    def entities(self) -> Set[Entity]:
        return {Entity(self.property, EntityType.ANNOTATION_PROPERTY)}

    def __str__(self) -> str:
        return f"Ontology {short_form(self.property)} {self.value}"


class OntologyGraph:
    """
    Represents an ontology: a set of axioms, an optional identifying IRI and
    the ontologies it imports.

    Graphs are treated as read-only once loaded; operations that transform a
    graph return a new one.
    """

    def __init__(
        self,
        axioms: Optional[Iterable[Axiom]] = None,
        iri: Optional[str] = None,
        imports: Optional[Iterable['OntologyGraph']] = None
    ):
        """Initialize the graph with a set of axioms."""
        self._axioms: Set[Axiom] = set(axioms) if axioms else set()
        self.iri = iri
        self.imports: List[OntologyGraph] = list(imports) if imports else []
        self._signature_cache: Optional[Set[str]] = None
        self._entity_cache: Optional[Set[Entity]] = None

    def add_axiom(self, axiom: Axiom) -> None:
        """Add an axiom to the graph."""
        self._axioms.add(axiom)
        self._invalidate_cache()

    def _invalidate_cache(self) -> None:
        self._signature_cache = None
        self._entity_cache = None

    @property
    def axioms(self) -> Set[Axiom]:
        """Return the axioms asserted in this graph (imports excluded)."""
        return self._axioms.copy()

    @property
    def logical_axioms(self) -> Set[Axiom]:
        return {ax for ax in self._axioms if ax.is_logical}

    @property
    def ontology_annotations(self) -> Set[OntologyAnnotation]:
        return {ax for ax in self._axioms if isinstance(ax, OntologyAnnotation)}

    @property
    def signature(self) -> Set[str]:
        """Return the IRIs of all entities referenced by asserted axioms."""
        if self._signature_cache is None:
            self._signature_cache = set()
            for axiom in self._axioms:
                if isinstance(axiom, OntologyAnnotation):
                    continue
                self._signature_cache.update(axiom.signature)
        return self._signature_cache.copy()

    @property
    def entities(self) -> Set[Entity]:
        """Return all typed entities referenced by asserted axioms."""
        if self._entity_cache is None:
            self._entity_cache = set()
            for axiom in self._axioms:
                self._entity_cache.update(axiom.entities)
        return self._entity_cache.copy()

    def _iris_of_type(self, entity_type: EntityType) -> Set[str]:
        return {e.iri for e in self.entities if e.entity_type == entity_type}

    @property
    def classes(self) -> Set[str]:
        return self._iris_of_type(EntityType.CLASS)

    @property
    def object_properties(self) -> Set[str]:
        return self._iris_of_type(EntityType.OBJECT_PROPERTY)

    @property
    def individuals(self) -> Set[str]:
        return self._iris_of_type(EntityType.INDIVIDUAL)

    def import_closure(self) -> List['OntologyGraph']:
        """
        Return this graph followed by every transitively imported graph.

        Each graph appears once, even when imports form a cycle.
        """
        closure: List[OntologyGraph] = []
        seen: Set[int] = set()
        stack = [self]
        while stack:
            graph = stack.pop(0)
            if id(graph) in seen:
                continue
            seen.add(id(graph))
            closure.append(graph)
            stack.extend(graph.imports)
        return closure

    def closure_axioms(self) -> Set[Axiom]:
        """Return the union of this graph's axioms and all imported axioms."""
        result: Set[Axiom] = set()
        for graph in self.import_closure():
            result.update(graph._axioms)
        return result

    def merged(self) -> 'OntologyGraph':
        """Return a new graph holding the whole import closure, without imports."""
        return OntologyGraph(self.closure_axioms(), iri=self.iri)

    def subclass_edges(self) -> Set[Tuple[str, str]]:
        """Return (child, parent) pairs of named SubClassOf axioms."""
        return {
            (ax.child, ax.parent) for ax in self._axioms
            if isinstance(ax, SubClassOf) and ax.is_named_edge
        }

    def subproperty_edges(self) -> Set[Tuple[str, str]]:
        """Return (child, parent) pairs of SubObjectPropertyOf axioms."""
        return {
            (ax.sub, ax.sup) for ax in self._axioms
            if isinstance(ax, SubObjectPropertyOf)
        }

    def labels(self) -> Dict[str, Set[str]]:
        """Return a map of rdfs:label text to the IRIs that carry it."""
        result: Dict[str, Set[str]] = {}
        for ax in self._axioms:
            if isinstance(ax, AnnotationAssertion) and ax.property == RDFS_LABEL:
                result.setdefault(str(ax.value), set()).add(ax.subject)
        return result

    def with_axioms(
        self,
        axioms: Iterable[Axiom],
        iri: Optional[str] = None
    ) -> 'OntologyGraph':
        """Return a new graph with the given axioms and no imports."""
        return OntologyGraph(axioms, iri=iri if iri is not None else self.iri)

    def copy(self) -> 'OntologyGraph':
        """Create a shallow copy (axioms are immutable)."""
        return OntologyGraph(self._axioms.copy(), iri=self.iri, imports=self.imports)

    def __len__(self) -> int:
        """Return the number of asserted axioms."""
        return len(self._axioms)

    def __iter__(self) -> Iterator[Axiom]:
        return iter(self._axioms)

    def __contains__(self, axiom: Axiom) -> bool:
        return axiom in self._axioms

    def __str__(self) -> str:
        name = self.iri or "anonymous ontology"
        lines = [f"{name} with {len(self)} axioms:"]
        for ax in sorted(self._axioms, key=str):
            lines.append(f"  {ax}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"OntologyGraph(iri={self.iri!r}, |axioms|={len(self)}, "
            f"|sig|={len(self.signature)}, |imports|={len(self.imports)})"
        )


def make_intersection(*operands: ClassExpression) -> ClassExpression:
    """Create an intersection, flattening nested intersections."""
    flat = set()
    for c in operands:
        if isinstance(c, ObjectIntersectionOf):
            flat.update(c.operands)
        elif not isinstance(c, Thing):
            flat.add(c)

    if len(flat) == 0:
        return Thing()
    if any(isinstance(c, Nothing) for c in flat):
        return Nothing()
    if len(flat) == 1:
        return next(iter(flat))

    return ObjectIntersectionOf(frozenset(flat))


def make_union(*operands: ClassExpression) -> ClassExpression:
    """Create a union, flattening nested unions."""
    flat = set()
    for c in operands:
        if isinstance(c, ObjectUnionOf):
            flat.update(c.operands)
        elif not isinstance(c, Nothing):
            flat.add(c)

    if len(flat) == 0:
        return Nothing()
    if any(isinstance(c, Thing) for c in flat):
        return Thing()
    if len(flat) == 1:
        return next(iter(flat))

    return ObjectUnionOf(frozenset(flat))


def declarations_for(graph_entities: Iterable[Entity]) -> Set[Declaration]:
    """Return Declaration axioms for the given entities, skipping builtins."""
    return {
        Declaration(e) for e in graph_entities
        if e.iri not in BUILTIN_IRIS
    }
