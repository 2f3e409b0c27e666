"""
ontoslice: Term-Driven Ontology Module Extraction
OWL Writer Utility

Serializes an OntologyGraph with rdflib. Class expressions become the
standard OWL blank-node structures.
"""

from __future__ import annotations
from pathlib import Path
from typing import Dict, Optional, Union
import logging

from rdflib import BNode, Graph, URIRef
from rdflib.collection import Collection
from rdflib.namespace import OWL, RDF, RDFS
from rdflib.term import Node

from ..core.errors import SaveError
from ..core.ontology import (
    AnnotationAssertion, ClassAssertion, ClassExpression, Declaration,
    DisjointClasses, EntityType, EquivalentClasses, NamedClass, Nothing,
    ObjectAllValuesFrom, ObjectComplementOf, ObjectHasValue,
    ObjectIntersectionOf, ObjectOneOf, ObjectPropertyAssertion,
    ObjectSomeValuesFrom, ObjectUnionOf, OntologyAnnotation, OntologyGraph,
    SubClassOf, SubObjectPropertyOf, Thing
)
from ..core.terms import OBO_BASE

logger = logging.getLogger(__name__)

SUFFIX_FORMATS: Dict[str, str] = {
    '.owl': 'xml',
    '.rdf': 'xml',
    '.xml': 'xml',
    '.ttl': 'turtle',
    '.nt': 'nt',
    '.n3': 'n3',
    '.jsonld': 'json-ld',
    '.trig': 'trig',
}

ENTITY_TYPES = {
    EntityType.CLASS: OWL.Class,
    EntityType.OBJECT_PROPERTY: OWL.ObjectProperty,
    EntityType.DATA_PROPERTY: OWL.DatatypeProperty,
    EntityType.ANNOTATION_PROPERTY: OWL.AnnotationProperty,
    EntityType.INDIVIDUAL: OWL.NamedIndividual,
}


class OWLWriter:
    """Writes OntologyGraphs to any rdflib serialization."""

    def __init__(self, prefixes: Optional[Dict[str, str]] = None):
        self.prefixes = {"obo": OBO_BASE}
        if prefixes:
            self.prefixes.update(prefixes)

    def format_for(self, destination: Union[str, Path]) -> str:
        suffix = Path(destination).suffix.lower()
        if suffix not in SUFFIX_FORMATS:
            raise SaveError(
                f"Unsupported output format '{suffix}'; expected one of "
                f"{', '.join(sorted(SUFFIX_FORMATS))}",
                token=str(destination)
            )
        return SUFFIX_FORMATS[suffix]

    def to_rdflib(self, graph: OntologyGraph) -> Graph:
        """Convert an OntologyGraph to an rdflib Graph."""
        rdf = Graph()
        for prefix, namespace in self.prefixes.items():
            rdf.bind(prefix, namespace)

        ontology = URIRef(graph.iri) if graph.iri else BNode()
        rdf.add((ontology, RDF.type, OWL.Ontology))
        for imported in graph.imports:
            if imported.iri:
                rdf.add((ontology, OWL.imports, URIRef(imported.iri)))

        for axiom in sorted(graph.axioms, key=str):
            if isinstance(axiom, Declaration):
                rdf.add((URIRef(axiom.entity.iri), RDF.type, ENTITY_TYPES[axiom.entity.entity_type]))
            elif isinstance(axiom, SubClassOf):
                rdf.add((self._node(rdf, axiom.sub), RDFS.subClassOf, self._node(rdf, axiom.sup)))
            elif isinstance(axiom, EquivalentClasses):
                operands = sorted(axiom.operands, key=lambda c: (not c.is_named, str(c)))
                first = self._node(rdf, operands[0])
                for other in operands[1:]:
                    rdf.add((first, OWL.equivalentClass, self._node(rdf, other)))
            elif isinstance(axiom, DisjointClasses):
                operands = sorted(axiom.operands, key=str)
                if len(operands) == 2:
                    rdf.add((self._node(rdf, operands[0]), OWL.disjointWith,
                             self._node(rdf, operands[1])))
                else:
                    node = BNode()
                    rdf.add((node, RDF.type, OWL.AllDisjointClasses))
                    rdf.add((node, OWL.members, self._list(rdf, [self._node(rdf, op) for op in operands])))
            elif isinstance(axiom, SubObjectPropertyOf):
                rdf.add((URIRef(axiom.sub), RDFS.subPropertyOf, URIRef(axiom.sup)))
            elif isinstance(axiom, ClassAssertion):
                rdf.add((URIRef(axiom.individual), RDF.type, self._node(rdf, axiom.class_expression)))
            elif isinstance(axiom, ObjectPropertyAssertion):
                rdf.add((URIRef(axiom.subject), URIRef(axiom.property), URIRef(axiom.object)))
            elif isinstance(axiom, AnnotationAssertion):
                rdf.add((URIRef(axiom.subject), URIRef(axiom.property), axiom.value))
            elif isinstance(axiom, OntologyAnnotation):
                rdf.add((ontology, URIRef(axiom.property), axiom.value))

        return rdf

    @staticmethod
    def _list(rdf: Graph, items) -> BNode:
        head = BNode()
        Collection(rdf, head, list(items))
        return head

    def _node(self, rdf: Graph, expr: ClassExpression) -> Node:
        """Return the RDF node for a class expression, adding its triples."""
        if isinstance(expr, NamedClass):
            return URIRef(expr.iri)
        if isinstance(expr, Thing):
            return OWL.Thing
        if isinstance(expr, Nothing):
            return OWL.Nothing

        node = BNode()
        if isinstance(expr, (ObjectIntersectionOf, ObjectUnionOf)):
            predicate = OWL.intersectionOf if isinstance(expr, ObjectIntersectionOf) else OWL.unionOf
            operands = [self._node(rdf, op) for op in sorted(expr.operands, key=str)]
            rdf.add((node, RDF.type, OWL.Class))
            rdf.add((node, predicate, self._list(rdf, operands)))
        elif isinstance(expr, ObjectComplementOf):
            rdf.add((node, RDF.type, OWL.Class))
            rdf.add((node, OWL.complementOf, self._node(rdf, expr.operand)))
        elif isinstance(expr, ObjectOneOf):
            rdf.add((node, RDF.type, OWL.Class))
            rdf.add((node, OWL.oneOf, self._list(rdf, [URIRef(m) for m in sorted(expr.members)])))
        elif isinstance(expr, ObjectSomeValuesFrom):
            rdf.add((node, RDF.type, OWL.Restriction))
            rdf.add((node, OWL.onProperty, URIRef(expr.property)))
            rdf.add((node, OWL.someValuesFrom, self._node(rdf, expr.filler)))
        elif isinstance(expr, ObjectAllValuesFrom):
            rdf.add((node, RDF.type, OWL.Restriction))
            rdf.add((node, OWL.onProperty, URIRef(expr.property)))
            rdf.add((node, OWL.allValuesFrom, self._node(rdf, expr.filler)))
        elif isinstance(expr, ObjectHasValue):
            rdf.add((node, RDF.type, OWL.Restriction))
            rdf.add((node, OWL.onProperty, URIRef(expr.property)))
            rdf.add((node, OWL.hasValue, URIRef(expr.individual)))
        else:
            raise SaveError(f"Cannot serialize class expression {expr}")
        return node

    def serialize(self, graph: OntologyGraph, fmt: str = 'turtle') -> str:
        """Serialize to a string."""
        try:
            return self.to_rdflib(graph).serialize(format=fmt)
        except SaveError:
            raise
        except Exception as e:
            raise SaveError(f"Failed to serialize ontology as {fmt}: {e}") from e

    def save(self, graph: OntologyGraph, destination: Union[str, Path]) -> Path:
        """
        Write the graph to a file, choosing the format from the suffix.

        Returns:
            The path written
        """
        path = Path(destination)
        fmt = self.format_for(path)
        rdf = self.to_rdflib(graph)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            rdf.serialize(destination=str(path), format=fmt)
        except Exception as e:
            raise SaveError(f"Failed to write {path}: {e}") from e
        logger.info(f"Saved {len(graph)} axioms to {path}")
        return path


def save_owl(graph: OntologyGraph, destination: Union[str, Path]) -> Path:
    """Convenience function to write a graph to a file."""
    return OWLWriter().save(graph, destination)


__all__ = [
    'OWLWriter',
    'save_owl',
    'SUFFIX_FORMATS',
]
