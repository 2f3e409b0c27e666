"""
ontoslice: Term-Driven Ontology Module Extraction
OWL Parser Utility

This module reads RDF serializations of OWL ontologies with rdflib and
converts them to the internal OntologyGraph representation, following
owl:imports.
"""

from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Set, Union
from urllib.parse import unquote, urlparse
import logging

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.collection import Collection
from rdflib.namespace import DC, DCTERMS, OWL, RDF, RDFS, SKOS
from rdflib.term import Node
from rdflib.util import guess_format

from ..core.errors import LoadError
from ..core.ontology import (
    AnnotationAssertion, Axiom, ClassAssertion, ClassExpression, Declaration,
    DisjointClasses, Entity, EntityType, EquivalentClasses, NamedClass, Nothing,
    ObjectAllValuesFrom, ObjectComplementOf, ObjectHasValue, ObjectOneOf,
    ObjectPropertyAssertion, ObjectSomeValuesFrom, OntologyAnnotation,
    OntologyGraph, SubClassOf, SubObjectPropertyOf, Thing, make_intersection,
    make_union
)

logger = logging.getLogger(__name__)

DECLARATION_TYPES = {
    OWL.Class: EntityType.CLASS,
    RDFS.Class: EntityType.CLASS,
    OWL.ObjectProperty: EntityType.OBJECT_PROPERTY,
    OWL.TransitiveProperty: EntityType.OBJECT_PROPERTY,
    OWL.SymmetricProperty: EntityType.OBJECT_PROPERTY,
    OWL.AsymmetricProperty: EntityType.OBJECT_PROPERTY,
    OWL.ReflexiveProperty: EntityType.OBJECT_PROPERTY,
    OWL.IrreflexiveProperty: EntityType.OBJECT_PROPERTY,
    OWL.InverseFunctionalProperty: EntityType.OBJECT_PROPERTY,
    OWL.DatatypeProperty: EntityType.DATA_PROPERTY,
    OWL.AnnotationProperty: EntityType.ANNOTATION_PROPERTY,
    OWL.NamedIndividual: EntityType.INDIVIDUAL,
}

# Types that never turn a subject into an individual
STRUCTURAL_TYPES = set(DECLARATION_TYPES) | {
    OWL.Ontology, OWL.Restriction, OWL.Axiom, OWL.AllDisjointClasses,
    OWL.FunctionalProperty, OWL.DeprecatedClass, OWL.DeprecatedProperty,
    RDF.Property, RDFS.Datatype, RDF.List, OWL.AllDifferent,
}

STRUCTURAL_PREDICATES = {
    RDF.type, RDFS.subClassOf, RDFS.subPropertyOf, RDFS.domain, RDFS.range,
    OWL.equivalentClass, OWL.disjointWith, OWL.equivalentProperty,
    OWL.inverseOf, OWL.propertyChainAxiom, OWL.imports, OWL.sameAs,
    OWL.differentFrom, OWL.members, OWL.intersectionOf, OWL.unionOf,
    OWL.complementOf, OWL.oneOf, OWL.onProperty, OWL.someValuesFrom,
    OWL.allValuesFrom, OWL.hasValue, OWL.disjointUnionOf, OWL.hasKey,
    OWL.propertyDisjointWith, RDF.first, RDF.rest,
}

ANNOTATION_NAMESPACES = (
    str(RDFS), str(SKOS), str(DC), str(DCTERMS),
    "http://www.geneontology.org/formats/oboInOwl#",
    "http://purl.obolibrary.org/obo/IAO_",
)

ONTOLOGY_SKIP = {RDF.type, OWL.imports, OWL.versionIRI}


class OWLParser:
    """
    Parser for RDF serializations of OWL ontologies.

    Supports every format rdflib can read (RDF/XML, Turtle, N-Triples,
    N3, JSON-LD, TriG). Axioms outside the supported class expression
    language are skipped with a debug message.
    """

    def __init__(
        self,
        follow_imports: bool = True,
        import_map: Optional[Mapping[str, str]] = None
    ):
        """
        Initialize the parser.

        Args:
            follow_imports: Load owl:imports recursively
            import_map: Optional ontology IRI -> local path overrides
        """
        self.follow_imports = follow_imports
        self.import_map = dict(import_map or {})
        self._cache: Dict[str, OntologyGraph] = {}

    def parse(self, source: Union[str, Path]) -> OntologyGraph:
        """
        Parse an ontology file or URL.

        Args:
            source: Local path or URL

        Returns:
            OntologyGraph with its imports attached
        """
        return self._load(str(source), base_dir=None)

    def _load(self, source: str, base_dir: Optional[Path]) -> OntologyGraph:
        location = self._locate(source, base_dir)
        if location in self._cache:
            return self._cache[location]

        rdf = self._read(location)
        graph = OntologyGraph()
        self._cache[location] = graph

        ontology_node = next(iter(rdf.subjects(RDF.type, OWL.Ontology)), None)
        if isinstance(ontology_node, URIRef):
            graph.iri = str(ontology_node)
        for axiom in self._convert(rdf, ontology_node):
            graph.add_axiom(axiom)

        if self.follow_imports and ontology_node is not None:
            local_dir = None if '://' in location else Path(location).parent
            for imported in sorted(rdf.objects(ontology_node, OWL.imports)):
                logger.debug(f"Following import {imported}")
                graph.imports.append(self._load(str(imported), local_dir))

        logger.info(f"Parsed {len(graph)} axioms from {location}")
        return graph

    def _locate(self, source: str, base_dir: Optional[Path]) -> str:
        """Map an ontology IRI or path to something rdflib can read."""
        if source in self.import_map:
            return self.import_map[source]
        parsed = urlparse(source)
        if parsed.scheme == 'file':
            return unquote(parsed.path)
        if parsed.scheme in ('http', 'https', 'ftp'):
            if base_dir is not None:
                name = Path(parsed.path).name
                candidate = base_dir / name
                if name and candidate.exists():
                    return str(candidate)
            return source
        path = Path(source)
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        return str(path)

    def _read(self, location: str) -> Graph:
        rdf = Graph()
        is_url = '://' in location
        if not is_url and not Path(location).exists():
            raise LoadError(f"Ontology file not found: {location}")
        fmt = guess_format(location) or 'xml'
        try:
            rdf.parse(location, format=fmt)
        except Exception as e:
            raise LoadError(f"Failed to parse {location}: {e}") from e
        return rdf

    def _convert(self, rdf: Graph, ontology_node: Optional[Node]) -> List[Axiom]:
        """Map RDF triples to axioms."""
        axioms: List[Axiom] = []
        types: Dict[URIRef, Set[EntityType]] = {}

        for subject, rdf_type in rdf.subject_objects(RDF.type):
            if isinstance(subject, URIRef) and rdf_type in DECLARATION_TYPES:
                types.setdefault(subject, set()).add(DECLARATION_TYPES[rdf_type])

        def has_type(node: Node, entity_type: EntityType) -> bool:
            return entity_type in types.get(node, ())

        for node, kinds in types.items():
            for kind in kinds:
                axioms.append(Declaration(Entity(str(node), kind)))

        for sub, sup in rdf.subject_objects(RDFS.subClassOf):
            lhs = self._class_expression(rdf, sub, types)
            rhs = self._class_expression(rdf, sup, types)
            if lhs is not None and rhs is not None:
                axioms.append(SubClassOf(lhs, rhs))
            else:
                logger.debug(f"Skipping unsupported subClassOf on {sub}")

        for a, b in rdf.subject_objects(OWL.equivalentClass):
            lhs = self._class_expression(rdf, a, types)
            rhs = self._class_expression(rdf, b, types)
            if lhs is not None and rhs is not None and lhs != rhs:
                axioms.append(EquivalentClasses(frozenset({lhs, rhs})))

        for a, b in rdf.subject_objects(OWL.disjointWith):
            lhs = self._class_expression(rdf, a, types)
            rhs = self._class_expression(rdf, b, types)
            if lhs is not None and rhs is not None:
                axioms.append(DisjointClasses(frozenset({lhs, rhs})))

        for node in rdf.subjects(RDF.type, OWL.AllDisjointClasses):
            members = rdf.value(node, OWL.members)
            if members is None:
                continue
            operands = [self._class_expression(rdf, m, types) for m in Collection(rdf, members)]
            if operands and all(op is not None for op in operands):
                axioms.append(DisjointClasses(frozenset(operands)))

        for sub, sup in rdf.subject_objects(RDFS.subPropertyOf):
            if not (isinstance(sub, URIRef) and isinstance(sup, URIRef)):
                continue
            if has_type(sub, EntityType.OBJECT_PROPERTY) or has_type(sup, EntityType.OBJECT_PROPERTY):
                axioms.append(SubObjectPropertyOf(str(sub), str(sup)))

        for subject, rdf_type in rdf.subject_objects(RDF.type):
            if not isinstance(subject, URIRef) or rdf_type in STRUCTURAL_TYPES:
                continue
            if isinstance(rdf_type, URIRef) and str(rdf_type).startswith((str(RDF), str(RDFS), str(OWL))):
                continue
            expression = self._class_expression(rdf, rdf_type, types)
            if expression is not None:
                axioms.append(ClassAssertion(str(subject), expression))

        for subject, predicate, value in rdf:
            if ontology_node is not None and subject == ontology_node:
                if predicate not in ONTOLOGY_SKIP and not isinstance(value, BNode):
                    axioms.append(OntologyAnnotation(str(predicate), value))
                continue
            if not isinstance(subject, URIRef) or predicate in STRUCTURAL_PREDICATES:
                continue
            if has_type(predicate, EntityType.OBJECT_PROPERTY):
                if isinstance(value, URIRef):
                    axioms.append(ObjectPropertyAssertion(str(predicate), str(subject), str(value)))
                continue
            if has_type(predicate, EntityType.DATA_PROPERTY) or isinstance(value, BNode):
                continue
            if (has_type(predicate, EntityType.ANNOTATION_PROPERTY)
                    or str(predicate).startswith(ANNOTATION_NAMESPACES)
                    or predicate == OWL.deprecated
                    or not str(predicate).startswith((str(RDF), str(OWL)))):
                if isinstance(value, (URIRef, Literal)):
                    axioms.append(AnnotationAssertion(str(subject), str(predicate), value))

        return axioms

    def _class_expression(
        self,
        rdf: Graph,
        node: Node,
        types: Dict[URIRef, Set[EntityType]]
    ) -> Optional[ClassExpression]:
        """Parse a class expression node; None for unsupported constructs."""
        if isinstance(node, URIRef):
            if node == OWL.Thing:
                return Thing()
            if node == OWL.Nothing:
                return Nothing()
            return NamedClass(str(node))
        if not isinstance(node, BNode):
            return None

        for predicate, build in ((OWL.intersectionOf, make_intersection), (OWL.unionOf, make_union)):
            members = rdf.value(node, predicate)
            if members is not None:
                operands = [self._class_expression(rdf, m, types) for m in Collection(rdf, members)]
                if not operands or any(op is None for op in operands):
                    return None
                return build(*operands)

        operand = rdf.value(node, OWL.complementOf)
        if operand is not None:
            inner = self._class_expression(rdf, operand, types)
            return ObjectComplementOf(inner) if inner is not None else None

        members = rdf.value(node, OWL.oneOf)
        if members is not None:
            individuals = [m for m in Collection(rdf, members)]
            if all(isinstance(m, URIRef) for m in individuals):
                return ObjectOneOf(frozenset(str(m) for m in individuals))
            return None

        prop = rdf.value(node, OWL.onProperty)
        if not isinstance(prop, URIRef) or EntityType.DATA_PROPERTY in types.get(prop, ()):
            return None

        filler = rdf.value(node, OWL.someValuesFrom)
        if filler is not None:
            inner = self._class_expression(rdf, filler, types)
            return ObjectSomeValuesFrom(str(prop), inner) if inner is not None else None
        filler = rdf.value(node, OWL.allValuesFrom)
        if filler is not None:
            inner = self._class_expression(rdf, filler, types)
            return ObjectAllValuesFrom(str(prop), inner) if inner is not None else None
        value = rdf.value(node, OWL.hasValue)
        if isinstance(value, URIRef):
            return ObjectHasValue(str(prop), str(value))
        return None


def parse_owl(
    path: Union[str, Path],
    follow_imports: bool = True
) -> OntologyGraph:
    """
    Convenience function to parse an ontology file.

    Args:
        path: Path or URL of the ontology
        follow_imports: Load owl:imports recursively

    Returns:
        OntologyGraph instance
    """
    parser = OWLParser(follow_imports=follow_imports)
    return parser.parse(path)


__all__ = [
    'OWLParser',
    'parse_owl',
]
