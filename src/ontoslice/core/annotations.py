"""
ontoslice: Term-Driven Ontology Module Extraction
Annotation Augmenter

Stamps extracted entities with their source ontology (rdfs:isDefinedBy),
applies copyTo/mapTo annotation directives and optionally carries over
ontology-level annotations.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union
import csv
import logging
import re

from rdflib import URIRef
from rdflib.namespace import OWL, RDF, RDFS, XSD

from .errors import ConfigError
from .ontology import (
    AnnotationAssertion, Axiom, BUILTIN_IRIS, EntityType, OntologyGraph,
    RDFS_IS_DEFINED_BY
)
from .terms import OBO_BASE, PrefixTable, TermResolver, split_term_line

logger = logging.getLogger(__name__)

OBO_TERM = re.compile(r'^' + re.escape(OBO_BASE) + r'([A-Za-z][A-Za-z0-9]*)_[^/#]+$')

RESERVED_NAMESPACES = (str(RDF), str(RDFS), str(OWL), str(XSD))

STAMPED_TYPES = frozenset({
    EntityType.CLASS,
    EntityType.OBJECT_PROPERTY,
    EntityType.DATA_PROPERTY,
    EntityType.INDIVIDUAL,
})


class SourceMap:
    """Entity IRI or namespace -> source ontology IRI."""

    HEADER_KEYS = ("entity", "prefix")

    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        self._map = MappingProxyType(dict(mapping or {}))

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        prefixes: Optional[PrefixTable] = None
    ) -> 'SourceMap':
        """
        Read a two-column TSV, CSV or TXT file.

        The first column is an entity IRI, a CURIE, or a prefix (``GO`` or
        ``GO:``) standing for its whole namespace; the second column is the
        source. A header row whose first cell is 'entity' or 'prefix' is
        skipped.
        """
        path = Path(path)
        prefixes = prefixes or PrefixTable()
        delimiter = ',' if path.suffix.lower() == '.csv' else '\t'
        mapping: Dict[str, str] = {}
        seen_data = False
        try:
            with open(path, newline='', encoding='utf-8') as f:
                for number, row in enumerate(csv.reader(f, delimiter=delimiter), start=1):
                    cells = [c.strip() for c in row if c.strip()]
                    if not cells or cells[0].startswith('#'):
                        continue
                    first, seen_data = not seen_data, True
                    if first and cells[0].lower() in cls.HEADER_KEYS:
                        continue
                    if len(cells) != 2:
                        raise ConfigError(
                            f"Source map rows need two columns in {path}", line=number
                        )
                    key = cls._expand_key(cells[0], prefixes)
                    if key is None:
                        raise ConfigError(
                            f"Unknown prefix in source map {path}", token=cells[0], line=number
                        )
                    mapping[key] = cls._expand_source(cells[1], prefixes)
        except FileNotFoundError:
            raise ConfigError(f"Source map not found: {path}")
        logger.debug(f"Read {len(mapping)} source mappings from {path}")
        return cls(mapping)

    @staticmethod
    def _expand_key(token: str, prefixes: PrefixTable) -> Optional[str]:
        if token.startswith('<') and token.endswith('>'):
            return token[1:-1]
        if '://' in token or token.startswith('urn:'):
            return token
        if token.endswith(':'):
            token = token[:-1]
        if ':' not in token:
            if token in prefixes:
                return prefixes.prefixes[token]
            return f"{OBO_BASE}{token}_"
        return prefixes.expand(token) or prefixes.expand_obo(token)

    @staticmethod
    def _expand_source(token: str, prefixes: PrefixTable) -> str:
        # sources may be plain locators such as go.owl
        if token.startswith('<') and token.endswith('>'):
            return token[1:-1]
        if ':' in token and '://' not in token:
            return prefixes.expand(token) or token
        return token

    def lookup(self, iri: str) -> Optional[str]:
        """Exact IRI first, then the longest namespace key the IRI starts with."""
        if iri in self._map:
            return self._map[iri]
        best = None
        for key in self._map:
            if iri.startswith(key) and (best is None or len(key) > len(best)):
                best = key
        return self._map[best] if best is not None else None

    def __contains__(self, iri: str) -> bool:
        return self.lookup(iri) is not None

    def __len__(self) -> int:
        return len(self._map)


def default_source(iri: str, fallback_iri: Optional[str] = None) -> Optional[str]:
    """
    Derive a source locator for an entity.

    OBO terms map to their ontology PURL (``.../obo/GO_0001`` ->
    ``.../obo/go.owl``); other IRIs fall back to the source graph IRI.
    """
    match = OBO_TERM.match(iri)
    if match:
        return f"{OBO_BASE}{match.group(1).lower()}.owl"
    return fallback_iri


def _stampable(module: OntologyGraph) -> Set[str]:
    return {
        e.iri for e in module.entities
        if e.entity_type in STAMPED_TYPES
        and e.iri not in BUILTIN_IRIS
        and not e.iri.startswith(RESERVED_NAMESPACES)
    }


def annotate_with_source(
    module: OntologyGraph,
    source_graph: OntologyGraph,
    source_map: Optional[SourceMap] = None
) -> OntologyGraph:
    """
    Add rdfs:isDefinedBy to every entity of the module that lacks one.

    Existing isDefinedBy values are left untouched, so applying this twice
    gives the same graph.
    """
    stamped = {
        ax.subject for ax in module.axioms
        if isinstance(ax, AnnotationAssertion) and ax.property == RDFS_IS_DEFINED_BY
    }
    axioms: Set[Axiom] = module.axioms
    added = 0
    for iri in sorted(_stampable(module) - stamped):
        source = source_map.lookup(iri) if source_map is not None else None
        if source is None:
            source = default_source(iri, source_graph.iri)
        if source is None:
            logger.debug(f"No source for {iri}; not stamped")
            continue
        axioms.add(AnnotationAssertion(iri, RDFS_IS_DEFINED_BY, URIRef(source)))
        added += 1

    logger.info(f"Annotated {added} entities with their source")
    return module.with_axioms(axioms)


class DirectiveKeyword(Enum):
    """Rewriting applied by an annotation directive."""
    COPY_TO = "copyTo"
    MAP_TO = "mapTo"

    @classmethod
    def parse(cls, token: str, line: Optional[int] = None) -> 'DirectiveKeyword':
        for keyword in cls:
            if keyword.value.lower() == token.strip().lower():
                return keyword
        raise ConfigError(
            "Unknown annotation keyword; expected copyTo or mapTo", token=token, line=line
        )


@dataclass(frozen=True)
class AnnotationDirective:
    """One annotation property to keep, optionally copied or mapped to another."""
    property: str
    keyword: Optional[DirectiveKeyword] = None
    target: Optional[str] = None
    line: Optional[int] = None

    @classmethod
    def parse(cls, line: str, line_number: Optional[int] = None) -> 'AnnotationDirective':
        """Parse ``property [TAB copyTo|mapTo TAB target]``."""
        cells = split_term_line(line, line_number)
        if len(cells) == 1:
            return cls(cells[0], line=line_number)
        if len(cells) == 3:
            keyword = DirectiveKeyword.parse(cells[1], line_number)
            return cls(cells[0], keyword, cells[2], line=line_number)
        raise ConfigError(
            "Annotation directive needs one or three columns", token=line.strip(), line=line_number
        )

    def resolve(self, resolver: TermResolver) -> 'AnnotationDirective':
        """Resolve the property tokens, preferring target-graph labels."""
        prop = resolver.resolve(self.property, line=self.line, prefer_target=True)
        target = None
        if self.target is not None:
            target = resolver.resolve(self.target, line=self.line, prefer_target=True)
        return AnnotationDirective(prop, self.keyword, target, self.line)


def apply_annotation_directives(
    module: OntologyGraph,
    source: OntologyGraph,
    directives: Sequence[AnnotationDirective]
) -> OntologyGraph:
    """
    Restrict the module's annotations to the directive properties and apply
    copyTo and mapTo rewriting.

    Matching annotations of module entities are copied from the source graph.
    rdfs:isDefinedBy stamps always survive.
    """
    if not directives:
        return module.with_axioms(module.axioms)

    allowed = {d.property for d in directives}
    subjects = {
        e.iri for e in module.entities
        if e.entity_type != EntityType.ANNOTATION_PROPERTY
    }

    axioms: Set[Axiom] = set()
    for axiom in module.axioms:
        if isinstance(axiom, AnnotationAssertion):
            if axiom.property not in allowed and axiom.property != RDFS_IS_DEFINED_BY:
                continue
        axioms.add(axiom)
    for axiom in source.axioms:
        if (isinstance(axiom, AnnotationAssertion)
                and axiom.property in allowed and axiom.subject in subjects):
            axioms.add(axiom)

    copies: List[AnnotationAssertion] = []
    moves: List[AnnotationAssertion] = []
    for directive in directives:
        if directive.keyword is None:
            continue
        matching = [
            ax for ax in axioms
            if isinstance(ax, AnnotationAssertion) and ax.property == directive.property
        ]
        for ax in matching:
            if directive.keyword == DirectiveKeyword.COPY_TO:
                copies.append(ax.with_property(directive.target))
            else:
                moves.append(ax)
                copies.append(ax.with_property(directive.target))

    axioms.difference_update(moves)
    axioms.update(copies)
    logger.debug(
        f"Applied {len(directives)} annotation directives: "
        f"{len(copies)} added, {len(moves)} moved"
    )
    return module.with_axioms(axioms)


def copy_ontology_annotations(
    module: OntologyGraph,
    source: OntologyGraph
) -> OntologyGraph:
    """Copy the source graph's ontology-level annotations into the module."""
    axioms = module.axioms
    axioms.update(source.ontology_annotations)
    return module.with_axioms(axioms)


def read_directives(lines: Iterable[str], first_line: int = 1) -> List[AnnotationDirective]:
    """Parse directive lines, skipping blanks and '#' comments."""
    directives = []
    for number, line in enumerate(lines, start=first_line):
        if not line.strip() or line.strip().startswith('#'):
            continue
        directives.append(AnnotationDirective.parse(line, number))
    return directives


__all__ = [
    'SourceMap',
    'DirectiveKeyword',
    'AnnotationDirective',
    'default_source',
    'annotate_with_source',
    'apply_annotation_directives',
    'copy_ontology_annotations',
    'read_directives',
]
