"""
ontoslice: Term-Driven Ontology Module Extraction
Term Resolution Module

Turns user-supplied tokens (full IRIs, CURIEs, quoted or bare labels) and
term-list files into canonical entity IRIs. The prefix table and the label
indexes are immutable lookup structures built once and passed in, so that
jobs in a batch share no hidden state.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union
import json
import logging
import re

from rdflib.namespace import DC, DCTERMS, OWL, RDF, RDFS, SKOS, XSD

from .errors import (
    AmbiguousTermError, ConfigError, UnresolvedTermError
)
from .ontology import OntologyGraph

logger = logging.getLogger(__name__)

OBO_BASE = "http://purl.obolibrary.org/obo/"

DEFAULT_PREFIXES: Dict[str, str] = {
    "rdf": str(RDF),
    "rdfs": str(RDFS),
    "owl": str(OWL),
    "xsd": str(XSD),
    "skos": str(SKOS),
    "dc": str(DC),
    "dcterms": str(DCTERMS),
    "oboInOwl": "http://www.geneontology.org/formats/oboInOwl#",
    "IAO": OBO_BASE + "IAO_",
    "obo": OBO_BASE,
}

ABSOLUTE_IRI = re.compile(r'^(https?|urn|file|ftp):', re.IGNORECASE)
CURIE = re.compile(r'^([A-Za-z_][\w.-]*):(?!//)(\S*)$')
OBO_CURIE = re.compile(r'^([A-Za-z][A-Za-z0-9_]*):([A-Za-z0-9_]+)$')


class PrefixTable:
    """Immutable prefix -> namespace table used to expand CURIEs."""

    def __init__(
        self,
        prefixes: Optional[Mapping[str, str]] = None,
        obo_fallback: bool = True,
        include_defaults: bool = True
    ):
        data: Dict[str, str] = dict(DEFAULT_PREFIXES) if include_defaults else {}
        if prefixes:
            data.update(prefixes)
        self._prefixes = MappingProxyType(data)
        self.obo_fallback = obo_fallback

    @classmethod
    def from_json(cls, path: Union[str, Path], **kwargs) -> 'PrefixTable':
        """
        Load prefixes from a JSON-LD context document.

        Both ``{"@context": {"GO": "http://..."}}`` and a flat mapping are
        accepted; term definitions of the form ``{"@id": "..."}`` are
        unwrapped.
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding='utf-8'))
        except FileNotFoundError:
            raise ConfigError(f"Prefix file not found: {path}")
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in prefix file {path}: {e}", line=e.lineno)

        context = data.get("@context", data) if isinstance(data, dict) else {}
        prefixes = {}
        for prefix, value in context.items():
            if isinstance(value, dict):
                value = value.get("@id")
            if isinstance(value, str) and not prefix.startswith('@'):
                prefixes[prefix] = value
        logger.debug(f"Loaded {len(prefixes)} prefixes from {path}")
        return cls(prefixes, **kwargs)

    @property
    def prefixes(self) -> Mapping[str, str]:
        return self._prefixes

    def with_prefixes(self, extra: Mapping[str, str]) -> 'PrefixTable':
        """Return a new table with additional prefixes."""
        merged = dict(self._prefixes)
        merged.update(extra)
        return PrefixTable(merged, obo_fallback=self.obo_fallback, include_defaults=False)

    def expand(self, token: str) -> Optional[str]:
        """Expand a CURIE with a known prefix, or return None."""
        match = CURIE.match(token)
        if not match:
            return None
        namespace = self._prefixes.get(match.group(1))
        if namespace is None:
            return None
        return namespace + match.group(2)

    def expand_obo(self, token: str) -> Optional[str]:
        """Expand ``GO:0000001`` to the OBO PURL, if fallback is enabled."""
        if not self.obo_fallback:
            return None
        match = OBO_CURIE.match(token)
        if not match:
            return None
        return f"{OBO_BASE}{match.group(1)}_{match.group(2)}"

    def shorten(self, iri: str) -> str:
        """Return the CURIE for an IRI using the longest matching namespace."""
        best: Optional[Tuple[str, str]] = None
        for prefix, namespace in self._prefixes.items():
            if iri.startswith(namespace) and (best is None or len(namespace) > len(best[1])):
                best = (prefix, namespace)
        if best is None:
            return iri
        return f"{best[0]}:{iri[len(best[1]):]}"

    def __contains__(self, prefix: str) -> bool:
        return prefix in self._prefixes

    def __len__(self) -> int:
        return len(self._prefixes)


class LabelIndex:
    """Immutable rdfs:label -> IRIs lookup."""

    def __init__(self, labels: Optional[Mapping[str, Iterable[str]]] = None):
        self._labels = MappingProxyType(
            {label: frozenset(iris) for label, iris in (labels or {}).items()}
        )

    @classmethod
    def from_graph(cls, graph: OntologyGraph, include_imports: bool = True) -> 'LabelIndex':
        """Index every rdfs:label in the graph (and its imports)."""
        merged: Dict[str, set] = {}
        graphs = graph.import_closure() if include_imports else [graph]
        for g in graphs:
            for label, iris in g.labels().items():
                merged.setdefault(label, set()).update(iris)
        return cls(merged)

    def lookup(self, label: str) -> FrozenSet[str]:
        return self._labels.get(label, frozenset())

    def __contains__(self, label: str) -> bool:
        return label in self._labels

    def __len__(self) -> int:
        return len(self._labels)


@dataclass(frozen=True)
class RawTerm:
    """An unresolved term line: primary token plus override-parent tokens."""
    token: str
    parents: Tuple[str, ...] = ()
    line: Optional[int] = None


@dataclass(frozen=True)
class TermSpec:
    """A resolved term with optional override parents."""
    iri: str
    parents: Tuple[str, ...] = ()
    must_keep: bool = False
    line: Optional[int] = None

    @property
    def is_protected(self) -> bool:
        """Terms that pruning must never remove."""
        return self.must_keep or bool(self.parents)


class TermResolver:
    """
    Resolves raw tokens against a reference graph's labels and a prefix
    table, optionally falling back to a secondary target graph's labels.

    Resolution order:
    1. absolute IRI (returned unchanged)
    2. quoted label ('...') - label lookup only
    3. CURIE with a known prefix
    4. exact, case-sensitive label (reference graph, then target graph)
    5. OBO-style CURIE fallback
    """

    def __init__(
        self,
        prefixes: Optional[PrefixTable] = None,
        labels: Optional[LabelIndex] = None,
        target_labels: Optional[LabelIndex] = None
    ):
        self.prefixes = prefixes or PrefixTable()
        self.labels = labels or LabelIndex()
        self.target_labels = target_labels

    @classmethod
    def for_graph(
        cls,
        graph: OntologyGraph,
        prefixes: Optional[PrefixTable] = None,
        target: Optional[OntologyGraph] = None
    ) -> 'TermResolver':
        """Build a resolver with label indexes for a graph and optional target."""
        target_labels = LabelIndex.from_graph(target) if target is not None else None
        return cls(prefixes, LabelIndex.from_graph(graph), target_labels)

    def resolve(
        self,
        token: str,
        line: Optional[int] = None,
        prefer_target: bool = False
    ) -> str:
        """Resolve a single token to an IRI."""
        token = token.strip()
        if not token:
            raise UnresolvedTermError("Empty term", token=token, line=line)

        if token.startswith('<') and token.endswith('>'):
            return token[1:-1]
        if ABSOLUTE_IRI.match(token):
            return token

        if len(token) >= 2 and token.startswith("'") and token.endswith("'"):
            label = token[1:-1]
            iri = self._lookup_label(label, token, line, prefer_target)
            if iri is None:
                raise UnresolvedTermError("No entity has this label", token=token, line=line)
            return iri

        expanded = self.prefixes.expand(token)
        if expanded is not None:
            return expanded

        iri = self._lookup_label(token, token, line, prefer_target)
        if iri is not None:
            return iri

        expanded = self.prefixes.expand_obo(token)
        if expanded is not None:
            return expanded

        raise UnresolvedTermError("Unable to resolve term", token=token, line=line)

    def _lookup_label(
        self,
        label: str,
        token: str,
        line: Optional[int],
        prefer_target: bool
    ) -> Optional[str]:
        indexes = [self.labels, self.target_labels]
        if prefer_target:
            indexes.reverse()
        for index in indexes:
            if index is None:
                continue
            matches = index.lookup(label)
            if len(matches) > 1:
                raise AmbiguousTermError(
                    "Label matches more than one entity",
                    candidates=matches, token=token, line=line
                )
            if matches:
                return next(iter(matches))
        return None

    def resolve_term(self, raw: RawTerm, must_keep: bool = False) -> TermSpec:
        """Resolve a term line; override parents prefer the target graph."""
        iri = self.resolve(raw.token, line=raw.line)
        parents = tuple(
            self.resolve(p, line=raw.line, prefer_target=True) for p in raw.parents
        )
        return TermSpec(iri, parents, must_keep=must_keep, line=raw.line)

    def resolve_terms(
        self,
        raws: Iterable[RawTerm],
        must_keep: bool = False
    ) -> List[TermSpec]:
        return [self.resolve_term(raw, must_keep) for raw in raws]


def split_term_line(line: str, line_number: Optional[int] = None) -> List[str]:
    """
    Split a tab-separated term line into cells.

    A cell starting with a single quote runs to the matching closing quote,
    so quoted labels may contain tabs. Quotes are kept on the cell so the
    resolver treats it as a label.
    """
    cells: List[str] = []
    current: List[str] = []
    in_quote = False
    for ch in line:
        if ch == "'" and (in_quote or not ''.join(current).strip()):
            in_quote = not in_quote
            current.append(ch)
        elif ch == '\t' and not in_quote:
            cells.append(''.join(current).strip())
            current = []
        else:
            current.append(ch)
    if in_quote:
        raise ConfigError("Unbalanced single quote in term line", line=line_number)
    cells.append(''.join(current).strip())
    return [c for c in cells if c]


def parse_term_lines(text: str, first_line: int = 1) -> List[RawTerm]:
    """
    Parse newline-delimited term text.

    Blank lines and lines starting with '#' are ignored; columns after the
    first are override parents.
    """
    terms: List[RawTerm] = []
    for number, line in enumerate(text.splitlines(), start=first_line):
        stripped = line.strip()
        if not stripped or stripped.startswith('#'):
            continue
        cells = split_term_line(line, number)
        terms.append(RawTerm(cells[0], tuple(cells[1:]), number))
    return terms


def read_term_file(path: Union[str, Path]) -> List[RawTerm]:
    """Read a term-list file."""
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8')
    except FileNotFoundError:
        raise ConfigError(f"Term file not found: {path}")
    terms = parse_term_lines(text)
    logger.debug(f"Read {len(terms)} terms from {path}")
    return terms


__all__ = [
    'PrefixTable',
    'LabelIndex',
    'RawTerm',
    'TermSpec',
    'TermResolver',
    'split_term_line',
    'parse_term_lines',
    'read_term_file',
    'OBO_BASE',
]
