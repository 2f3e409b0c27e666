"""
Tests for source stamping and annotation directives.
"""

import pytest
from rdflib import Literal, URIRef
from rdflib.namespace import DCTERMS, RDFS, SKOS

from ontoslice.core.annotations import (
    AnnotationDirective, DirectiveKeyword, SourceMap, annotate_with_source,
    apply_annotation_directives, copy_ontology_annotations, default_source,
    read_directives
)
from ontoslice.core.errors import ConfigError
from ontoslice.core.ontology import (
    AnnotationAssertion, NamedClass, OntologyAnnotation, OntologyGraph,
    SubClassOf, OWL_THING, RDFS_IS_DEFINED_BY, RDFS_LABEL
)
from ontoslice.core.terms import TermResolver

OBO = "http://purl.obolibrary.org/obo/"
MITO = OBO + "GO_0005739"
ORGANELLE = OBO + "GO_0043226"
EX = "http://example.org/"
COMMENT = str(RDFS.comment)
ALT_LABEL = str(SKOS.altLabel)


def sub(child, parent):
    return SubClassOf(NamedClass(child), NamedClass(parent))


def defined_by(graph, iri):
    return {
        ax.value for ax in graph
        if isinstance(ax, AnnotationAssertion)
        and ax.subject == iri and ax.property == RDFS_IS_DEFINED_BY
    }


class TestSourceMap:
    """Test cases for SourceMap."""

    def test_tsv_file(self, tmp_path):
        """Test reading entities, CURIEs and prefixes from TSV."""
        path = tmp_path / "sources.tsv"
        path.write_text(
            "entity\tsource\n"
            "GO\thttp://purl.obolibrary.org/obo/go.owl\n"
            "GO:0005739\tmito.owl\n"
            "IAO:\tiao.owl\n"
            f"<{EX}x>\tex.owl\n"
        )
        sources = SourceMap.from_file(path)
        assert len(sources) == 4
        assert sources.lookup(ORGANELLE) == OBO + "go.owl"
        assert sources.lookup(MITO) == "mito.owl"
        assert sources.lookup(OBO + "IAO_0000115") == "iao.owl"
        assert sources.lookup(EX + "x") == "ex.owl"
        assert sources.lookup(EX + "y") is None
        assert MITO in sources

    def test_csv_file(self, tmp_path):
        """Test comma-separated source maps."""
        path = tmp_path / "sources.csv"
        path.write_text(f"{EX}a,{EX}a.owl\n")
        assert SourceMap.from_file(path).lookup(EX + "a") == EX + "a.owl"

    def test_header_after_comment(self, tmp_path):
        """Test a header row below leading comments is still skipped."""
        path = tmp_path / "sources.tsv"
        path.write_text(
            "# sources for the GO import\n"
            "\n"
            "prefix\tsource\n"
            "GO\tgo.owl\n"
        )
        sources = SourceMap.from_file(path)
        assert len(sources) == 1
        assert sources.lookup(MITO) == "go.owl"

    def test_header_only_on_first_row(self, tmp_path):
        """Test a header-like row after data is an ordinary row."""
        path = tmp_path / "sources.tsv"
        path.write_text("GO\tgo.owl\nentity\n")
        with pytest.raises(ConfigError) as info:
            SourceMap.from_file(path)
        assert info.value.line == 2

    def test_longest_namespace_wins(self):
        """Test the most specific namespace is used."""
        sources = SourceMap({EX: "general.owl", EX + "sub/": "specific.owl"})
        assert sources.lookup(EX + "sub/a") == "specific.owl"
        assert sources.lookup(EX + "a") == "general.owl"

    def test_bad_row(self, tmp_path):
        """Test rows without two columns report the line."""
        path = tmp_path / "sources.tsv"
        path.write_text("GO\tgo.owl\nGO\n")
        with pytest.raises(ConfigError) as info:
            SourceMap.from_file(path)
        assert info.value.line == 2

    def test_missing_file(self, tmp_path):
        """Test a missing source map is a config error."""
        with pytest.raises(ConfigError):
            SourceMap.from_file(tmp_path / "missing.tsv")


class TestAnnotateWithSource:
    """Test cases for rdfs:isDefinedBy stamping."""

    def _module(self):
        return OntologyGraph({
            sub(MITO, ORGANELLE),
            sub(EX + "X", OWL_THING),
            AnnotationAssertion(MITO, RDFS_LABEL, Literal("mitochondrion")),
        })

    def test_default_source(self):
        """Test source derivation for OBO and other IRIs."""
        assert default_source(MITO) == OBO + "go.owl"
        assert default_source(OBO + "UBERON_0000061") == OBO + "uberon.owl"
        assert default_source(EX + "A", EX + "onto.owl") == EX + "onto.owl"
        assert default_source(EX + "A") is None

    def test_stamps_entities(self):
        """Test every class gets exactly one source."""
        source = OntologyGraph(iri=EX + "source.owl")
        stamped = annotate_with_source(self._module(), source)
        assert defined_by(stamped, MITO) == {URIRef(OBO + "go.owl")}
        assert defined_by(stamped, ORGANELLE) == {URIRef(OBO + "go.owl")}
        assert defined_by(stamped, EX + "X") == {URIRef(EX + "source.owl")}

    def test_skips_builtins_and_annotation_properties(self):
        """Test owl:Thing and rdfs:label are not stamped."""
        stamped = annotate_with_source(self._module(), OntologyGraph(iri=EX + "s.owl"))
        assert defined_by(stamped, OWL_THING) == set()
        assert defined_by(stamped, RDFS_LABEL) == set()

    def test_idempotent(self):
        """Test stamping twice changes nothing."""
        source = OntologyGraph(iri=EX + "source.owl")
        once = annotate_with_source(self._module(), source)
        twice = annotate_with_source(once, source)
        assert once.axioms == twice.axioms

    def test_existing_stamp_kept(self):
        """Test entities that already have a source are left alone."""
        module = self._module()
        module.add_axiom(AnnotationAssertion(MITO, RDFS_IS_DEFINED_BY, URIRef(EX + "custom.owl")))
        stamped = annotate_with_source(module, OntologyGraph())
        assert defined_by(stamped, MITO) == {URIRef(EX + "custom.owl")}

    def test_source_map_overrides_default(self):
        """Test the source map takes precedence."""
        sources = SourceMap({OBO + "GO_": EX + "go-slim.owl"})
        stamped = annotate_with_source(self._module(), OntologyGraph(), sources)
        assert defined_by(stamped, MITO) == {URIRef(EX + "go-slim.owl")}

    def test_unknown_source_unstamped(self):
        """Test entities without any source stay unstamped."""
        stamped = annotate_with_source(self._module(), OntologyGraph())
        assert defined_by(stamped, EX + "X") == set()


class TestDirectives:
    """Test cases for annotation directives."""

    def test_keyword_parse(self):
        """Test keywords are case-insensitive."""
        assert DirectiveKeyword.parse("copyto") == DirectiveKeyword.COPY_TO
        assert DirectiveKeyword.parse("mapTo") == DirectiveKeyword.MAP_TO
        with pytest.raises(ConfigError):
            DirectiveKeyword.parse("moveTo")

    def test_directive_parse(self):
        """Test one and three column directives."""
        plain = AnnotationDirective.parse("rdfs:label", 1)
        assert plain.keyword is None
        full = AnnotationDirective.parse("rdfs:label\tcopyTo\tskos:altLabel", 2)
        assert full.keyword == DirectiveKeyword.COPY_TO
        assert full.target == "skos:altLabel"
        with pytest.raises(ConfigError) as info:
            AnnotationDirective.parse("rdfs:label\tcopyTo", 5)
        assert info.value.line == 5

    def test_read_directives(self):
        """Test blank and comment lines are skipped."""
        directives = read_directives(["# header", "", "rdfs:label", "rdfs:comment\tmapTo\tskos:note"])
        assert [d.line for d in directives] == [3, 4]

    def test_resolve(self):
        """Test property tokens resolve to IRIs."""
        resolver = TermResolver.for_graph(OntologyGraph())
        directive = AnnotationDirective.parse("rdfs:label\tmapTo\tskos:altLabel").resolve(resolver)
        assert directive.property == RDFS_LABEL
        assert directive.target == ALT_LABEL

    def _module(self):
        return OntologyGraph({
            sub("A", "B"),
            AnnotationAssertion("A", RDFS_LABEL, Literal("a")),
            AnnotationAssertion("A", COMMENT, Literal("note")),
            AnnotationAssertion("A", RDFS_IS_DEFINED_BY, URIRef(EX + "src.owl")),
        })

    def _source(self):
        return OntologyGraph({
            AnnotationAssertion("B", RDFS_LABEL, Literal("b")),
            AnnotationAssertion("Z", RDFS_LABEL, Literal("z")),
        })

    def test_allowlist(self):
        """Test only listed properties survive and are copied from the source."""
        result = apply_annotation_directives(
            self._module(), self._source(), [AnnotationDirective(RDFS_LABEL)]
        )
        assert AnnotationAssertion("A", RDFS_LABEL, Literal("a")) in result
        assert AnnotationAssertion("B", RDFS_LABEL, Literal("b")) in result
        assert AnnotationAssertion("Z", RDFS_LABEL, Literal("z")) not in result
        assert AnnotationAssertion("A", COMMENT, Literal("note")) not in result
        assert AnnotationAssertion("A", RDFS_IS_DEFINED_BY, URIRef(EX + "src.owl")) in result

    def test_copy_to(self):
        """Test copyTo keeps the original and adds a copy."""
        directive = AnnotationDirective(RDFS_LABEL, DirectiveKeyword.COPY_TO, ALT_LABEL)
        result = apply_annotation_directives(self._module(), OntologyGraph(), [directive])
        assert AnnotationAssertion("A", RDFS_LABEL, Literal("a")) in result
        assert AnnotationAssertion("A", ALT_LABEL, Literal("a")) in result

    def test_map_to(self):
        """Test mapTo replaces the original."""
        directive = AnnotationDirective(RDFS_LABEL, DirectiveKeyword.MAP_TO, ALT_LABEL)
        result = apply_annotation_directives(self._module(), OntologyGraph(), [directive])
        assert AnnotationAssertion("A", RDFS_LABEL, Literal("a")) not in result
        assert AnnotationAssertion("A", ALT_LABEL, Literal("a")) in result
        assert sub("A", "B") in result

    def test_no_directives(self):
        """Test an empty directive list leaves annotations alone."""
        module = self._module()
        assert apply_annotation_directives(module, OntologyGraph(), []).axioms == module.axioms

    def test_copy_ontology_annotations(self):
        """Test ontology-level annotations are carried over."""
        licence = OntologyAnnotation(str(DCTERMS.license), URIRef("https://creativecommons.org/licenses/by/4.0/"))
        source = OntologyGraph({licence})
        result = copy_ontology_annotations(OntologyGraph({sub("A", "B")}), source)
        assert licence in result.ontology_annotations
