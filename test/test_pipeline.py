"""
End-to-end tests for the extraction pipeline.
"""

import pytest
from rdflib import Literal, URIRef
from rdflib.namespace import RDFS, SKOS

from ontoslice.core.annotations import AnnotationDirective, DirectiveKeyword
from ontoslice.core.errors import (
    EmptyTermsError, InvalidOptionError, MissingUpperDependentError,
    UnresolvedTermError
)
from ontoslice.core.extraction import ExtractionStatus
from ontoslice.core.ontology import (
    AnnotationAssertion, NamedClass, OntologyAnnotation, OntologyGraph,
    SubClassOf, RDFS_IS_DEFINED_BY, RDFS_LABEL
)
from ontoslice.core.pipeline import ExtractOptions, ExtractionPipeline, run_extraction
from ontoslice.core.terms import RawTerm

OBO = "http://purl.obolibrary.org/obo/"
MITO = OBO + "GO_0005739"
ORGANELLE = OBO + "GO_0043226"
CELL_PART = OBO + "GO_0044464"
EX = "http://example.org/"
COMMENT = str(RDFS.comment)
ALT_LABEL = str(SKOS.altLabel)


def sub(child, parent):
    return SubClassOf(NamedClass(child), NamedClass(parent))


def go_graph():
    return OntologyGraph({
        sub(MITO, ORGANELLE),
        sub(ORGANELLE, CELL_PART),
        AnnotationAssertion(MITO, RDFS_LABEL, Literal("mitochondrion")),
        AnnotationAssertion(MITO, COMMENT, Literal("powerhouse")),
        AnnotationAssertion(ORGANELLE, RDFS_LABEL, Literal("organelle")),
        AnnotationAssertion(CELL_PART, RDFS_LABEL, Literal("cell part")),
        OntologyAnnotation(COMMENT, Literal("gene ontology")),
    }, iri=OBO + "go.owl")


class TestMireotPipeline:
    """Test cases for MIREOT runs."""

    def test_lower_and_upper(self):
        """Test the walk between lower and upper terms."""
        options = ExtractOptions(
            method="mireot",
            lower_terms=[RawTerm("GO:0005739")],
            upper_terms=[RawTerm("organelle")],
            output_iri="http://example.org/out.owl",
        )
        result = run_extraction(go_graph(), options)
        assert result.is_success
        assert result.module.iri == "http://example.org/out.owl"
        assert sub(MITO, ORGANELLE) in result.module
        assert sub(ORGANELLE, CELL_PART) not in result.module

    def test_plain_terms_are_lower_terms(self):
        """Test plain terms walk up like lower terms."""
        options = ExtractOptions(method="mireot", terms=[RawTerm("mitochondrion")])
        result = run_extraction(go_graph(), options)
        assert sub(ORGANELLE, CELL_PART) in result.module

    def test_upper_without_lower(self):
        """Test upper terms alone are rejected."""
        options = ExtractOptions(method="mireot", upper_terms=[RawTerm("organelle")])
        with pytest.raises(MissingUpperDependentError):
            run_extraction(go_graph(), options)

    def test_minimal_intermediates(self):
        """Test minimal pruning keeps requested terms only."""
        options = ExtractOptions(
            method="mireot",
            lower_terms=[RawTerm("mitochondrion")],
            intermediates="minimal",
        )
        result = run_extraction(go_graph(), options)
        assert sub(MITO, CELL_PART) in result.module
        assert AnnotationAssertion(ORGANELLE, RDFS_LABEL, Literal("organelle")) not in result.module

    def test_parent_override(self):
        """Test override parents replace the asserted ones."""
        options = ExtractOptions(
            method="mireot",
            lower_terms=[RawTerm("mitochondrion", ("cell part",))],
        )
        result = run_extraction(go_graph(), options)
        assert sub(MITO, CELL_PART) in result.module
        assert sub(MITO, ORGANELLE) not in result.module

    def test_override_parent_from_target(self):
        """Test override parents resolve against the target labels."""
        target = OntologyGraph({
            AnnotationAssertion("http://example.org/anchor", RDFS_LABEL, Literal("anchor")),
        })
        options = ExtractOptions(
            method="mireot",
            lower_terms=[RawTerm("mitochondrion", ("anchor",))],
        )
        result = ExtractionPipeline(go_graph(), target=target).run(options)
        assert sub(MITO, "http://example.org/anchor") in result.module

    def test_annotation_properties(self):
        """Test the annotation property filter."""
        options = ExtractOptions(
            method="mireot",
            lower_terms=[RawTerm("mitochondrion")],
            annotation_properties=["rdfs:label"],
        )
        result = run_extraction(go_graph(), options)
        assert AnnotationAssertion(MITO, RDFS_LABEL, Literal("mitochondrion")) in result.module
        assert AnnotationAssertion(MITO, COMMENT, Literal("powerhouse")) not in result.module

    def test_force_with_missing_terms(self):
        """Test force gives an empty module when no term exists."""
        options = ExtractOptions(method="mireot", lower_terms=[RawTerm("GO:9999999")])
        with pytest.raises(EmptyTermsError):
            run_extraction(go_graph(), options)
        options.force = True
        result = run_extraction(go_graph(), options)
        assert result.status == ExtractionStatus.EMPTY
        assert len(result.module) == 0
        assert result.dropped_seed == {OBO + "GO_9999999"}

    def test_missing_lower_with_upper(self):
        """Test an existing upper term does not stand in for missing lower terms."""
        options = ExtractOptions(
            method="mireot",
            lower_terms=[RawTerm("GO:9999999")],
            upper_terms=[RawTerm("GO:0044464")],
        )
        with pytest.raises(EmptyTermsError):
            run_extraction(go_graph(), options)
        options.force = True
        result = run_extraction(go_graph(), options)
        assert result.status == ExtractionStatus.EMPTY
        assert len(result.module) == 0
        assert result.dropped_seed == {OBO + "GO_9999999"}

    def test_missing_upper_dropped(self):
        """Test a missing upper term is reported and the walk runs to the roots."""
        options = ExtractOptions(
            method="mireot",
            lower_terms=[RawTerm("mitochondrion")],
            upper_terms=[RawTerm("GO:9999999")],
        )
        result = run_extraction(go_graph(), options)
        assert result.is_success
        assert result.dropped_seed == {OBO + "GO_9999999"}
        assert sub(ORGANELLE, CELL_PART) in result.module

    def test_override_keeps_upper_term(self):
        """Test upper terms above an override parent survive the override."""
        graph = OntologyGraph({
            sub(EX + "A", EX + "B"),
            sub(EX + "B", EX + "C"),
            sub(EX + "X", EX + "C"),
        })
        options = ExtractOptions(
            method="mireot",
            lower_terms=[RawTerm(EX + "A", (EX + "X",))],
            upper_terms=[RawTerm(EX + "C")],
        )
        result = run_extraction(graph, options)
        assert result.module.logical_axioms == {sub(EX + "A", EX + "X"), sub(EX + "X", EX + "C")}
        assert EX + "C" in result.module.signature
        assert EX + "B" not in result.module.signature

    def test_override_keeps_unreachable_upper_term(self):
        """Test an upper term cut off by an override is still in the module."""
        graph = OntologyGraph({
            sub(EX + "A", EX + "B"),
            sub(EX + "B", EX + "C"),
            sub(EX + "X", EX + "Y"),
        })
        options = ExtractOptions(
            method="mireot",
            lower_terms=[RawTerm(EX + "A", (EX + "X",))],
            upper_terms=[RawTerm(EX + "C")],
        )
        result = run_extraction(graph, options)
        assert EX + "C" in result.module.signature
        assert sub(EX + "X", EX + "Y") in result.module
        assert EX + "B" not in result.module.signature


class TestLocalityPipeline:
    """Test cases for STAR, TOP and BOT runs."""

    def test_bot(self):
        """Test a BOT run keeps the superclass chain."""
        result = run_extraction(go_graph(), ExtractOptions(method="bot", terms=[RawTerm("mitochondrion")]))
        assert result.module.logical_axioms == {sub(MITO, ORGANELLE), sub(ORGANELLE, CELL_PART)}

    def test_boundary_terms_rejected(self):
        """Test lower terms need MIREOT."""
        options = ExtractOptions(method="star", lower_terms=[RawTerm("mitochondrion")])
        with pytest.raises(InvalidOptionError):
            run_extraction(go_graph(), options)

    def test_module_override(self):
        """Test overrides rewrite a locality module."""
        options = ExtractOptions(
            method="bot",
            terms=[RawTerm("mitochondrion", ("cell part",))],
        )
        result = run_extraction(go_graph(), options)
        assert sub(MITO, CELL_PART) in result.module
        assert sub(MITO, ORGANELLE) not in result.module

    def test_prune_module(self):
        """Test intermediates none on a locality module."""
        options = ExtractOptions(
            method="bot", terms=[RawTerm("mitochondrion")], intermediates="none",
        )
        result = run_extraction(go_graph(), options)
        assert result.module.logical_axioms == {sub(MITO, CELL_PART)}

    def test_excluded_imports_hide_labels(self):
        """Test labels of excluded imports do not resolve."""
        imported = OntologyGraph({
            AnnotationAssertion(ORGANELLE, RDFS_LABEL, Literal("organelle")),
        })
        graph = OntologyGraph({sub(MITO, ORGANELLE)}, imports=[imported])
        options = ExtractOptions(method="bot", terms=[RawTerm("organelle")], imports="exclude")
        with pytest.raises(UnresolvedTermError):
            run_extraction(graph, options)


class TestAnnotationOptions:
    """Test cases for annotation post-processing."""

    def test_source_and_ontology_annotations(self):
        """Test source stamps and copied ontology annotations."""
        options = ExtractOptions(
            method="bot",
            terms=[RawTerm("mitochondrion")],
            annotate_with_source=True,
            copy_ontology_annotations=True,
        )
        result = run_extraction(go_graph(), options)
        assert AnnotationAssertion(MITO, RDFS_IS_DEFINED_BY, URIRef(OBO + "go.owl")) in result.module
        assert OntologyAnnotation(COMMENT, Literal("gene ontology")) in result.module.ontology_annotations

    def test_ontology_annotations_off_by_default(self):
        """Test ontology annotations are not copied unless asked."""
        result = run_extraction(go_graph(), ExtractOptions(method="bot", terms=[RawTerm("mitochondrion")]))
        assert result.module.ontology_annotations == set()

    def test_map_to_directive(self):
        """Test directives rewrite annotation properties."""
        options = ExtractOptions(
            method="mireot",
            lower_terms=[RawTerm("mitochondrion")],
            upper_terms=[RawTerm("organelle")],
            directives=[AnnotationDirective("rdfs:label", DirectiveKeyword.MAP_TO, "skos:altLabel")],
        )
        result = run_extraction(go_graph(), options)
        assert AnnotationAssertion(MITO, ALT_LABEL, Literal("mitochondrion")) in result.module
        assert AnnotationAssertion(MITO, RDFS_LABEL, Literal("mitochondrion")) not in result.module
        assert AnnotationAssertion(MITO, COMMENT, Literal("powerhouse")) not in result.module
