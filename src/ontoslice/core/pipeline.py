"""
ontoslice: Term-Driven Ontology Module Extraction
Extraction Pipeline

Runs one extraction job end to end:
resolve terms -> MIREOT traversal or locality module -> parent overrides and
intermediate pruning -> annotation augmentation.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple
import logging
import time

from .annotations import (
    AnnotationDirective, SourceMap, annotate_with_source,
    apply_annotation_directives, copy_ontology_annotations
)
from .extraction import (
    ExtractionResult, ImportsPolicy, IndividualsPolicy, IntermediatesPolicy,
    ModuleExtractor, ModuleStrategy, make_result, validate_seed,
    validate_strategy_options
)
from .intermediates import (
    apply_module_overrides, apply_parent_overrides, prune_hierarchy, prune_module
)
from .mireot import (
    MireotTraversal, mireot_hierarchy, mireot_module, validate_mireot_terms
)
from .ontology import OntologyGraph
from .terms import LabelIndex, PrefixTable, RawTerm, TermResolver, TermSpec

logger = logging.getLogger(__name__)


@dataclass
class ExtractOptions:
    """Options for one extraction. Policy fields accept enum members or tokens."""
    method: ModuleStrategy = ModuleStrategy.STAR
    terms: List[RawTerm] = field(default_factory=list)
    lower_terms: List[RawTerm] = field(default_factory=list)
    upper_terms: List[RawTerm] = field(default_factory=list)
    branch_terms: List[RawTerm] = field(default_factory=list)
    intermediates: IntermediatesPolicy = IntermediatesPolicy.ALL
    imports: ImportsPolicy = ImportsPolicy.INCLUDE
    individuals: IndividualsPolicy = IndividualsPolicy.INCLUDE
    force: bool = False
    annotate_with_source: bool = False
    source_map: Optional[SourceMap] = None
    copy_ontology_annotations: bool = False
    annotation_properties: List[str] = field(default_factory=list)
    directives: List[AnnotationDirective] = field(default_factory=list)
    output_iri: Optional[str] = None

    def __post_init__(self):
        self.method = ModuleStrategy.parse(self.method)
        self.intermediates = IntermediatesPolicy.parse(self.intermediates)
        self.imports = ImportsPolicy.parse(self.imports)
        self.individuals = IndividualsPolicy.parse(self.individuals)


def effective_graph(graph: OntologyGraph, imports: ImportsPolicy) -> OntologyGraph:
    """Return the graph visible under the imports policy, without imports."""
    if ImportsPolicy.parse(imports) == ImportsPolicy.INCLUDE:
        return graph.merged()
    return OntologyGraph(graph.axioms, iri=graph.iri)


def _overrides(specs: List[TermSpec]) -> Dict[str, Tuple[str, ...]]:
    overrides: Dict[str, Tuple[str, ...]] = {}
    for spec in specs:
        if spec.parents:
            overrides[spec.iri] = overrides.get(spec.iri, ()) + spec.parents
    return overrides


def _protected(specs: List[TermSpec]) -> Set[str]:
    keep = set()
    for spec in specs:
        keep.add(spec.iri)
        keep.update(spec.parents)
    return keep


class ExtractionPipeline:
    """
    Drives one extraction over a loaded graph.

    Attributes:
        graph: Input ontology, read only
        prefixes: Prefix table for CURIE expansion
        target: Optional graph used only to resolve override parents and
            annotation properties by label
    """

    def __init__(
        self,
        graph: OntologyGraph,
        prefixes: Optional[PrefixTable] = None,
        target: Optional[OntologyGraph] = None
    ):
        self.graph = graph
        self.prefixes = prefixes or PrefixTable()
        self.target = target

    def _resolver(self, effective: OntologyGraph) -> TermResolver:
        target_labels = LabelIndex.from_graph(self.target) if self.target is not None else None
        return TermResolver(
            self.prefixes,
            LabelIndex.from_graph(effective, include_imports=False),
            target_labels
        )

    def run(self, options: ExtractOptions) -> ExtractionResult:
        """
        Run the extraction.

        Returns:
            ExtractionResult whose module is the finished output graph
        """
        start_time = time.time()
        validate_strategy_options(
            options.method, options.lower_terms, options.upper_terms, options.branch_terms
        )
        effective = effective_graph(self.graph, options.imports)
        resolver = self._resolver(effective)

        terms = resolver.resolve_terms(options.terms, must_keep=True)
        lower = resolver.resolve_terms(options.lower_terms, must_keep=True)
        upper = resolver.resolve_terms(options.upper_terms, must_keep=True)
        branch = resolver.resolve_terms(options.branch_terms, must_keep=True)

        specs = terms + lower + upper + branch
        overrides = _overrides(specs)
        keep = _protected(specs)

        if options.method == ModuleStrategy.MIREOT:
            module, valid, dropped = self._mireot(
                effective, resolver, options,
                [s.iri for s in terms + lower], [s.iri for s in upper],
                [s.iri for s in branch], overrides, keep
            )
        else:
            extractor = ModuleExtractor(
                self.graph, options.imports, options.individuals, options.force
            )
            result = extractor.extract(
                {s.iri for s in terms}, options.method, options.output_iri
            )
            valid, dropped = result.seed, result.dropped_seed
            module = apply_module_overrides(result.module, overrides)
            module = prune_module(module, options.intermediates, keep)

        module = self._annotate(module, effective, resolver, options)
        module = module.with_axioms(module.axioms, iri=options.output_iri)

        logger.info(f"Extracted {len(module)} axioms into {options.output_iri}")
        return make_result(
            module, valid, dropped, start_time,
            message=f"{options.method.name} extraction of {len(valid)} terms"
        )

    def _mireot(
        self,
        effective: OntologyGraph,
        resolver: TermResolver,
        options: ExtractOptions,
        lower: List[str],
        upper: List[str],
        branch: List[str],
        overrides: Dict[str, Tuple[str, ...]],
        keep: Set[str]
    ) -> Tuple[OntologyGraph, Set[str], Set[str]]:
        validate_mireot_terms(lower, upper, branch)
        # upper terms only bound the walk, so they cannot stand in for a seed
        traversal_seed, dropped = validate_seed(
            set(lower) | set(branch), effective.signature, options.force
        )
        missing_upper = {t for t in upper if t not in effective.signature}
        for iri in sorted(missing_upper):
            logger.warning(f"Upper term does not exist in input ontology: {iri}")
        dropped = dropped | missing_upper

        lower = [t for t in lower if t in traversal_seed]
        upper = [t for t in upper if t not in missing_upper]
        branch = [t for t in branch if t in traversal_seed]
        if not lower and not branch:
            logger.warning("No lower or branch-from terms left; output is empty")
            return OntologyGraph(iri=options.output_iri), set(), dropped

        traversal = MireotTraversal(effective)
        hierarchy = mireot_hierarchy(effective, lower, upper, branch, traversal)
        if overrides:
            parents = {p for ps in overrides.values() for p in ps}
            hierarchy = hierarchy.union(
                traversal.ancestors_hierarchy(parents & effective.signature, upper)
            )
            hierarchy = apply_parent_overrides(
                hierarchy, overrides, set(lower) | set(branch) | set(overrides), keep=upper
            )
        hierarchy = prune_hierarchy(hierarchy, options.intermediates, keep)
        valid = traversal_seed | set(upper)

        properties = None
        if options.annotation_properties:
            properties = [
                resolver.resolve(p, prefer_target=True) for p in options.annotation_properties
            ]
        module = mireot_module(effective, hierarchy, properties, iri=options.output_iri)
        return module, valid, dropped

    def _annotate(
        self,
        module: OntologyGraph,
        effective: OntologyGraph,
        resolver: TermResolver,
        options: ExtractOptions
    ) -> OntologyGraph:
        if options.directives:
            directives = [d.resolve(resolver) for d in options.directives]
            module = apply_annotation_directives(module, effective, directives)
        if options.annotate_with_source:
            module = annotate_with_source(module, self.graph, options.source_map)
        if options.copy_ontology_annotations:
            module = copy_ontology_annotations(module, self.graph)
        return module


def run_extraction(
    graph: OntologyGraph,
    options: ExtractOptions,
    prefixes: Optional[PrefixTable] = None,
    target: Optional[OntologyGraph] = None
) -> ExtractionResult:
    """
    Convenience function to run one extraction.

    Args:
        graph: Input ontology
        options: Extraction options
        prefixes: Prefix table for CURIE expansion
        target: Optional label-resolution graph

    Returns:
        ExtractionResult holding the output graph
    """
    return ExtractionPipeline(graph, prefixes, target).run(options)


__all__ = [
    'ExtractOptions',
    'ExtractionPipeline',
    'effective_graph',
    'run_extraction',
]
