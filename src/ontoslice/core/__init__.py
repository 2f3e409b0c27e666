"""
ontoslice Core Module

This module provides the extraction engine: the entity/axiom data model,
term resolution, MIREOT traversal, locality-based module extraction,
intermediate pruning, annotation augmentation and batch jobs.
"""

from .errors import (
    OntosliceError,
    UnresolvedTermError,
    AmbiguousTermError,
    EmptyTermsError,
    MissingLowerTermError,
    MissingUpperDependentError,
    InvalidModuleStrategyError,
    InvalidOptionError,
    InvalidIndividualsPolicyError,
    InvalidImportsPolicyError,
    InvalidIntermediatesPolicyError,
    ConfigError,
    LoadError,
    SaveError,
    JobError,
)

from .ontology import (
    EntityType,
    Entity,
    ClassExpression,
    Thing,
    Nothing,
    NamedClass,
    ObjectComplementOf,
    ObjectIntersectionOf,
    ObjectUnionOf,
    ObjectSomeValuesFrom,
    ObjectAllValuesFrom,
    ObjectHasValue,
    ObjectOneOf,
    Axiom,
    Declaration,
    SubClassOf,
    EquivalentClasses,
    DisjointClasses,
    SubObjectPropertyOf,
    ClassAssertion,
    ObjectPropertyAssertion,
    AnnotationAssertion,
    OntologyAnnotation,
    OntologyGraph,
    make_intersection,
    make_union,
)

from .hierarchy import Hierarchy

from .terms import (
    PrefixTable,
    LabelIndex,
    RawTerm,
    TermSpec,
    TermResolver,
    parse_term_lines,
    read_term_file,
)

from .mireot import (
    MireotTraversal,
    mireot_hierarchy,
    mireot_module,
)

from .locality import (
    LocalityType,
    SyntacticLocalityModuleExtractor,
)

from .extraction import (
    ModuleStrategy,
    ImportsPolicy,
    IndividualsPolicy,
    IntermediatesPolicy,
    ExtractionStatus,
    ExtractionResult,
    ModuleExtractor,
    apply_individuals_policy,
)

from .intermediates import (
    prune_hierarchy,
    prune_module,
    apply_parent_overrides,
)

from .annotations import (
    SourceMap,
    AnnotationDirective,
    DirectiveKeyword,
    default_source,
    annotate_with_source,
    apply_annotation_directives,
    copy_ontology_annotations,
)

from .pipeline import (
    ExtractOptions,
    ExtractionPipeline,
    run_extraction,
)

from .batch import (
    ImportJob,
    BatchRunner,
    parse_directive_config,
    parse_yaml_config,
    load_config,
    run_config,
)

__all__ = [
    # Errors
    'OntosliceError',
    'UnresolvedTermError',
    'AmbiguousTermError',
    'EmptyTermsError',
    'MissingLowerTermError',
    'MissingUpperDependentError',
    'InvalidModuleStrategyError',
    'InvalidOptionError',
    'InvalidIndividualsPolicyError',
    'InvalidImportsPolicyError',
    'InvalidIntermediatesPolicyError',
    'ConfigError',
    'LoadError',
    'SaveError',
    'JobError',

    # Data model
    'EntityType',
    'Entity',
    'ClassExpression',
    'Thing',
    'Nothing',
    'NamedClass',
    'ObjectComplementOf',
    'ObjectIntersectionOf',
    'ObjectUnionOf',
    'ObjectSomeValuesFrom',
    'ObjectAllValuesFrom',
    'ObjectHasValue',
    'ObjectOneOf',
    'Axiom',
    'Declaration',
    'SubClassOf',
    'EquivalentClasses',
    'DisjointClasses',
    'SubObjectPropertyOf',
    'ClassAssertion',
    'ObjectPropertyAssertion',
    'AnnotationAssertion',
    'OntologyAnnotation',
    'OntologyGraph',
    'make_intersection',
    'make_union',
    'Hierarchy',

    # Term resolution
    'PrefixTable',
    'LabelIndex',
    'RawTerm',
    'TermSpec',
    'TermResolver',
    'parse_term_lines',
    'read_term_file',

    # Extraction
    'MireotTraversal',
    'mireot_hierarchy',
    'mireot_module',
    'LocalityType',
    'SyntacticLocalityModuleExtractor',
    'ModuleStrategy',
    'ImportsPolicy',
    'IndividualsPolicy',
    'IntermediatesPolicy',
    'ExtractionStatus',
    'ExtractionResult',
    'ModuleExtractor',
    'apply_individuals_policy',

    # Post-processing
    'prune_hierarchy',
    'prune_module',
    'apply_parent_overrides',
    'SourceMap',
    'AnnotationDirective',
    'DirectiveKeyword',
    'default_source',
    'annotate_with_source',
    'apply_annotation_directives',
    'copy_ontology_annotations',

    # Jobs
    'ExtractOptions',
    'ExtractionPipeline',
    'run_extraction',
    'ImportJob',
    'BatchRunner',
    'parse_directive_config',
    'parse_yaml_config',
    'load_config',
    'run_config',
]
