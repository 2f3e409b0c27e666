"""
ontoslice: Term-Driven Ontology Module Extraction

Extracts self-contained modules of large ontologies from a small set of
seed terms, for building import files.

This package provides:
- MIREOT hierarchy extraction between lower, upper and branch terms
- STAR/TOP/BOT syntactic locality modules
- Intermediate pruning, parent overrides and source annotations
- Batch import jobs driven by a config file

Example:
    >>> from ontoslice import parse_owl, ExtractOptions, RawTerm, run_extraction
    >>> graph = parse_owl("go.owl")
    >>> options = ExtractOptions(method="mireot", lower_terms=[RawTerm("GO:0005739")])
    >>> result = run_extraction(graph, options)
"""

__version__ = "0.1.0"
__author__ = "ontoslice developers"

from .core import (
    OntologyGraph,
    OntosliceError,
    RawTerm,
    PrefixTable,
    ModuleStrategy,
    ExtractOptions,
    ExtractionResult,
    ExtractionStatus,
    ModuleExtractor,
    mireot_hierarchy,
    run_extraction,
    load_config,
    run_config,
    BatchRunner,
)

from .utils import (
    OWLParser,
    OWLWriter,
    parse_owl,
    save_owl,
)

__all__ = [
    # Version
    '__version__',

    # Core
    'OntologyGraph',
    'OntosliceError',
    'RawTerm',
    'PrefixTable',
    'ModuleStrategy',
    'ExtractOptions',
    'ExtractionResult',
    'ExtractionStatus',
    'ModuleExtractor',
    'mireot_hierarchy',
    'run_extraction',
    'load_config',
    'run_config',
    'BatchRunner',

    # I/O
    'OWLParser',
    'OWLWriter',
    'parse_owl',
    'save_owl',
]
