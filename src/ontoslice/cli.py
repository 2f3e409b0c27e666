#!/usr/bin/env python3
"""
ontoslice Command Line Interface

Extract a module from one ontology, or run a batch of import jobs from a
config file.

Usage:
    ontoslice extract -i go.owl -m mireot --lower-term GO:0005739 -o go_import.owl
    ontoslice extract -i uberon.owl -m star -T terms.txt -o uberon_import.ttl
    ontoslice import -c imports.yaml --workers 4
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .core import (
    ExtractOptions, OntosliceError, PrefixTable, RawTerm, SourceMap,
    load_config, read_term_file, run_extraction, BatchRunner
)
from .core.annotations import read_directives
from .core.errors import ConfigError
from .utils import OWLParser, OWLWriter

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _terms(tokens: Optional[List[str]], files: Optional[List[str]]) -> List[RawTerm]:
    terms = [RawTerm(token) for token in tokens or []]
    for path in files or []:
        terms.extend(read_term_file(path))
    return terms


def _prefixes(args) -> PrefixTable:
    path = args.prefixes or os.environ.get('ONTOSLICE_PREFIXES')
    table = PrefixTable.from_json(path) if path else PrefixTable()
    extra = {}
    for entry in args.prefix or []:
        prefix, sep, namespace = entry.partition(':')
        namespace = namespace.strip()
        if not sep or not namespace:
            raise ConfigError("Prefix must look like 'PFX: http://namespace/'", token=entry)
        extra[prefix.strip()] = namespace
    return table.with_prefixes(extra) if extra else table


def _workers(value: Optional[int]) -> int:
    if value is not None:
        return value
    env = os.environ.get('ONTOSLICE_WORKERS')
    if not env:
        return 1
    try:
        return int(env)
    except ValueError:
        raise ConfigError("ONTOSLICE_WORKERS must be an integer", token=env)


def run_extract(args) -> int:
    """Handle the extract subcommand."""
    prefixes = _prefixes(args)
    parser = OWLParser()
    graph = parser.parse(args.input)
    target = parser.parse(args.target) if args.target else None

    directives = []
    if args.annotations:
        path = Path(args.annotations)
        if not path.exists():
            raise ConfigError(f"Annotation directive file not found: {path}")
        directives = read_directives(path.read_text(encoding='utf-8').splitlines())

    options = ExtractOptions(
        method=args.method,
        terms=_terms(args.term, args.term_file),
        lower_terms=_terms(args.lower_term, args.lower_terms),
        upper_terms=_terms(args.upper_term, args.upper_terms),
        branch_terms=_terms(args.branch_from_term, args.branch_from_terms),
        intermediates=args.intermediates,
        imports=args.imports,
        individuals=args.individuals,
        force=args.force,
        annotate_with_source=args.annotate_with_source,
        source_map=SourceMap.from_file(args.sources, prefixes) if args.sources else None,
        copy_ontology_annotations=args.copy_ontology_annotations,
        annotation_properties=args.annotation_property or [],
        directives=directives,
        output_iri=args.output_iri,
    )

    result = run_extraction(graph, options, prefixes, target)
    OWLWriter(dict(prefixes.prefixes)).save(result.module, args.output)
    logger.info(
        f"{result.message}: {len(result.module)} axioms in {result.time_seconds:.2f}s "
        f"({result.memory_mb:.1f} MB)"
    )
    return 0


def run_import(args) -> int:
    """Handle the import subcommand."""
    prefixes = _prefixes(args)
    jobs = load_config(args.config)
    parser = OWLParser()
    writer = OWLWriter(dict(prefixes.prefixes))
    runner = BatchRunner(parser.parse, writer.save, prefixes, _workers(args.workers))
    results = runner.run(jobs)
    for job_id, result in results.items():
        logger.info(f"{job_id}: {len(result.module)} axioms")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='ontoslice',
        description="Extract ontology modules for import files"
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    extract = subparsers.add_parser('extract', help='Extract a module from one ontology')
    extract.add_argument('--input', '-i', required=True, help='Input ontology path or URL')
    extract.add_argument('--target', help='Ontology used only to resolve parent and property labels')
    extract.add_argument(
        '--method', '-m',
        default='STAR',
        help='Extraction method: STAR, TOP, BOT or MIREOT (default: STAR)'
    )
    extract.add_argument('--term', '-t', action='append', help='Seed term (repeatable)')
    extract.add_argument('--term-file', '-T', action='append', help='File of seed terms')
    extract.add_argument('--lower-term', action='append', help='MIREOT lower term')
    extract.add_argument('--lower-terms', action='append', help='File of MIREOT lower terms')
    extract.add_argument('--upper-term', action='append', help='MIREOT upper term')
    extract.add_argument('--upper-terms', action='append', help='File of MIREOT upper terms')
    extract.add_argument('--branch-from-term', action='append', help='MIREOT branch-from term')
    extract.add_argument('--branch-from-terms', action='append', help='File of MIREOT branch-from terms')
    extract.add_argument(
        '--intermediates',
        default='all',
        help='Intermediate classes to keep: all, minimal or none (default: all)'
    )
    extract.add_argument(
        '--individuals',
        default='include',
        help='Individuals policy: include, minimal, definitions or exclude (default: include)'
    )
    extract.add_argument(
        '--imports',
        default='include',
        help='Imports policy: include or exclude (default: include)'
    )
    extract.add_argument(
        '--copy-ontology-annotations',
        action='store_true',
        help='Copy ontology-level annotations into the output'
    )
    extract.add_argument(
        '--annotate-with-source',
        action='store_true',
        help='Add rdfs:isDefinedBy to every extracted entity'
    )
    extract.add_argument('--sources', help='TSV/CSV source map for --annotate-with-source')
    extract.add_argument(
        '--annotation-property',
        action='append',
        help='MIREOT: annotation property to keep (repeatable)'
    )
    extract.add_argument('--annotations', help='File of annotation directives')
    extract.add_argument(
        '--force',
        action='store_true',
        help='Continue when no term exists in the input'
    )
    extract.add_argument('--output-iri', help='IRI of the output ontology')
    extract.add_argument('--output', '-o', required=True, help='Output file')
    extract.add_argument('--prefixes', help='JSON-LD context file of prefixes')
    extract.add_argument('--prefix', action='append', help="Extra prefix, e.g. 'EX: http://example.org/'")
    extract.set_defaults(handler=run_extract)

    batch = subparsers.add_parser('import', help='Run import jobs from a config file')
    batch.add_argument('--config', '-c', required=True, help='Directive or YAML config file')
    batch.add_argument('--workers', type=int, default=None, help='Number of parallel jobs')
    batch.add_argument('--prefixes', help='JSON-LD context file of prefixes')
    batch.add_argument('--prefix', action='append', help="Extra prefix, e.g. 'EX: http://example.org/'")
    batch.set_defaults(handler=run_import)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    level = os.environ.get('ONTOSLICE_LOG_LEVEL', 'INFO').upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        return args.handler(args)
    except OntosliceError as e:
        print(f"ERROR {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
