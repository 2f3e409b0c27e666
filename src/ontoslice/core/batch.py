"""
ontoslice: Term-Driven Ontology Module Extraction
Batch Config Driver

Parses job lists (a line-oriented directive format or a YAML import config)
and runs one extraction per job. The batch is fail-fast: the first failing
job aborts the run with a JobError.
"""

from __future__ import annotations
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import logging

import yaml

from .annotations import AnnotationDirective, SourceMap
from .errors import ConfigError, JobError, MissingLowerTermError, OntosliceError
from .extraction import (
    ExtractionResult, ImportsPolicy, IndividualsPolicy, IntermediatesPolicy, ModuleStrategy
)
from .ontology import OntologyGraph
from .pipeline import ExtractOptions, run_extraction
from .terms import PrefixTable, RawTerm, parse_term_lines, read_term_file, split_term_line

logger = logging.getLogger(__name__)

SINGLE_VALUE = (
    'input', 'target', 'output', 'iri', 'method', 'intermediates',
    'imports', 'individuals', 'source-map',
)
FLAGS = ('force', 'annotate-with-source', 'copy-ontology-annotations')
MULTI_VALUE = (
    'annotation-properties', 'annotations', 'terms', 'lower-terms',
    'upper-terms', 'branch-from-terms',
)
DIRECTIVES = frozenset(SINGLE_VALUE + FLAGS + MULTI_VALUE)

TERM_KEYS = {
    'terms': 'terms',
    'lower-terms': 'lower_terms',
    'upper-terms': 'upper_terms',
    'branch-from-terms': 'branch_terms',
}

TRUE_TOKENS = ('true', 'yes', 'on', '1')
FALSE_TOKENS = ('false', 'no', 'off', '0')


@dataclass
class ImportJob:
    """One extraction job: where to read, what to extract, where to write."""
    job_id: str
    input: str
    output: str
    options: ExtractOptions = field(default_factory=ExtractOptions)
    target: Optional[str] = None
    source_map: Optional[str] = None
    line: Optional[int] = None


def _parse_bool(value: Any, name: str, line: Optional[int] = None) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_TOKENS:
        return True
    if text in FALSE_TOKENS:
        return False
    raise ConfigError(f"'{name}' expects true or false", token=str(value), line=line)


def _resolve_path(value: str, base_dir: Optional[Path]) -> str:
    if base_dir is None or '://' in value or Path(value).is_absolute():
        return value
    return str(base_dir / value)


def _with_context(error: OntosliceError, line: Optional[int], job: Optional[str]) -> OntosliceError:
    if error.line is None:
        error.line = line
    if error.job is None:
        error.job = job
    return error


@dataclass
class _Block:
    """Directive arguments collected for one job, keyed by directive name."""
    line: int
    job_id: Optional[str] = None
    args: Dict[str, List[Tuple[int, str]]] = field(default_factory=dict)


def _split_blocks(text: str) -> List[_Block]:
    blocks: List[_Block] = []
    block: Optional[_Block] = None
    current: Optional[str] = None

    for number, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith('#'):
            continue

        if stripped.startswith('!'):
            name = stripped[1:].strip().lower()
            if name == 'job':
                block = _Block(line=number)
                blocks.append(block)
                current = 'job'
                continue
            if name not in DIRECTIVES:
                raise ConfigError("Unknown directive", token=name, line=number)
            if block is None:
                block = _Block(line=number)
                blocks.append(block)
            current = name
            block.args.setdefault(name, [])
            continue

        if current is None:
            raise ConfigError("Argument line before any directive", token=stripped, line=number)
        if current == 'job':
            if block.job_id is not None:
                raise ConfigError("'! job' takes a single job id", token=stripped, line=number)
            block.job_id = stripped
            continue
        block.args[current].append((number, line))

    return blocks


def _build_directive_job(
    block: _Block,
    index: int,
    base_dir: Optional[Path]
) -> ImportJob:
    job_id = block.job_id

    def single(name: str, required: bool = False) -> Tuple[Optional[str], Optional[int]]:
        values = block.args.get(name) or []
        if not values:
            if required:
                raise ConfigError(
                    f"Missing required directive '! {name}'", line=block.line, job=job_id
                )
            return None, None
        if len(values) > 1:
            raise ConfigError(
                f"Directive '! {name}' takes one argument", line=values[1][0], job=job_id
            )
        number, value = values[0]
        return value.strip(), number

    output, _ = single('output', required=True)
    if job_id is None:
        job_id = Path(output).stem or f"job{index}"

    input_path, _ = single('input', required=True)
    target, _ = single('target')
    iri, _ = single('iri')
    source_map, _ = single('source-map')

    kwargs: Dict[str, Any] = {'output_iri': iri}
    for name in ('method', 'intermediates', 'imports', 'individuals'):
        value, number = single(name, required=(name == 'method'))
        if value is None:
            continue
        try:
            kwargs[name] = _policy(name, value)
        except OntosliceError as e:
            raise _with_context(e, number, job_id)

    for name in FLAGS:
        value, number = single(name)
        if value is not None:
            kwargs[name.replace('-', '_')] = _parse_bool(value, name, number)

    for name, attr in TERM_KEYS.items():
        kwargs[attr] = [
            RawTerm(cells[0], tuple(cells[1:]), number)
            for number, cells in (
                (n, split_term_line(text, n)) for n, text in block.args.get(name, [])
            )
            if cells
        ]
    kwargs['annotation_properties'] = [
        text.strip() for _, text in block.args.get('annotation-properties', [])
    ]
    kwargs['directives'] = [
        AnnotationDirective.parse(text, number)
        for number, text in block.args.get('annotations', [])
    ]

    try:
        options = ExtractOptions(**kwargs)
    except OntosliceError as e:
        raise _with_context(e, block.line, job_id)

    return ImportJob(
        job_id=job_id,
        input=_resolve_path(input_path, base_dir),
        output=_resolve_path(output, base_dir),
        options=options,
        target=_resolve_path(target, base_dir) if target else None,
        source_map=_resolve_path(source_map, base_dir) if source_map else None,
        line=block.line
    )


POLICY_PARSERS = {
    'method': ModuleStrategy,
    'intermediates': IntermediatesPolicy,
    'imports': ImportsPolicy,
    'individuals': IndividualsPolicy,
}


def _policy(name: str, value: str):
    return POLICY_PARSERS[name].parse(value)


def parse_directive_config(text: str, base_dir: Optional[Path] = None) -> List[ImportJob]:
    """
    Parse the directive format.

    Each ``! <directive>`` line starts a block whose argument lines run
    until the next ``!`` line. ``! job [id]`` starts a new job; without it
    the whole file is one job.
    """
    blocks = _split_blocks(text)
    if not blocks:
        raise ConfigError("Configuration defines no jobs")
    jobs = [_build_directive_job(block, i, base_dir) for i, block in enumerate(blocks, start=1)]
    _check_unique(jobs)
    return jobs


def _yaml_terms(value: Any, name: str, base_dir: Optional[Path], job_id: str) -> List[RawTerm]:
    if value is None:
        return []
    if isinstance(value, str):
        if '\n' in value:
            return parse_term_lines(value)
        return read_term_file(_resolve_path(value, base_dir))
    if isinstance(value, list):
        terms = []
        for item in value:
            cells = split_term_line(str(item))
            if cells:
                terms.append(RawTerm(cells[0], tuple(cells[1:])))
        return terms
    raise ConfigError(f"'{name}' must be a file path or a list of terms", job=job_id)


def _yaml_directives(value: Any, job_id: str) -> List[AnnotationDirective]:
    directives = []
    for item in value or []:
        if isinstance(item, str):
            directives.append(AnnotationDirective.parse(item))
        elif isinstance(item, dict) and 'property' in item:
            extra = {k: v for k, v in item.items() if k != 'property'}
            if not extra:
                directives.append(AnnotationDirective(str(item['property'])))
            elif len(extra) == 1:
                keyword, target = next(iter(extra.items()))
                line = f"{item['property']}\t{keyword}\t{target}"
                directives.append(AnnotationDirective.parse(line))
            else:
                raise ConfigError("Annotation entry takes one keyword", job=job_id)
        else:
            raise ConfigError("Invalid annotation entry", token=str(item), job=job_id)
    return directives


def _build_yaml_job(entry: Any, index: int, base_dir: Optional[Path]) -> ImportJob:
    if not isinstance(entry, dict):
        raise ConfigError(f"Import entry {index} is not a mapping")
    for key in ('input', 'output'):
        if not entry.get(key):
            raise ConfigError(f"Import entry {index} is missing '{key}'")

    output = str(entry['output'])
    job_id = str(entry.get('id') or Path(output).stem or f"job{index}")
    extract = entry.get('extract') or {}
    if not isinstance(extract, dict):
        raise ConfigError("'extract' must be a mapping", job=job_id)
    if not extract.get('method'):
        raise ConfigError(
            f"No extraction method for {entry.get('iri') or output}", job=job_id
        )

    try:
        kwargs: Dict[str, Any] = {'output_iri': entry.get('iri')}
        for name in ('method', 'intermediates', 'imports', 'individuals'):
            if extract.get(name) is not None:
                kwargs[name] = _policy(name, extract[name])
        for name in FLAGS:
            if extract.get(name) is not None:
                kwargs[name.replace('-', '_')] = _parse_bool(extract[name], name)
        for name, attr in TERM_KEYS.items():
            kwargs[attr] = _yaml_terms(extract.get(name), name, base_dir, job_id)
        kwargs['annotation_properties'] = [
            str(p) for p in extract.get('annotation-properties') or []
        ]
        kwargs['directives'] = _yaml_directives(extract.get('annotations'), job_id)
        options = ExtractOptions(**kwargs)
    except OntosliceError as e:
        raise _with_context(e, None, job_id)

    if (options.method == ModuleStrategy.MIREOT
            and not (options.lower_terms or options.branch_terms or options.terms)):
        raise MissingLowerTermError(
            f"No lower terms for MIREOT import {entry.get('iri') or output}", job=job_id
        )

    source_map = extract.get('source-map')
    target = entry.get('target')
    return ImportJob(
        job_id=job_id,
        input=_resolve_path(str(entry['input']), base_dir),
        output=_resolve_path(output, base_dir),
        options=options,
        target=_resolve_path(str(target), base_dir) if target else None,
        source_map=_resolve_path(str(source_map), base_dir) if source_map else None
    )


def parse_yaml_config(text: str, base_dir: Optional[Path] = None) -> List[ImportJob]:
    """
    Parse a YAML import config: one or more documents, each a mapping or a
    list of mappings with iri, input, output and an extract section.
    """
    try:
        documents = list(yaml.safe_load_all(text))
    except yaml.YAMLError as e:
        mark = getattr(e, 'problem_mark', None)
        raise ConfigError(
            f"Invalid YAML: {e}", line=mark.line + 1 if mark is not None else None
        )

    entries = []
    for document in documents:
        if document is None:
            continue
        if isinstance(document, list):
            entries.extend(document)
        else:
            entries.append(document)
    if not entries:
        raise ConfigError("Configuration defines no jobs")

    jobs = [_build_yaml_job(entry, i, base_dir) for i, entry in enumerate(entries, start=1)]
    _check_unique(jobs)
    return jobs


def _check_unique(jobs: List[ImportJob]) -> None:
    seen = set()
    for job in jobs:
        if job.job_id in seen:
            raise ConfigError("Duplicate job id", token=job.job_id, line=job.line)
        seen.add(job.job_id)


def load_config(path: Union[str, Path]) -> List[ImportJob]:
    """Load a job list, choosing the parser from the file suffix."""
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8')
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}")

    base_dir = path.parent
    if path.suffix.lower() in ('.yaml', '.yml'):
        jobs = parse_yaml_config(text, base_dir)
    else:
        jobs = parse_directive_config(text, base_dir)
    logger.info(f"Loaded {len(jobs)} import jobs from {path}")
    return jobs


Loader = Callable[[str], OntologyGraph]
Writer = Callable[[OntologyGraph, str], Any]


class BatchRunner:
    """
    Runs a list of import jobs.

    Each distinct input and target is loaded once and shared read-only
    between jobs. With more than one worker, jobs run on a thread pool.
    """

    def __init__(
        self,
        loader: Loader,
        writer: Writer,
        prefixes: Optional[PrefixTable] = None,
        workers: int = 1
    ):
        self.loader = loader
        self.writer = writer
        self.prefixes = prefixes or PrefixTable()
        self.workers = max(1, workers)

    def _load_graphs(self, jobs: List[ImportJob]) -> Dict[str, OntologyGraph]:
        graphs: Dict[str, OntologyGraph] = {}
        for job in jobs:
            for source in (job.input, job.target):
                if source is None or source in graphs:
                    continue
                try:
                    graphs[source] = self.loader(source)
                except OntosliceError as e:
                    raise JobError(job.job_id, e) from e
                logger.info(f"Loaded {source}")
        return graphs

    def run_job(self, job: ImportJob, graphs: Dict[str, OntologyGraph]) -> ExtractionResult:
        """Run and write one job; any failure is raised as JobError."""
        logger.info(f"Running job {job.job_id}: {job.input} -> {job.output}")
        try:
            options = job.options
            if job.source_map is not None:
                options = replace(
                    options, source_map=SourceMap.from_file(job.source_map, self.prefixes)
                )
            target = graphs.get(job.target) if job.target is not None else None
            result = run_extraction(graphs[job.input], options, self.prefixes, target)
            self.writer(result.module, job.output)
        except OntosliceError as e:
            raise JobError(job.job_id, e) from e
        logger.info(f"Job {job.job_id} wrote {len(result.module)} axioms to {job.output}")
        return result

    def run(self, jobs: List[ImportJob]) -> Dict[str, ExtractionResult]:
        """
        Run every job, stopping at the first failure.

        Returns:
            Mapping of job id to its ExtractionResult, in job order
        """
        graphs = self._load_graphs(jobs)
        results: Dict[str, ExtractionResult] = {}

        if self.workers == 1 or len(jobs) <= 1:
            for job in jobs:
                results[job.job_id] = self.run_job(job, graphs)
            return results

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {executor.submit(self.run_job, job, graphs): job for job in jobs}
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()
            for future in done:
                error = future.exception()
                if error is not None:
                    raise error

        for future, job in futures.items():
            results[job.job_id] = future.result()
        return {job.job_id: results[job.job_id] for job in jobs}


def run_config(
    path: Union[str, Path],
    loader: Loader,
    writer: Writer,
    prefixes: Optional[PrefixTable] = None,
    workers: int = 1
) -> Dict[str, ExtractionResult]:
    """Convenience function to load a config and run all of its jobs."""
    jobs = load_config(path)
    return BatchRunner(loader, writer, prefixes, workers).run(jobs)


__all__ = [
    'ImportJob',
    'BatchRunner',
    'parse_directive_config',
    'parse_yaml_config',
    'load_config',
    'run_config',
]
