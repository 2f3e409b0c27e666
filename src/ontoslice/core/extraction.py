"""
ontoslice: Term-Driven Ontology Module Extraction
Module Extraction Orchestrator

Builds the effective axiom set under the imports policy, validates the seed
signature, delegates to the locality-based module extractor and applies the
individuals policy to the result.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Optional, Set, Tuple
import logging
import time

import psutil

from .errors import (
    EmptyTermsError, InvalidImportsPolicyError, InvalidIndividualsPolicyError,
    InvalidIntermediatesPolicyError, InvalidModuleStrategyError, InvalidOptionError
)
from .locality import SyntacticLocalityModuleExtractor
from .ontology import (
    AnnotationAssertion, Axiom, ClassAssertion, Declaration, DisjointClasses,
    EntityType, EquivalentClasses, ObjectPropertyAssertion, OntologyGraph,
    SubClassOf, declarations_for
)

logger = logging.getLogger(__name__)


class _TokenEnum(Enum):
    """Enum parsed case-insensitively from a command-line or config token."""

    @classmethod
    def parse(cls, token):
        if isinstance(token, cls):
            return token
        text = str(token).strip().upper().replace('-', '_')
        try:
            return cls[text]
        except KeyError:
            choices = ", ".join(m.name.lower() for m in cls)
            raise cls._error_type()(
                f"Unknown {cls._label()}; expected one of: {choices}",
                token=str(token)
            )

    @classmethod
    def _error_type(cls):
        raise NotImplementedError

    @classmethod
    def _label(cls) -> str:
        return cls.__name__


class ModuleStrategy(_TokenEnum):
    """Extraction method."""
    STAR = auto()
    TOP = auto()
    BOT = auto()
    MIREOT = auto()

    @classmethod
    def _error_type(cls):
        return InvalidModuleStrategyError

    @classmethod
    def _label(cls) -> str:
        return "extraction method"

    @property
    def is_locality(self) -> bool:
        return self != ModuleStrategy.MIREOT


class ImportsPolicy(_TokenEnum):
    """Whether imported axioms take part in extraction."""
    INCLUDE = auto()
    EXCLUDE = auto()

    @classmethod
    def _error_type(cls):
        return InvalidImportsPolicyError

    @classmethod
    def _label(cls) -> str:
        return "imports policy"


class IndividualsPolicy(_TokenEnum):
    """Which ClassAssertion axioms survive extraction."""
    INCLUDE = auto()
    MINIMAL = auto()
    DEFINITIONS = auto()
    EXCLUDE = auto()

    @classmethod
    def _error_type(cls):
        return InvalidIndividualsPolicyError

    @classmethod
    def _label(cls) -> str:
        return "individuals policy"


class IntermediatesPolicy(_TokenEnum):
    """How much of the intermediate hierarchy is kept."""
    ALL = auto()
    MINIMAL = auto()
    NONE = auto()

    @classmethod
    def _error_type(cls):
        return InvalidIntermediatesPolicyError

    @classmethod
    def _label(cls) -> str:
        return "intermediates policy"


def validate_strategy_options(
    strategy: ModuleStrategy,
    lower_terms: Iterable[str] = (),
    upper_terms: Iterable[str] = (),
    branch_terms: Iterable[str] = ()
) -> None:
    """Boundary terms only make sense for MIREOT."""
    if strategy.is_locality and (any(lower_terms) or any(upper_terms) or any(branch_terms)):
        raise InvalidOptionError(
            f"Lower, upper and branch-from terms cannot be used with "
            f"method {strategy.name}; use MIREOT or plain terms"
        )


def validate_seed(
    seed: Iterable[str],
    vocabulary: Set[str],
    force: bool = False
) -> Tuple[Set[str], Set[str]]:
    """
    Split the seed into terms present in the vocabulary and terms missing
    from it.

    Raises:
        EmptyTermsError: if no term is present and force is not set
    """
    seed = set(seed)
    valid = seed & vocabulary
    dropped = seed - vocabulary
    for iri in sorted(dropped):
        logger.warning(f"Term does not exist in input ontology: {iri}")
    if not valid and not force:
        raise EmptyTermsError(
            "No valid terms to extract; none exist in the input ontology "
            "(use force to extract anyway)"
        )
    return valid, dropped


class ExtractionStatus(Enum):
    """Status of an extraction."""
    SUCCESS = auto()
    EMPTY = auto()


@dataclass
class ExtractionResult:
    """Result of an extraction."""
    status: ExtractionStatus
    module: OntologyGraph
    seed: Set[str]
    time_seconds: float
    memory_mb: float
    dropped_seed: Set[str] = field(default_factory=set)
    message: str = ""

    @property
    def is_success(self) -> bool:
        return self.status == ExtractionStatus.SUCCESS

    @property
    def is_empty(self) -> bool:
        return len(self.module) == 0


def make_result(
    module: OntologyGraph,
    seed: Set[str],
    dropped: Set[str],
    start_time: float,
    message: str = ""
) -> ExtractionResult:
    """Create an ExtractionResult with timing and memory figures."""
    process = psutil.Process()
    memory_mb = process.memory_info().rss / (1024 * 1024)
    status = ExtractionStatus.SUCCESS if seed else ExtractionStatus.EMPTY
    return ExtractionResult(
        status=status,
        module=module,
        seed=set(seed),
        time_seconds=time.time() - start_time,
        memory_mb=memory_mb,
        dropped_seed=set(dropped),
        message=message
    )


def _abox_free(axiom: Axiom) -> bool:
    return axiom.is_logical and not isinstance(axiom, (ClassAssertion, ObjectPropertyAssertion))


def apply_individuals_policy(
    axioms: Iterable[Axiom],
    policy: IndividualsPolicy,
    seed: Iterable[str] = ()
) -> Set[Axiom]:
    """
    Filter ClassAssertion axioms according to the policy, then drop the
    declarations, annotations and property assertions of individuals that
    are no longer referenced.
    """
    policy = IndividualsPolicy.parse(policy)
    axioms = set(axioms)
    if policy == IndividualsPolicy.INCLUDE:
        return axioms

    seed = set(seed)
    assertions = {ax for ax in axioms if isinstance(ax, ClassAssertion)}
    others = axioms - assertions

    if policy == IndividualsPolicy.EXCLUDE:
        kept: Set[Axiom] = set()
    elif policy == IndividualsPolicy.MINIMAL:
        tbox_signature = set(seed)
        for ax in others:
            if _abox_free(ax):
                tbox_signature.update(ax.signature)
        kept = {
            ax for ax in assertions
            if ax.class_expression.signature <= tbox_signature
        }
    else:
        defined: Set[str] = set()
        for ax in others:
            if isinstance(ax, SubClassOf):
                defined |= ax.sub.individuals | ax.sup.individuals
            elif isinstance(ax, (EquivalentClasses, DisjointClasses)):
                for op in ax.operands:
                    defined |= op.individuals
        kept = {ax for ax in assertions if ax.individual in defined}

    result = others | kept

    individuals = {
        e.iri for ax in axioms for e in ax.entities
        if e.entity_type == EntityType.INDIVIDUAL
    }
    referenced = set(seed)
    for ax in result:
        if ax.is_logical and not isinstance(ax, ObjectPropertyAssertion):
            referenced.update(ax.signature)
    dropped = individuals - referenced

    def mentions_dropped(ax: Axiom) -> bool:
        if isinstance(ax, AnnotationAssertion):
            return ax.subject in dropped
        return bool(ax.signature & dropped)

    filtered = {ax for ax in result if not mentions_dropped(ax)}
    logger.debug(
        f"Individuals policy {policy.name}: kept {len(kept)} of "
        f"{len(assertions)} class assertions, dropped {len(dropped)} individuals"
    )
    return filtered


class ModuleExtractor:
    """
    Orchestrates logic-preserving module extraction for one input graph.

    Attributes:
        graph: The input ontology (never modified)
        imports: Imports policy
        individuals: Individuals policy
        force: Continue even if no seed term exists in the input
    """

    def __init__(
        self,
        graph: OntologyGraph,
        imports=ImportsPolicy.INCLUDE,
        individuals=IndividualsPolicy.INCLUDE,
        force: bool = False
    ):
        self.graph = graph
        self.imports = ImportsPolicy.parse(imports)
        self.individuals = IndividualsPolicy.parse(individuals)
        self.force = force

    def effective_graph(self) -> OntologyGraph:
        """Return the axioms visible under the imports policy, as one graph."""
        if self.imports == ImportsPolicy.INCLUDE:
            return self.graph.merged()
        return OntologyGraph(self.graph.axioms, iri=self.graph.iri)

    def extract(
        self,
        seed: Iterable[str],
        strategy=ModuleStrategy.STAR,
        output_iri: Optional[str] = None
    ) -> ExtractionResult:
        """
        Extract a module for the seed signature.

        Args:
            seed: Seed entity IRIs
            strategy: STAR, TOP or BOT
            output_iri: IRI of the resulting module

        Returns:
            ExtractionResult holding the module graph
        """
        start_time = time.time()
        strategy = ModuleStrategy.parse(strategy)
        if not strategy.is_locality:
            raise InvalidModuleStrategyError(
                "MIREOT is not a module extraction method", token=strategy.name
            )

        effective = self.effective_graph()
        valid, dropped = validate_seed(seed, effective.signature, self.force)

        logger.info(
            f"Extracting {strategy.name} module for {len(valid)} terms "
            f"from {len(effective)} axioms"
        )
        extractor = SyntacticLocalityModuleExtractor(effective.axioms)
        logical = extractor.extract(valid, strategy)

        axioms = self._complete(effective, logical, valid)
        axioms = apply_individuals_policy(axioms, self.individuals, valid)
        module = OntologyGraph(axioms, iri=output_iri)

        logger.info(f"Extracted {len(module)} axioms into {output_iri}")
        return make_result(
            module, valid, dropped, start_time,
            message=f"{strategy.name} module with {len(logical)} logical axioms"
        )

    @staticmethod
    def _complete(
        effective: OntologyGraph,
        logical: Set[Axiom],
        seed: Set[str]
    ) -> Set[Axiom]:
        """Add declarations and annotations for every entity in the module."""
        entities = set()
        for axiom in logical:
            entities.update(axiom.entities)
        entities.update(e for e in effective.entities if e.iri in seed)
        signature = {e.iri for e in entities} | seed

        axioms: Set[Axiom] = set(logical)
        axioms.update(declarations_for(entities))

        annotations = {
            ax for ax in effective.axioms
            if isinstance(ax, AnnotationAssertion) and ax.subject in signature
        }
        axioms.update(annotations)
        signature.update(ax.property for ax in annotations)

        axioms.update(
            ax for ax in effective.axioms
            if isinstance(ax, Declaration) and ax.entity.iri in signature
        )
        return axioms


__all__ = [
    'ModuleStrategy',
    'ImportsPolicy',
    'IndividualsPolicy',
    'IntermediatesPolicy',
    'ExtractionStatus',
    'ExtractionResult',
    'ModuleExtractor',
    'apply_individuals_policy',
    'make_result',
    'validate_seed',
    'validate_strategy_options',
]
