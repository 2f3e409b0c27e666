"""
ontoslice: Term-Driven Ontology Module Extraction
Syntactic Locality Module Extraction

Computes BOT, TOP and STAR modules. An axiom is local w.r.t. a signature
when it is trivially satisfied once every entity outside the signature is
interpreted as empty (bottom-locality) or as the whole domain
(top-locality). A module is the fixpoint of adding non-local axioms and
growing the signature with their symbols.
"""

from __future__ import annotations
from collections import defaultdict
from enum import Enum, auto
from typing import Dict, Iterable, List, Set, Union
import logging

from .ontology import (
    Axiom, ClassAssertion, ClassExpression, DisjointClasses, EquivalentClasses,
    Nothing, NamedClass, ObjectAllValuesFrom, ObjectComplementOf,
    ObjectHasValue, ObjectIntersectionOf, ObjectOneOf, ObjectPropertyAssertion,
    ObjectSomeValuesFrom, ObjectUnionOf, SubClassOf, SubObjectPropertyOf, Thing
)

logger = logging.getLogger(__name__)


class LocalityType(Enum):
    """How entities outside the signature are interpreted."""
    BOTTOM = auto()   # empty
    TOP = auto()      # whole domain


class LocalityChecker:
    """
    Syntactic locality checks for one locality type against a signature.

    The signature set is read on every call, so callers may grow it in place.
    """

    def __init__(self, locality: LocalityType, signature: Set[str]):
        self.locality = locality
        self.signature = signature

    def _outside(self, iri: str) -> bool:
        return iri not in self.signature

    def is_bottom_equivalent(self, expr: ClassExpression) -> bool:
        """Check whether the expression is empty under the locality reading."""
        bottom = self.locality == LocalityType.BOTTOM

        if isinstance(expr, Nothing):
            return True
        if isinstance(expr, Thing):
            return False
        if isinstance(expr, NamedClass):
            return bottom and self._outside(expr.iri)
        if isinstance(expr, ObjectComplementOf):
            return self.is_top_equivalent(expr.operand)
        if isinstance(expr, ObjectIntersectionOf):
            return any(self.is_bottom_equivalent(op) for op in expr.operands)
        if isinstance(expr, ObjectUnionOf):
            return all(self.is_bottom_equivalent(op) for op in expr.operands)
        if isinstance(expr, ObjectSomeValuesFrom):
            if bottom and self._outside(expr.property):
                return True
            return self.is_bottom_equivalent(expr.filler)
        if isinstance(expr, ObjectAllValuesFrom):
            if bottom:
                return False
            return self._outside(expr.property) and self.is_bottom_equivalent(expr.filler)
        if isinstance(expr, ObjectHasValue):
            return bottom and self._outside(expr.property)
        if isinstance(expr, ObjectOneOf):
            return len(expr.members) == 0
        return False

    def is_top_equivalent(self, expr: ClassExpression) -> bool:
        """Check whether the expression is the whole domain under the locality reading."""
        top = self.locality == LocalityType.TOP

        if isinstance(expr, Thing):
            return True
        if isinstance(expr, Nothing):
            return False
        if isinstance(expr, NamedClass):
            return top and self._outside(expr.iri)
        if isinstance(expr, ObjectComplementOf):
            return self.is_bottom_equivalent(expr.operand)
        if isinstance(expr, ObjectIntersectionOf):
            return all(self.is_top_equivalent(op) for op in expr.operands)
        if isinstance(expr, ObjectUnionOf):
            return any(self.is_top_equivalent(op) for op in expr.operands)
        if isinstance(expr, ObjectSomeValuesFrom):
            return top and self._outside(expr.property) and self.is_top_equivalent(expr.filler)
        if isinstance(expr, ObjectAllValuesFrom):
            if not top and self._outside(expr.property):
                return True
            return self.is_top_equivalent(expr.filler)
        if isinstance(expr, ObjectHasValue):
            return top and self._outside(expr.property)
        return False

    def is_local(self, axiom: Axiom) -> bool:
        """Check whether the axiom is local w.r.t. the current signature."""
        if not axiom.is_logical:
            return True

        if isinstance(axiom, SubClassOf):
            return (self.is_bottom_equivalent(axiom.sub)
                    or self.is_top_equivalent(axiom.sup))

        if isinstance(axiom, EquivalentClasses):
            operands = list(axiom.operands)
            return (all(self.is_bottom_equivalent(op) for op in operands)
                    or all(self.is_top_equivalent(op) for op in operands))

        if isinstance(axiom, DisjointClasses):
            non_bottom = [op for op in axiom.operands if not self.is_bottom_equivalent(op)]
            return len(non_bottom) <= 1

        if isinstance(axiom, SubObjectPropertyOf):
            if self.locality == LocalityType.BOTTOM:
                return self._outside(axiom.sub)
            return self._outside(axiom.sup)

        if isinstance(axiom, ClassAssertion):
            return self.is_top_equivalent(axiom.class_expression)

        if isinstance(axiom, ObjectPropertyAssertion):
            return self.locality == LocalityType.TOP and self._outside(axiom.property)

        # Unknown logical axiom types are always kept
        return False


class SyntacticLocalityModuleExtractor:
    """
    Extracts locality-based modules from a fixed set of axioms.

    Only logical axioms take part; declarations and annotations are added
    by the caller for the entities of the resulting module.
    """

    def __init__(self, axioms: Iterable[Axiom]):
        self.axioms: Set[Axiom] = {ax for ax in axioms if ax.is_logical}

    def extract(
        self,
        signature: Iterable[str],
        strategy: Union[str, Enum] = "STAR"
    ) -> Set[Axiom]:
        """
        Compute the module for a seed signature.

        Args:
            signature: Seed entity IRIs
            strategy: STAR, TOP or BOT

        Returns:
            The logical axioms of the module
        """
        name = strategy.name if isinstance(strategy, Enum) else str(strategy).upper()
        seed = set(signature)

        if name == "BOT":
            module = self._fixpoint(self.axioms, seed, LocalityType.BOTTOM)
        elif name == "TOP":
            module = self._fixpoint(self.axioms, seed, LocalityType.TOP)
        elif name == "STAR":
            module = self._star(seed)
        else:
            raise ValueError(f"Unknown locality module type: {strategy}")

        logger.debug(f"{name} module: {len(module)} of {len(self.axioms)} logical axioms")
        return module

    def _star(self, seed: Set[str]) -> Set[Axiom]:
        """Alternate BOT and TOP extraction until the module stops shrinking."""
        module = set(self.axioms)
        while True:
            size = len(module)
            module = self._fixpoint(module, seed, LocalityType.BOTTOM)
            module = self._fixpoint(module, seed, LocalityType.TOP)
            if len(module) == size:
                return module

    @staticmethod
    def _fixpoint(
        axioms: Set[Axiom],
        seed: Set[str],
        locality: LocalityType
    ) -> Set[Axiom]:
        """
        Add non-local axioms until none remain. After the first full pass
        only axioms mentioning newly added symbols are rechecked.
        """
        signature = set(seed)
        checker = LocalityChecker(locality, signature)

        index: Dict[str, List[Axiom]] = defaultdict(list)
        for axiom in axioms:
            for iri in axiom.signature:
                index[iri].append(axiom)

        module: Set[Axiom] = set()
        queue = list(axioms)
        while queue:
            new_symbols: Set[str] = set()
            for axiom in queue:
                if axiom in module or checker.is_local(axiom):
                    continue
                module.add(axiom)
                added = axiom.signature - signature
                signature.update(added)
                new_symbols.update(added)

            pending = set()
            for iri in new_symbols:
                for axiom in index.get(iri, ()):
                    if axiom not in module:
                        pending.add(axiom)
            queue = list(pending)

        return module


__all__ = [
    'LocalityType',
    'LocalityChecker',
    'SyntacticLocalityModuleExtractor',
]
