"""
ontoslice: Term-Driven Ontology Module Extraction
Error Taxonomy

Every failure raised by the extraction engine derives from OntosliceError.
Errors carry enough context (offending token, line number, job id) for the
caller to locate the cause.
"""

from __future__ import annotations
from typing import Optional, Iterable, List


class OntosliceError(Exception):
    """Base class for all extraction errors."""

    def __init__(
        self,
        message: str,
        token: Optional[str] = None,
        line: Optional[int] = None,
        job: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.token = token
        self.line = line
        self.job = job

    def __str__(self) -> str:
        context = []
        if self.job is not None:
            context.append(f"job '{self.job}'")
        if self.line is not None:
            context.append(f"line {self.line}")
        if self.token is not None:
            context.append(f"term '{self.token}'")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class UnresolvedTermError(OntosliceError):
    """A term token could not be resolved to an entity IRI."""
    pass


class AmbiguousTermError(OntosliceError):
    """A label matches more than one entity."""

    def __init__(self, message: str, candidates: Iterable[str] = (), **kwargs):
        super().__init__(message, **kwargs)
        self.candidates: List[str] = sorted(candidates)

    def __str__(self) -> str:
        base = super().__str__()
        if self.candidates:
            return f"{base}; candidates: {', '.join(self.candidates)}"
        return base


class EmptyTermsError(OntosliceError):
    """None of the seed terms exist in the input ontology."""
    pass


class MissingLowerTermError(OntosliceError):
    """MIREOT requires lower terms or branch-from terms."""
    pass


class MissingUpperDependentError(OntosliceError):
    """Upper terms were given without any lower or branch-from terms."""
    pass


class InvalidModuleStrategyError(OntosliceError):
    """Unknown extraction method token."""
    pass


class InvalidOptionError(OntosliceError):
    """Options that cannot be combined were supplied together."""
    pass


class InvalidIndividualsPolicyError(OntosliceError):
    """Unknown individuals policy token."""
    pass


class InvalidImportsPolicyError(OntosliceError):
    """Unknown imports policy token."""
    pass


class InvalidIntermediatesPolicyError(OntosliceError):
    """Unknown intermediates policy token."""
    pass


class ConfigError(OntosliceError):
    """Malformed configuration or term file."""
    pass


class LoadError(OntosliceError):
    """Malformed ontology input or unreachable import."""
    pass


class SaveError(OntosliceError):
    """Unsupported output format or serialization failure."""
    pass


class JobError(OntosliceError):
    """Wraps the first failure of a batch job."""

    def __init__(self, job: str, cause: Exception):
        super().__init__(f"Import job failed: {cause}", job=job)
        self.cause = cause

    def __str__(self) -> str:
        return f"job '{self.job}': {self.cause}"


__all__ = [
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
]
