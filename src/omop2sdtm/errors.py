"""Specification-time exceptions.

Everything raised here indicates a malformed schema or mapping, not bad
data. These errors are fatal and surface before any record is transformed.
Record-level problems are reported as Diagnostic values instead (see
omop2sdtm.models.diagnostics).
"""

from __future__ import annotations


class SpecificationError(Exception):
    """Base class for schema and mapping-specification errors.

    When a specification is built, every rule is checked before anything
    is raised. The error that is raised is the first problem found, and
    ``problems`` holds all of them so a caller can report every issue in
    one pass.
    """

    def __init__(self, message: str, *, target_field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.target_field = target_field
        self.problems: list[SpecificationError] = [self]

    @property
    def kind(self) -> str:
        """Exception class name, used in reports."""
        return type(self).__name__


class DuplicateFieldError(SpecificationError):
    """Raised when a field is registered twice for the same domain."""


class UnknownFieldError(SpecificationError):
    """Raised when a registry lookup names a field that was never registered."""


class SchemaViolationError(SpecificationError):
    """Raised when a rule references a field the schema does not allow."""


class DuplicateTargetError(SpecificationError):
    """Raised when two rules write the same target field."""


class ArityError(SpecificationError):
    """Raised when a rule's source-field count does not fit its operation."""


class InvalidParameterError(SpecificationError):
    """Raised when a rule is missing an operation parameter it requires."""


class UnknownLookupError(SpecificationError):
    """Raised when a lookup rule names a codelist the engine was not given."""
