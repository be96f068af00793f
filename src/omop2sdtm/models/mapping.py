"""Mapping specification models.

Two layers live here:

- Configuration documents (RuleDefinition, MappingDocument) reference fields
  by qualified name and are what users write as JSON.
- Resolved models (FieldMappingRule, MappingSpecification) hold the
  registered FieldDefinitions and are produced only by the builder after
  exhaustive validation. The transform engine consumes these.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from omop2sdtm.models.schema import FieldDefinition


class MappingOperation(StrEnum):
    """How a target field is produced from its source fields.

    - RENAME: copy one source value verbatim (safe coercion only)
    - CONSTANT: assign a literal value, no source field
    - CONCAT: join two or more source values with a separator
    - COERCE: explicit type conversion, optionally via an inline code table
    - LOOKUP: recode one source value through an external codelist
    """

    RENAME = "rename"
    CONSTANT = "constant"
    CONCAT = "concat"
    COERCE = "coerce"
    LOOKUP = "lookup"


# operation -> (minimum sources, maximum sources or None for unbounded)
_ARITY: dict[MappingOperation, tuple[int, int | None]] = {
    MappingOperation.CONSTANT: (0, 0),
    MappingOperation.RENAME: (1, 1),
    MappingOperation.COERCE: (1, 1),
    MappingOperation.LOOKUP: (1, 1),
    MappingOperation.CONCAT: (2, None),
}


def arity_matches(operation: MappingOperation, source_count: int) -> bool:
    """Return True if ``source_count`` source fields fit ``operation``."""
    low, high = _ARITY[operation]
    if source_count < low:
        return False
    return high is None or source_count <= high


def describe_arity(operation: MappingOperation) -> str:
    """Human-readable arity requirement, e.g. 'exactly 1' or 'at least 2'."""
    low, high = _ARITY[operation]
    if high is None:
        return f"at least {low}"
    return f"exactly {low}"


class RuleDefinition(BaseModel):
    """One mapping rule as written in a specification document.

    Fields are referenced by qualified name: ``person.person_id`` for
    sources. The target is the bare SDTM variable name (``SUBJID``) or
    its qualified form (``DM.SUBJID``).
    """

    target: str = Field(..., min_length=1, description="Target SDTM variable")
    operation: MappingOperation = Field(..., description="How the target is produced")
    sources: list[str] = Field(
        default_factory=list, description="Qualified source field names, in order"
    )
    parameters: dict[str, Any] = Field(
        default_factory=dict, description="Operation-specific arguments"
    )
    description: str = Field(default="", description="Free-text note for reviewers")


class MappingDocument(BaseModel):
    """A mapping specification document for one target domain."""

    name: str | None = Field(default=None, description="Specification name")
    target_domain: str = Field(..., min_length=1, description="SDTM domain code (e.g., 'DM')")
    source_table: str | None = Field(
        default=None,
        description="Name of the extract fed to this spec (e.g., 'person')",
    )
    description: str = Field(default="", description="Free-text description")
    rules: list[RuleDefinition] = Field(default_factory=list, description="Ordered rules")


class FieldMappingRule(BaseModel):
    """A validated rule bound to registered field definitions."""

    model_config = ConfigDict(frozen=True)

    target_field: FieldDefinition
    source_fields: tuple[FieldDefinition, ...] = ()
    operation: MappingOperation
    parameters: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_arity(self) -> FieldMappingRule:
        if not arity_matches(self.operation, len(self.source_fields)):
            msg = (
                f"{self.operation.value} requires {describe_arity(self.operation)} "
                f"source field(s), got {len(self.source_fields)}"
            )
            raise ValueError(msg)
        return self

    @property
    def source(self) -> FieldDefinition:
        """The single source field of a one-source rule."""
        return self.source_fields[0]

    def to_definition(self) -> RuleDefinition:
        """Convert back to the document form (used by exporters)."""
        return RuleDefinition(
            target=self.target_field.name,
            operation=self.operation,
            sources=[f.qualified_name for f in self.source_fields],
            parameters=dict(self.parameters),
        )


class MappingSpecification(BaseModel):
    """Named, ordered set of rules scoped to one SDTM target domain.

    Only the builder creates these, so every rule is known to reference
    registered fields and no two rules share a target field.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    target_domain: str
    source_table: str | None = None
    rules: tuple[FieldMappingRule, ...] = ()

    def target_fields(self) -> list[str]:
        """Target variable names in rule order."""
        return [r.target_field.name for r in self.rules]

    def lookup_codelists(self) -> set[str]:
        """Names of the external codelists referenced by lookup rules."""
        return {
            str(r.parameters["codelist"])
            for r in self.rules
            if r.operation == MappingOperation.LOOKUP
        }

    def with_constant(self, target: str, value: Any) -> MappingSpecification:
        """Return a copy whose constant rule for ``target`` assigns ``value``.

        Rules that are not constant assignments to ``target`` are kept as-is.
        If no such rule exists the specification is returned unchanged.
        """
        rules = tuple(
            r.model_copy(update={"parameters": {**r.parameters, "value": value}})
            if r.operation == MappingOperation.CONSTANT and r.target_field.name == target
            else r
            for r in self.rules
        )
        return self.model_copy(update={"rules": rules})

    def to_document(self) -> MappingDocument:
        """Convert back to the document form (used by exporters)."""
        return MappingDocument(
            name=self.name,
            target_domain=self.target_domain,
            source_table=self.source_table,
            rules=[r.to_definition() for r in self.rules],
        )
