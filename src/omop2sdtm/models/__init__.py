"""Pydantic data models shared across all omop2sdtm components.

All models are re-exported here for convenient imports:
    from omop2sdtm.models import FieldDefinition, MappingSpecification, Diagnostic
"""

from omop2sdtm.models.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    DomainRunSummary,
    RunReport,
)
from omop2sdtm.models.mapping import (
    FieldMappingRule,
    MappingDocument,
    MappingOperation,
    MappingSpecification,
    RuleDefinition,
    arity_matches,
    describe_arity,
)
from omop2sdtm.models.schema import (
    FieldDefinition,
    FieldDomain,
    FieldSpec,
    TableSchema,
    ValueType,
)

__all__ = [
    # schema
    "FieldDomain",
    "ValueType",
    "FieldDefinition",
    "FieldSpec",
    "TableSchema",
    # mapping
    "MappingOperation",
    "arity_matches",
    "describe_arity",
    "RuleDefinition",
    "MappingDocument",
    "FieldMappingRule",
    "MappingSpecification",
    # diagnostics
    "DiagnosticKind",
    "Diagnostic",
    "DomainRunSummary",
    "RunReport",
]
