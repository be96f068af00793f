"""Field definition models for the source (OMOP) and target (SDTM) schemas.

These models describe structure only. They are registered once in a
SchemaRegistry and consulted when a mapping specification is built,
never while records are being transformed.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class FieldDomain(StrEnum):
    """Which side of the mapping a field belongs to."""

    SOURCE = "source"
    TARGET = "target"


class ValueType(StrEnum):
    """Semantic value type of a field.

    - STRING: free text
    - INTEGER: whole numbers (OMOP ids, years)
    - DATE: calendar dates / datetimes, rendered as ISO 8601 on the SDTM side
    - FLOAT: measured numeric values
    - CATEGORICAL_CODE: a code drawn from a codelist (OMOP concept id,
      SDTM controlled terminology submission value)
    """

    STRING = "string"
    INTEGER = "integer"
    DATE = "date"
    FLOAT = "float"
    CATEGORICAL_CODE = "categorical-code"


class FieldDefinition(BaseModel):
    """A single named field in the source or target schema.

    ``table`` is the OMOP table (e.g. ``person``) for source fields and the
    SDTM domain code (e.g. ``DM``) for target fields. Immutable once created.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Field name (e.g., 'person_id', 'SUBJID')")
    table: str = Field(..., min_length=1, description="OMOP table or SDTM domain code")
    domain: FieldDomain = Field(..., description="Source or target side of the mapping")
    value_type: ValueType = Field(..., description="Semantic value type")
    nullable: bool = Field(default=True, description="Whether the field may hold null")
    label: str = Field(default="", description="Human-readable label")

    @property
    def qualified_name(self) -> str:
        """Table-qualified name, e.g. ``person.person_id`` or ``DM.SUBJID``."""
        return f"{self.table}.{self.name}"


class FieldSpec(BaseModel):
    """Reference-data shape of one field inside a bundled table file."""

    name: str
    value_type: ValueType
    nullable: bool = True
    label: str = ""


class TableSchema(BaseModel):
    """Reference-data shape of one OMOP table or SDTM domain."""

    name: str = Field(..., description="Table name or domain code")
    description: str = Field(default="", description="Table description")
    fields: list[FieldSpec] = Field(default_factory=list, description="Ordered fields")

    def to_definitions(self, domain: FieldDomain) -> list[FieldDefinition]:
        """Expand this table into FieldDefinitions for the given side."""
        return [
            FieldDefinition(
                name=f.name,
                table=self.name,
                domain=domain,
                value_type=f.value_type,
                nullable=f.nullable,
                label=f.label,
            )
            for f in self.fields
        ]
