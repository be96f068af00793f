"""Record-time diagnostics and the run report that aggregates them.

Diagnostics are non-fatal: they are collected next to the transformed
records so a large, imperfect extract can be partially converted and the
exceptions reviewed by hand afterwards.
"""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class DiagnosticKind(StrEnum):
    """Kind of record-time issue.

    TYPE_MISMATCH: value could not be converted to the target value type.
    UNMAPPED_CODE: code absent from the lookup table used to recode it.
    MISSING_FIELD: source field absent from the input record (schema drift).
    """

    TYPE_MISMATCH = "TypeMismatch"
    UNMAPPED_CODE = "UnmappedCode"
    MISSING_FIELD = "MissingField"


class Diagnostic(BaseModel):
    """One non-fatal issue found while transforming one record."""

    model_config = ConfigDict(frozen=True)

    kind: DiagnosticKind = Field(..., description="Issue kind")
    domain: str = Field(..., description="Target SDTM domain")
    record_index: int = Field(..., ge=0, description="Index of the input record")
    target_field: str = Field(..., description="Target variable left null")
    source_field: str | None = Field(
        default=None, description="Qualified source field involved, if any"
    )
    value: str | None = Field(default=None, description="Offending value, stringified")
    message: str = Field(..., description="Human-readable detail")


class DomainRunSummary(BaseModel):
    """Per-domain totals for one transformation run."""

    domain: str
    record_count: int = Field(default=0, ge=0)
    diagnostic_counts: dict[str, int] = Field(
        default_factory=dict, description="DiagnosticKind value -> count"
    )

    @property
    def diagnostic_total(self) -> int:
        return sum(self.diagnostic_counts.values())


class RunReport(BaseModel):
    """Diagnostics report for a run across one or more domains."""

    study_id: str | None = Field(default=None, description="Study identifier, if overridden")
    generated_at: str = Field(default="", description="ISO 8601 generation timestamp")
    domains: dict[str, DomainRunSummary] = Field(default_factory=dict)
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @property
    def diagnostic_count(self) -> int:
        return len(self.diagnostics)

    @property
    def record_count(self) -> int:
        return sum(s.record_count for s in self.domains.values())

    @classmethod
    def from_results(
        cls,
        record_counts: dict[str, int],
        diagnostics: list[Diagnostic],
        *,
        study_id: str | None = None,
    ) -> RunReport:
        """Aggregate per-domain record counts and diagnostics into a report.

        Args:
            record_counts: Domain code -> number of target records produced.
            diagnostics: Every diagnostic from the run, in emission order.
            study_id: Optional study identifier recorded in the report.

        Returns:
            RunReport with per-domain counts by diagnostic kind.
        """
        by_domain: dict[str, Counter[str]] = {d: Counter() for d in record_counts}
        for diag in diagnostics:
            by_domain.setdefault(diag.domain, Counter())[diag.kind.value] += 1

        domains = {
            domain: DomainRunSummary(
                domain=domain,
                record_count=record_counts.get(domain, 0),
                diagnostic_counts=dict(sorted(counts.items())),
            )
            for domain, counts in by_domain.items()
        }
        return cls(
            study_id=study_id,
            generated_at=datetime.now(tz=UTC).isoformat(),
            domains=domains,
            diagnostics=list(diagnostics),
        )
