"""Transform engine: applies a MappingSpecification to source records.

The engine holds no state between calls beyond the read-only lookup tables
it was constructed with. ``apply`` is a pure function of (specification,
records): one target record per source record, in input order, plus the
diagnostics collected along the way. Re-running it on the same input gives
identical output.

Fan-out policy: every source row yields exactly one target row. Repeated
OMOP events (several conditions in one visit, say) must arrive as separate
source rows; the engine never splits or merges rows.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import Any

import pandas as pd
from loguru import logger

from omop2sdtm.errors import UnknownLookupError
from omop2sdtm.execution.operations import OPERATION_HANDLERS
from omop2sdtm.io.extract import frame_to_records
from omop2sdtm.models.diagnostics import Diagnostic
from omop2sdtm.models.mapping import MappingSpecification
from omop2sdtm.transforms.recoding import normalize_code

SourceRecord = Mapping[str, Any]
TargetRecord = Mapping[str, Any]


class TransformEngine:
    """Applies mapping specifications to batches of source records.

    Records are independent, so ``workers > 1`` spreads them over a thread
    pool. The specification and lookup tables are only read during a run
    and are shared between workers without locking.
    """

    def __init__(
        self,
        lookups: Mapping[str, Mapping[str, str]] | None = None,
        *,
        workers: int = 1,
    ) -> None:
        if workers < 1:
            msg = f"workers must be at least 1, got {workers}"
            raise ValueError(msg)
        self.workers = workers
        self.lookups: dict[str, dict[str, str]] = {
            name: {normalize_code(code): label for code, label in table.items()}
            for name, table in (lookups or {}).items()
        }

    def apply(
        self,
        spec: MappingSpecification,
        records: Iterable[SourceRecord],
    ) -> tuple[list[TargetRecord], list[Diagnostic]]:
        """Transform source records into target records.

        Args:
            spec: Validated mapping specification.
            records: Source records (field name -> scalar value).

        Returns:
            Tuple of (target_records, diagnostics).
            target_records: one read-only mapping per input record, same order.
            diagnostics: every record-time issue, ordered by record then rule.

        Raises:
            UnknownLookupError: If a lookup rule names a codelist this engine
                was not given. Raised before any record is processed.
        """
        self._check_lookups(spec)

        if self.workers == 1:
            results = [self._transform_record(spec, i, r) for i, r in enumerate(records)]
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                # map() yields in submission order, which restores input order
                results = list(
                    pool.map(lambda item: self._transform_record(spec, *item), enumerate(records))
                )

        targets = [target for target, _ in results]
        diagnostics = [d for _, record_diags in results for d in record_diags]

        logger.info(
            "Transformed {} domain: {} records, {} rules, {} diagnostics",
            spec.target_domain,
            len(targets),
            len(spec.rules),
            len(diagnostics),
        )
        return targets, diagnostics

    def apply_frame(
        self,
        spec: MappingSpecification,
        df: pd.DataFrame,
    ) -> tuple[pd.DataFrame, list[Diagnostic]]:
        """Transform a source DataFrame into a target DataFrame.

        Columns of the result follow the specification's rule order. NaN and
        NaT in the input are treated as null.
        """
        targets, diagnostics = self.apply(spec, frame_to_records(df))
        result = pd.DataFrame([dict(t) for t in targets], columns=spec.target_fields())
        return result, diagnostics

    def _check_lookups(self, spec: MappingSpecification) -> None:
        missing = sorted(spec.lookup_codelists() - self.lookups.keys())
        if missing:
            msg = (
                f"{spec.target_domain} specification uses codelist(s) "
                f"{', '.join(missing)} that were not provided to the engine"
            )
            raise UnknownLookupError(msg)

    def _transform_record(
        self,
        spec: MappingSpecification,
        index: int,
        record: SourceRecord,
    ) -> tuple[TargetRecord, list[Diagnostic]]:
        """Apply every rule, in declared order, to one record."""
        values: dict[str, Any] = {}
        diagnostics: list[Diagnostic] = []
        for rule in spec.rules:
            handler = OPERATION_HANDLERS[rule.operation]
            value, rule_diags = handler(
                record,
                rule,
                domain=spec.target_domain,
                index=index,
                lookups=self.lookups,
            )
            values[rule.target_field.name] = value
            diagnostics.extend(rule_diags)
        return MappingProxyType(values), diagnostics


def apply_specification(
    spec: MappingSpecification,
    records: Iterable[SourceRecord],
    lookups: Mapping[str, Mapping[str, str]] | None = None,
) -> tuple[list[TargetRecord], list[Diagnostic]]:
    """Single-threaded convenience wrapper over TransformEngine.apply."""
    return TransformEngine(lookups).apply(spec, records)
