"""On-disk output for transformation runs: per-domain CSV and the diagnostics report."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger

from omop2sdtm.models.diagnostics import RunReport


def write_domain_csv(
    records: Sequence[Mapping[str, Any]],
    columns: Sequence[str],
    output_path: Path,
) -> Path:
    """Write target records as CSV with columns in the given order.

    Null values are written as empty cells.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame([dict(r) for r in records], columns=list(columns))
    df.to_csv(output_path, index=False)
    logger.info("Wrote {} rows -> {}", len(df), output_path)
    return output_path


def write_run_report(report: RunReport, output_path: Path) -> Path:
    """Write the diagnostics report as JSON."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(report.model_dump_json(indent=2))
    logger.info("Wrote diagnostics report ({} entries) -> {}", report.diagnostic_count, output_path)
    return output_path


def load_run_report(path: Path) -> RunReport:
    """Read a diagnostics report written by write_run_report."""
    return RunReport.model_validate_json(Path(path).read_text())
