"""Export MappingSpecification to JSON and Excel for review.

Provides two export functions:
- export_spec_to_json: the specification as a reloadable MappingDocument
- export_spec_to_excel: openpyxl workbook with 2 sheets (Mapping Spec, Summary)
  with fills highlighting rules that recode values.
"""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path

from loguru import logger
from openpyxl import Workbook
from openpyxl.formatting.rule import CellIsRule
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from omop2sdtm.models.mapping import MappingOperation, MappingSpecification


def export_spec_to_json(spec: MappingSpecification, output_path: Path) -> Path:
    """Write a specification as a MappingDocument JSON file.

    The output can be loaded back with mapping.loader.load_specification.

    Args:
        spec: The mapping specification to export.
        output_path: File path to write the JSON output.

    Returns:
        The path written.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(spec.to_document().model_dump_json(indent=2, exclude_defaults=True))
    logger.info("Exported mapping spec to JSON: {path}", path=output_path)
    return output_path


def export_spec_to_excel(spec: MappingSpecification, output_path: Path) -> Path:
    """Export a mapping specification to an Excel workbook with 2 sheets.

    Sheet 1 - Mapping Spec: one row per rule, in execution order. Lookup
        and coerce rules are highlighted since they can emit UnmappedCode.
    Sheet 2 - Summary: specification metadata and rule counts.

    Args:
        spec: The mapping specification to export.
        output_path: File path to write the .xlsx output.

    Returns:
        The path written.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()

    ws_mapping = wb.active
    ws_mapping.title = "Mapping Spec"  # type: ignore[union-attr]
    _write_mapping_sheet(ws_mapping, spec)  # type: ignore[arg-type]

    ws_summary = wb.create_sheet("Summary")
    _write_summary_sheet(ws_summary, spec)

    wb.save(output_path)
    logger.info("Exported mapping spec to Excel: {path}", path=output_path)
    return output_path


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_MAPPING_HEADERS = [
    "Row #",
    "Target Variable",
    "Target Label",
    "Type",
    "Nullable",
    "Operation",
    "Source Fields",
    "Parameters",
]

_HEADER_FONT = Font(bold=True)
_GREEN_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
_YELLOW_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")

_COL_WIDTHS = {
    "Row #": 7,
    "Target Variable": 16,
    "Target Label": 40,
    "Type": 16,
    "Nullable": 9,
    "Operation": 11,
    "Source Fields": 45,
    "Parameters": 45,
}


def _write_mapping_sheet(ws: object, spec: MappingSpecification) -> None:
    """Populate the Mapping Spec sheet."""
    for col_idx, header in enumerate(_MAPPING_HEADERS, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)  # type: ignore[union-attr]
        cell.font = _HEADER_FONT
        col_letter = get_column_letter(col_idx)
        ws.column_dimensions[col_letter].width = _COL_WIDTHS.get(header, 15)  # type: ignore[union-attr]

    for row_idx, rule in enumerate(spec.rules, start=1):
        data_row = row_idx + 1
        target = rule.target_field
        values = [
            row_idx,
            target.name,
            target.label,
            target.value_type.value,
            "Y" if target.nullable else "N",
            rule.operation.value,
            ", ".join(f.qualified_name for f in rule.source_fields),
            json.dumps(rule.parameters, sort_keys=True, default=str) if rule.parameters else "",
        ]
        for col_idx, value in enumerate(values, start=1):
            ws.cell(row=data_row, column=col_idx, value=value)  # type: ignore[union-attr]

    if not spec.rules:
        return

    last_row = len(spec.rules) + 1
    last_col = get_column_letter(len(_MAPPING_HEADERS))
    ws.auto_filter.ref = f"A1:{last_col}{last_row}"  # type: ignore[union-attr]

    # "Operation" column (F)
    range_str = f"F2:F{last_row}"
    ws.conditional_formatting.add(  # type: ignore[union-attr]
        range_str,
        CellIsRule(operator="equal", formula=['"constant"'], fill=_GREEN_FILL),
    )
    for op in (MappingOperation.LOOKUP, MappingOperation.COERCE):
        ws.conditional_formatting.add(  # type: ignore[union-attr]
            range_str,
            CellIsRule(operator="equal", formula=[f'"{op.value}"'], fill=_YELLOW_FILL),
        )


def _write_summary_sheet(ws: object, spec: MappingSpecification) -> None:
    """Populate the Summary sheet."""
    label_font = Font(bold=True)
    wrap_align = Alignment(wrap_text=True)

    ws.column_dimensions["A"].width = 25  # type: ignore[union-attr]
    ws.column_dimensions["B"].width = 50  # type: ignore[union-attr]

    op_counts = Counter(r.operation for r in spec.rules)
    codelists = sorted(spec.lookup_codelists())

    rows: list[tuple[str, str | int]] = [
        ("Specification", spec.name),
        ("Target Domain", spec.target_domain),
        ("Source Table", spec.source_table or ""),
        ("", ""),
        ("Total Rules", len(spec.rules)),
    ]
    rows.extend((f"{op.value.capitalize()} Rules", op_counts.get(op, 0)) for op in MappingOperation)
    rows.append(("", ""))
    rows.append(("Lookup Codelists", ", ".join(codelists) if codelists else "None"))

    for row_idx, (label, value) in enumerate(rows, start=1):
        label_cell = ws.cell(row=row_idx, column=1, value=label)  # type: ignore[union-attr]
        label_cell.font = label_font
        value_cell = ws.cell(row=row_idx, column=2, value=value)  # type: ignore[union-attr]
        value_cell.alignment = wrap_align
