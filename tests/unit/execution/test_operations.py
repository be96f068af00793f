"""Tests for per-operation handler functions."""

from __future__ import annotations

from typing import Any

import pytest

from omop2sdtm.execution.operations import OPERATION_HANDLERS, read_source
from omop2sdtm.models.diagnostics import DiagnosticKind
from omop2sdtm.models.mapping import FieldMappingRule, MappingOperation
from omop2sdtm.models.schema import FieldDefinition, FieldDomain, ValueType


def _src(name: str, value_type: ValueType = ValueType.STRING, table: str = "measurement") -> FieldDefinition:
    return FieldDefinition(name=name, table=table, domain=FieldDomain.SOURCE, value_type=value_type)


def _tgt(name: str, value_type: ValueType = ValueType.STRING) -> FieldDefinition:
    return FieldDefinition(name=name, table="LB", domain=FieldDomain.TARGET, value_type=value_type)


def _run(
    operation: MappingOperation,
    target: FieldDefinition,
    sources: tuple[FieldDefinition, ...],
    record: dict[str, Any],
    *,
    lookups: dict[str, dict[str, str]] | None = None,
    **parameters: Any,
) -> tuple[Any, list[Any]]:
    """Build a rule and run its handler on one record."""
    rule = FieldMappingRule(
        target_field=target, source_fields=sources, operation=operation, parameters=parameters
    )
    handler = OPERATION_HANDLERS[operation]
    return handler(record, rule, domain="LB", index=3, lookups=lookups or {})


class TestDispatch:
    def test_every_operation_has_a_handler(self) -> None:
        assert set(OPERATION_HANDLERS) == set(MappingOperation)


class TestReadSource:
    def test_bare_name(self) -> None:
        assert read_source({"value_as_number": 5}, _src("value_as_number")) == 5

    def test_qualified_name_fallback(self) -> None:
        record = {"measurement.value_as_number": 5}
        assert read_source(record, _src("value_as_number")) == 5


class TestRename:
    def test_same_type_verbatim(self) -> None:
        value, diags = _run(
            MappingOperation.RENAME, _tgt("LBORRES"), (_src("value_source_value"),),
            {"value_source_value": "12.5 mg"},
        )
        assert value == "12.5 mg"
        assert diags == []

    def test_float_to_string(self) -> None:
        value, _ = _run(
            MappingOperation.RENAME, _tgt("LBORRES"), (_src("value_as_number", ValueType.FLOAT),),
            {"value_as_number": 140.0},
        )
        assert value == "140"

    def test_string_target_stringifies_non_text(self) -> None:
        value, diags = _run(
            MappingOperation.RENAME, _tgt("LBORRES"), (_src("value_source_value"),),
            {"value_source_value": 6.2},
        )
        assert value == "6.2"
        assert diags == []

    def test_same_type_number_parsed_from_text(self) -> None:
        value, _ = _run(
            MappingOperation.RENAME,
            _tgt("LBSTRESN", ValueType.FLOAT),
            (_src("value_as_number", ValueType.FLOAT),),
            {"value_as_number": "140.5"},
        )
        assert value == 140.5

    def test_no_unambiguous_conversion(self) -> None:
        value, diags = _run(
            MappingOperation.RENAME,
            _tgt("LBSTRESN", ValueType.FLOAT),
            (_src("value_source_value"),),
            {"value_source_value": "12.5"},
        )
        assert value is None
        assert diags[0].kind == DiagnosticKind.TYPE_MISMATCH
        assert "no unambiguous conversion from string to float" in diags[0].message
        assert diags[0].record_index == 3

    def test_missing_source(self) -> None:
        value, diags = _run(
            MappingOperation.RENAME, _tgt("LBORRES"), (_src("value_source_value"),), {}
        )
        assert value is None
        assert diags[0].kind == DiagnosticKind.MISSING_FIELD
        assert diags[0].source_field == "measurement.value_source_value"


class TestConstant:
    def test_ignores_record(self) -> None:
        value, diags = _run(MappingOperation.CONSTANT, _tgt("DOMAIN"), (), {}, value="LB")
        assert value == "LB"
        assert diags == []


class TestConcat:
    def test_prefix_and_separator(self) -> None:
        value, _ = _run(
            MappingOperation.CONCAT,
            _tgt("USUBJID"),
            (_src("care_site_id", ValueType.INTEGER), _src("person_id", ValueType.INTEGER)),
            {"care_site_id": 7, "person_id": 101.0},
            separator="-",
            prefix="STUDY01",
        )
        assert value == "STUDY01-7-101"

    def test_null_segment_is_empty(self) -> None:
        value, diags = _run(
            MappingOperation.CONCAT,
            _tgt("USUBJID"),
            (_src("a"), _src("b"), _src("c")),
            {"a": "x", "b": None, "c": "z"},
            separator="/",
        )
        assert value == "x//z"
        assert diags == []

    def test_all_null_sources_give_empty_string(self) -> None:
        value, diags = _run(
            MappingOperation.CONCAT,
            _tgt("USUBJID"),
            (_src("a"), _src("b")),
            {"a": None, "b": float("nan")},
            separator="-",
            prefix="STUDY01",
        )
        assert value == ""
        assert diags == []

    def test_each_missing_field_reported(self) -> None:
        value, diags = _run(
            MappingOperation.CONCAT,
            _tgt("USUBJID"),
            (_src("a"), _src("b"), _src("c")),
            {"b": "y"},
            separator="-",
        )
        assert value is None
        assert [d.source_field for d in diags] == ["measurement.a", "measurement.c"]


class TestCoerce:
    def test_string_to_float(self) -> None:
        value, diags = _run(
            MappingOperation.COERCE,
            _tgt("LBSTRESN", ValueType.FLOAT),
            (_src("value_source_value"),),
            {"value_source_value": " 6.2 "},
        )
        assert value == pytest.approx(6.2)
        assert diags == []

    def test_unparseable_is_type_mismatch(self) -> None:
        value, diags = _run(
            MappingOperation.COERCE,
            _tgt("LBSTRESN", ValueType.FLOAT),
            (_src("value_source_value"),),
            {"value_source_value": "positive"},
        )
        assert value is None
        assert diags[0].kind == DiagnosticKind.TYPE_MISMATCH
        assert diags[0].value == "positive"

    def test_inline_values(self) -> None:
        value, _ = _run(
            MappingOperation.COERCE,
            _tgt("LBTESTCD", ValueType.CATEGORICAL_CODE),
            (_src("measurement_source_value"),),
            {"measurement_source_value": "glucose"},
            values={"GLUCOSE": "GLUC"},
        )
        assert value == "GLUC"

    def test_inline_values_unmapped(self) -> None:
        value, diags = _run(
            MappingOperation.COERCE,
            _tgt("LBTESTCD", ValueType.CATEGORICAL_CODE),
            (_src("measurement_source_value"),),
            {"measurement_source_value": "ALT"},
            values={"GLUCOSE": "GLUC"},
        )
        assert value is None
        assert diags[0].kind == DiagnosticKind.UNMAPPED_CODE
        assert "inline code table for LBTESTCD" in diags[0].message


class TestLookup:
    def test_recodes_through_codelist(self) -> None:
        value, _ = _run(
            MappingOperation.LOOKUP,
            _tgt("LBORRESU", ValueType.CATEGORICAL_CODE),
            (_src("unit_concept_id", ValueType.CATEGORICAL_CODE),),
            {"unit_concept_id": 8840.0},
            lookups={"omop_unit": {"8840": "mg/dL"}},
            codelist="omop_unit",
        )
        assert value == "mg/dL"

    def test_unmapped_code(self) -> None:
        value, diags = _run(
            MappingOperation.LOOKUP,
            _tgt("LBORRESU", ValueType.CATEGORICAL_CODE),
            (_src("unit_concept_id", ValueType.CATEGORICAL_CODE),),
            {"unit_concept_id": 1},
            lookups={"omop_unit": {"8840": "mg/dL"}},
            codelist="omop_unit",
        )
        assert value is None
        assert diags[0].kind == DiagnosticKind.UNMAPPED_CODE
        assert "codelist omop_unit" in diags[0].message
