"""Tests for value-type conversion."""

from __future__ import annotations

import math
from datetime import date, datetime

import pandas as pd
import pytest

from omop2sdtm.models.schema import ValueType
from omop2sdtm.transforms.coercion import (
    CoercionError,
    convert,
    is_null,
    is_unambiguous,
    to_float,
    to_integer,
    to_iso8601,
    to_text,
)


class TestIsNull:
    @pytest.mark.parametrize("value", [None, float("nan"), pd.NaT, pd.NA])
    def test_null_values(self, value: object) -> None:
        assert is_null(value) is True

    @pytest.mark.parametrize("value", ["", "NaN", 0, 0.0, False])
    def test_non_null_values(self, value: object) -> None:
        assert is_null(value) is False


class TestIsUnambiguous:
    def test_same_type(self) -> None:
        assert is_unambiguous(ValueType.DATE, ValueType.DATE)

    def test_integer_to_string(self) -> None:
        assert is_unambiguous(ValueType.INTEGER, ValueType.STRING)

    def test_string_to_integer_is_not(self) -> None:
        assert not is_unambiguous(ValueType.STRING, ValueType.INTEGER)

    def test_float_to_integer_is_not(self) -> None:
        assert not is_unambiguous(ValueType.FLOAT, ValueType.INTEGER)

    def test_string_to_date_is_not(self) -> None:
        assert not is_unambiguous(ValueType.STRING, ValueType.DATE)


class TestToText:
    def test_integral_float_drops_suffix(self) -> None:
        assert to_text(101.0) == "101"

    def test_fractional_float(self) -> None:
        assert to_text(98.6) == "98.6"

    def test_date(self) -> None:
        assert to_text(date(2020, 1, 5)) == "2020-01-05"

    def test_string_unchanged(self) -> None:
        assert to_text("P001") == "P001"


class TestToIso8601:
    def test_date_object(self) -> None:
        assert to_iso8601(date(2021, 3, 4)) == "2021-03-04"

    def test_midnight_datetime_is_date(self) -> None:
        assert to_iso8601(datetime(2021, 3, 4)) == "2021-03-04"

    def test_datetime_with_time(self) -> None:
        assert to_iso8601(datetime(2021, 3, 4, 9, 30, 15)) == "2021-03-04T09:30:15"

    def test_pandas_timestamp(self) -> None:
        assert to_iso8601(pd.Timestamp("2021-03-04 14:05")) == "2021-03-04T14:05:00"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("2021", "2021"),
            ("2021-03", "2021-03"),
            ("2021-03-04", "2021-03-04"),
            ("20210304", "2021-03-04"),
            ("2021-03-04 14:05", "2021-03-04T14:05"),
            ("2021-03-04 14:05:09", "2021-03-04T14:05:09"),
            (" 2021-03-04T14:05:09.123 ", "2021-03-04T14:05:09"),
        ],
    )
    def test_strings(self, raw: str, expected: str) -> None:
        assert to_iso8601(raw) == expected

    @pytest.mark.parametrize("raw", ["2021-02-30", "2021-13", "04/03/2021", "soon", "2021-03-04 25:00"])
    def test_invalid_strings(self, raw: str) -> None:
        with pytest.raises(CoercionError):
            to_iso8601(raw)

    def test_number_rejected(self) -> None:
        with pytest.raises(CoercionError):
            to_iso8601(20210304)


class TestNumeric:
    def test_to_integer_from_integral_float(self) -> None:
        assert to_integer(42.0) == 42

    def test_to_integer_from_string(self) -> None:
        assert to_integer(" 42 ") == 42

    def test_to_integer_rejects_fraction(self) -> None:
        with pytest.raises(CoercionError, match="fractional"):
            to_integer(4.5)

    def test_to_integer_rejects_bool(self) -> None:
        with pytest.raises(CoercionError):
            to_integer(True)

    def test_to_float_from_string(self) -> None:
        assert math.isclose(to_float("120.5"), 120.5)

    def test_to_float_rejects_text(self) -> None:
        with pytest.raises(CoercionError, match="as a number"):
            to_float("positive")


class TestConvert:
    def test_to_string(self) -> None:
        assert convert(7, ValueType.STRING) == "7"

    def test_to_float(self) -> None:
        assert convert("3.25", ValueType.FLOAT) == 3.25

    def test_to_date(self) -> None:
        assert convert("20200101", ValueType.DATE) == "2020-01-01"

    def test_to_code_normalizes(self) -> None:
        assert convert(8507.0, ValueType.CATEGORICAL_CODE) == "8507"

    def test_date_is_not_a_code(self) -> None:
        with pytest.raises(CoercionError):
            convert(date(2020, 1, 1), ValueType.CATEGORICAL_CODE)
