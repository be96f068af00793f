"""Value-type conversion between OMOP and SDTM field types.

Two levels of conversion are offered:

- Unambiguous conversions (is_unambiguous) never lose information and are
  applied implicitly by rename rules, e.g. integer -> string.
- Explicit conversions (convert) may fail for a given value, e.g.
  string -> float, and are only applied by coerce rules.

Dates are rendered as ISO 8601 strings, the SDTM --DTC representation.
All functions are pure -- no side effects.
"""

from __future__ import annotations

import numbers
import re
from datetime import date, datetime, time

import pandas as pd

from omop2sdtm.models.schema import ValueType
from omop2sdtm.transforms.recoding import normalize_code


class CoercionError(ValueError):
    """Raised when a value cannot be converted to the requested type."""


_UNAMBIGUOUS: frozenset[tuple[ValueType, ValueType]] = frozenset(
    {
        (ValueType.INTEGER, ValueType.STRING),
        (ValueType.INTEGER, ValueType.FLOAT),
        (ValueType.INTEGER, ValueType.CATEGORICAL_CODE),
        (ValueType.FLOAT, ValueType.STRING),
        (ValueType.DATE, ValueType.STRING),
        (ValueType.CATEGORICAL_CODE, ValueType.STRING),
        (ValueType.STRING, ValueType.CATEGORICAL_CODE),
    }
)

_PATTERN_COMPACT_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_PATTERN_ISO_DATE = re.compile(r"^(\d{4})(?:-(\d{2})(?:-(\d{2}))?)?$")
_PATTERN_ISO_DATETIME = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[ T](\d{2}):(\d{2})(?::(\d{2}))?(?:\.\d+)?$"
)


def is_null(value: object) -> bool:
    """True for None, NaN, NaT and pandas NA."""
    if value is None:
        return True
    if isinstance(value, str):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def is_unambiguous(source: ValueType, target: ValueType) -> bool:
    """Return True if every ``source`` value has exactly one ``target`` form."""
    return source == target or (source, target) in _UNAMBIGUOUS


def to_text(value: object) -> str:
    """Stringify a scalar the way SDTM character variables expect.

    Integral floats lose their trailing ``.0`` and dates become ISO 8601.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime, date)):
        return to_iso8601(value)
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Real):
        as_float = float(value)
        return str(int(as_float)) if as_float.is_integer() else str(as_float)
    return str(value)


def to_iso8601(value: object) -> str:
    """Render a date, datetime or date string as ISO 8601.

    Accepts ``date``/``datetime`` objects (including pandas Timestamps) and
    strings in ``YYYY``, ``YYYY-MM``, ``YYYY-MM-DD``, ``YYYYMMDD`` or
    ``YYYY-MM-DD HH:MM[:SS]`` form. Datetimes at midnight are rendered as
    dates, matching OMOP ``*_date`` columns read back from a database.

    Raises:
        CoercionError: If the value is not a recognizable date.
    """
    if isinstance(value, datetime):
        if value.time() == time(0, 0) and value.tzinfo is None:
            return value.date().isoformat()
        return value.replace(microsecond=0).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        msg = f"cannot interpret {value!r} as a date"
        raise CoercionError(msg)

    text = value.strip()
    m = _PATTERN_COMPACT_DATE.match(text)
    if m:
        text = f"{m.group(1)}-{m.group(2)}-{m.group(3)}"

    m = _PATTERN_ISO_DATE.match(text)
    if m:
        year, month, day = m.groups()
        _check_calendar(text, int(year), month, day)
        return text

    m = _PATTERN_ISO_DATETIME.match(text)
    if m:
        year, month, day, hour, minute, second = m.groups()
        _check_calendar(text, int(year), month, day)
        if int(hour) > 23 or int(minute) > 59 or (second is not None and int(second) > 59):
            msg = f"invalid time in {value!r}"
            raise CoercionError(msg)
        suffix = f":{second}" if second is not None else ""
        return f"{year}-{month}-{day}T{hour}:{minute}{suffix}"

    msg = f"cannot interpret {value!r} as a date"
    raise CoercionError(msg)


def _check_calendar(text: str, year: int, month: str | None, day: str | None) -> None:
    try:
        date(year, int(month or 1), int(day or 1))
    except ValueError as exc:
        msg = f"invalid calendar date {text!r}"
        raise CoercionError(msg) from exc


def to_integer(value: object) -> int:
    """Convert to int, refusing values with a fractional part."""
    if isinstance(value, bool):
        msg = f"refusing to convert boolean {value!r} to integer"
        raise CoercionError(msg)
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        as_float = float(value)
        if as_float.is_integer():
            return int(as_float)
        msg = f"{value!r} has a fractional part"
        raise CoercionError(msg)
    if isinstance(value, str):
        try:
            return to_integer(float(value.strip()))
        except ValueError as exc:
            msg = f"cannot interpret {value!r} as an integer"
            raise CoercionError(msg) from exc
    msg = f"cannot interpret {value!r} as an integer"
    raise CoercionError(msg)


def to_float(value: object) -> float:
    """Convert to float."""
    if isinstance(value, bool):
        msg = f"refusing to convert boolean {value!r} to float"
        raise CoercionError(msg)
    if isinstance(value, numbers.Real):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as exc:
            msg = f"cannot interpret {value!r} as a number"
            raise CoercionError(msg) from exc
    msg = f"cannot interpret {value!r} as a number"
    raise CoercionError(msg)


def convert(value: object, target: ValueType) -> object:
    """Convert a non-null value to ``target``.

    Args:
        value: Source value. Must not be null.
        target: Requested value type.

    Returns:
        The converted value: str for STRING, DATE and CATEGORICAL_CODE,
        int for INTEGER, float for FLOAT.

    Raises:
        CoercionError: If the value cannot be represented as ``target``.
    """
    if target == ValueType.STRING:
        return to_text(value)
    if target == ValueType.INTEGER:
        return to_integer(value)
    if target == ValueType.FLOAT:
        return to_float(value)
    if target == ValueType.DATE:
        return to_iso8601(value)
    if target == ValueType.CATEGORICAL_CODE:
        if isinstance(value, (datetime, date)):
            msg = f"cannot use date {value!r} as a code"
            raise CoercionError(msg)
        return normalize_code(value)
    msg = f"unsupported target type {target!r}"
    raise CoercionError(msg)
