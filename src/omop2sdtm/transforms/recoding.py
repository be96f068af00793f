"""Recoding of coded values through lookup tables.

OMOP concept ids arrive as ints, as floats (pandas widens integer columns
that contain nulls) or as strings, depending on the extract. Codes are
normalized to a canonical string before lookup so all three forms hit the
same table entry.
"""

from __future__ import annotations

import numbers
import re
from collections.abc import Mapping

_INTEGRAL_STRING = re.compile(r"^\s*(-?\d+)\.0*\s*$")


def normalize_code(value: object) -> str:
    """Return the canonical string form of a code.

    Examples:
        >>> normalize_code(8507)
        '8507'
        >>> normalize_code(8507.0)
        '8507'
        >>> normalize_code(" 8507.0 ")
        '8507'
        >>> normalize_code("M")
        'M'
    """
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Real):
        as_float = float(value)
        if as_float.is_integer():
            return str(int(as_float))
        return str(as_float)

    text = str(value).strip()
    m = _INTEGRAL_STRING.match(text)
    if m:
        return m.group(1)
    return text


def recode(value: object, table: Mapping[str, str]) -> str | None:
    """Recode ``value`` through ``table``.

    Matching is exact on the normalized code first, then case-insensitive.

    Args:
        value: Raw code from source data. Must not be null.
        table: Normalized code -> target value.

    Returns:
        The target value, or None if the code is not in the table.
    """
    key = normalize_code(value)
    if key in table:
        return table[key]

    folded = key.casefold()
    for code, label in table.items():
        if code.casefold() == folded:
            return label
    return None
