"""Deterministic value transforms used by the mapping operations."""

from omop2sdtm.transforms.coercion import (
    CoercionError,
    convert,
    is_null,
    is_unambiguous,
    to_iso8601,
    to_text,
)
from omop2sdtm.transforms.recoding import normalize_code, recode

__all__ = [
    "CoercionError",
    "convert",
    "is_null",
    "is_unambiguous",
    "normalize_code",
    "recode",
    "to_iso8601",
    "to_text",
]
