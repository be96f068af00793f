"""Per-operation handler functions for the transform engine.

Each handler computes one target value for one rule on one source record
and returns it together with any diagnostics. Handlers are registered in
the OPERATION_HANDLERS dispatch dictionary, keyed by MappingOperation.

All handlers share the signature:
    (record, rule, *, domain, index, lookups) -> (value, diagnostics)

A handler never raises for bad data: failures leave the target null and
are described by a Diagnostic instead.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from omop2sdtm.models.diagnostics import Diagnostic, DiagnosticKind
from omop2sdtm.models.mapping import FieldMappingRule, MappingOperation
from omop2sdtm.models.schema import FieldDefinition
from omop2sdtm.transforms.coercion import (
    CoercionError,
    convert,
    is_null,
    is_unambiguous,
    to_text,
)
from omop2sdtm.transforms.recoding import recode

Record = Mapping[str, Any]
HandlerResult = tuple[Any, list[Diagnostic]]
Handler = Callable[..., HandlerResult]

_MISSING = object()


def read_source(record: Record, field: FieldDefinition) -> Any:
    """Return the record's value for ``field``, or a sentinel if absent.

    Extracts are usually keyed by bare column name; joined extracts may use
    the qualified ``table.column`` form instead, which is tried second.
    """
    if field.name in record:
        return record[field.name]
    return record.get(field.qualified_name, _MISSING)


def _diagnostic(
    kind: DiagnosticKind,
    rule: FieldMappingRule,
    *,
    domain: str,
    index: int,
    message: str,
    source: FieldDefinition | None = None,
    value: Any = None,
) -> Diagnostic:
    return Diagnostic(
        kind=kind,
        domain=domain,
        record_index=index,
        target_field=rule.target_field.name,
        source_field=source.qualified_name if source is not None else None,
        value=None if value is None or is_null(value) else to_text(value),
        message=message,
    )


def _missing(rule: FieldMappingRule, source: FieldDefinition, domain: str, index: int) -> Diagnostic:
    return _diagnostic(
        DiagnosticKind.MISSING_FIELD,
        rule,
        domain=domain,
        index=index,
        source=source,
        message=f"source field {source.qualified_name} is absent from the record",
    )


def _handle_rename(
    record: Record,
    rule: FieldMappingRule,
    *,
    domain: str,
    index: int,
    **_: Any,
) -> HandlerResult:
    """Copy the source value, converting only when the conversion is safe.

    Same-type values also go through convert(), so dates come out as
    ISO 8601 and numbers read as text from an extract are parsed. Text
    into a string target is kept exactly as read.
    """
    source = rule.source
    target = rule.target_field
    value = read_source(record, source)
    if value is _MISSING:
        return None, [_missing(rule, source, domain, index)]
    if is_null(value):
        return None, []
    if not is_unambiguous(source.value_type, target.value_type):
        message = (
            f"no unambiguous conversion from {source.value_type.value} "
            f"to {target.value_type.value}"
        )
        return None, [
            _diagnostic(
                DiagnosticKind.TYPE_MISMATCH,
                rule,
                domain=domain,
                index=index,
                source=source,
                value=value,
                message=message,
            )
        ]

    try:
        return convert(value, target.value_type), []
    except CoercionError as exc:
        return None, [
            _diagnostic(
                DiagnosticKind.TYPE_MISMATCH,
                rule,
                domain=domain,
                index=index,
                source=source,
                value=value,
                message=str(exc),
            )
        ]


def _handle_constant(record: Record, rule: FieldMappingRule, **_: Any) -> HandlerResult:
    """Assign the literal value; the record is not read."""
    return rule.parameters.get("value"), []


def _handle_concat(
    record: Record,
    rule: FieldMappingRule,
    *,
    domain: str,
    index: int,
    **_: Any,
) -> HandlerResult:
    """Join stringified source values; null values contribute empty segments.

    When every source is null the target is the empty string, without
    separators or prefix.
    """
    segments: list[str] = []
    diagnostics: list[Diagnostic] = []
    all_null = True
    for source in rule.source_fields:
        value = read_source(record, source)
        if value is _MISSING:
            diagnostics.append(_missing(rule, source, domain, index))
            continue
        if is_null(value):
            segments.append("")
            continue
        all_null = False
        segments.append(to_text(value))

    if diagnostics:
        return None, diagnostics
    if all_null:
        return "", []

    prefix = rule.parameters.get("prefix")
    if prefix is not None:
        segments.insert(0, prefix)
    return str(rule.parameters.get("separator", "")).join(segments), []


def _recode_or_flag(
    value: Any,
    table: Mapping[str, str],
    rule: FieldMappingRule,
    *,
    table_name: str,
    domain: str,
    index: int,
) -> HandlerResult:
    mapped = recode(value, table)
    if mapped is None:
        return None, [
            _diagnostic(
                DiagnosticKind.UNMAPPED_CODE,
                rule,
                domain=domain,
                index=index,
                source=rule.source,
                value=value,
                message=f"code {to_text(value)!r} not found in {table_name}",
            )
        ]
    return mapped, []


def _handle_coerce(
    record: Record,
    rule: FieldMappingRule,
    *,
    domain: str,
    index: int,
    **_: Any,
) -> HandlerResult:
    """Explicit conversion: through the inline code table, else to the target type."""
    source = rule.source
    value = read_source(record, source)
    if value is _MISSING:
        return None, [_missing(rule, source, domain, index)]
    if is_null(value):
        return None, []

    values = rule.parameters.get("values")
    if values is not None:
        return _recode_or_flag(
            value,
            values,
            rule,
            table_name=f"the inline code table for {rule.target_field.name}",
            domain=domain,
            index=index,
        )

    try:
        return convert(value, rule.target_field.value_type), []
    except CoercionError as exc:
        return None, [
            _diagnostic(
                DiagnosticKind.TYPE_MISMATCH,
                rule,
                domain=domain,
                index=index,
                source=source,
                value=value,
                message=str(exc),
            )
        ]


def _handle_lookup(
    record: Record,
    rule: FieldMappingRule,
    *,
    domain: str,
    index: int,
    lookups: Mapping[str, Mapping[str, str]],
    **_: Any,
) -> HandlerResult:
    """Recode through an external codelist supplied to the engine."""
    source = rule.source
    value = read_source(record, source)
    if value is _MISSING:
        return None, [_missing(rule, source, domain, index)]
    if is_null(value):
        return None, []

    codelist = str(rule.parameters["codelist"])
    return _recode_or_flag(
        value,
        lookups[codelist],
        rule,
        table_name=f"codelist {codelist}",
        domain=domain,
        index=index,
    )


OPERATION_HANDLERS: dict[MappingOperation, Handler] = {
    MappingOperation.RENAME: _handle_rename,
    MappingOperation.CONSTANT: _handle_constant,
    MappingOperation.CONCAT: _handle_concat,
    MappingOperation.COERCE: _handle_coerce,
    MappingOperation.LOOKUP: _handle_lookup,
}
