"""Schema registry for source (OMOP) and target (SDTM) field definitions.

The registry is consulted when a mapping specification is built and never
while records are transformed. Once populated it is only read, so it can be
shared between worker threads without locking.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from loguru import logger

from omop2sdtm.errors import DuplicateFieldError, UnknownFieldError
from omop2sdtm.models.schema import FieldDefinition, FieldDomain, TableSchema


class SchemaRegistry:
    """Registered field definitions keyed by (domain, qualified name).

    Qualified names are ``<table>.<field>``: ``person.person_id`` on the
    source side, ``DM.SUBJID`` on the target side.
    """

    def __init__(self, fields: Iterable[FieldDefinition] = ()) -> None:
        self._fields: dict[tuple[FieldDomain, str], FieldDefinition] = {}
        for field in fields:
            self.register(field)

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[FieldDefinition]:
        return iter(self._fields.values())

    def register(self, field: FieldDefinition) -> FieldDefinition:
        """Register a field definition.

        Raises:
            DuplicateFieldError: If the same qualified name is already
                registered for the field's domain.
        """
        key = (field.domain, field.qualified_name)
        if key in self._fields:
            msg = f"{field.domain.value} field {field.qualified_name} is already registered"
            raise DuplicateFieldError(msg, target_field=field.qualified_name)
        self._fields[key] = field
        return field

    def register_table(self, table: TableSchema, domain: FieldDomain) -> int:
        """Register every field of a reference table. Returns the field count."""
        definitions = table.to_definitions(domain)
        for field in definitions:
            self.register(field)
        logger.debug(
            "Registered {} {} fields for {}", len(definitions), domain.value, table.name
        )
        return len(definitions)

    def lookup(self, domain: FieldDomain | str, name: str) -> FieldDefinition:
        """Return the field registered under ``name`` for ``domain``.

        Raises:
            UnknownFieldError: If no such field is registered.
        """
        domain = FieldDomain(domain)
        field = self._fields.get((domain, name))
        if field is None:
            msg = f"Unknown {domain.value} field: {name}"
            raise UnknownFieldError(msg, target_field=name)
        return field

    def contains(self, domain: FieldDomain | str, name: str) -> bool:
        """Return True if ``name`` is registered for ``domain``."""
        return (FieldDomain(domain), name) in self._fields

    def fields(self, domain: FieldDomain | str, table: str | None = None) -> list[FieldDefinition]:
        """Return registered fields for a domain, optionally for one table.

        Fields come back in registration order.
        """
        domain = FieldDomain(domain)
        return [
            f
            for (d, _), f in self._fields.items()
            if d == domain and (table is None or f.table == table)
        ]

    def tables(self, domain: FieldDomain | str) -> list[str]:
        """Return table names (or domain codes) registered for a domain, sorted."""
        return sorted({f.table for f in self.fields(domain)})
