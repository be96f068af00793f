"""Loaders for bundled reference data.

All data is read from JSON files shipped under ``omop2sdtm/data`` -- no
network calls:

- ``omop/tables.json``: OMOP CDM source tables and their fields
- ``sdtm/domains.json``: SDTM target domains and their variables
- ``lookups/*.json``: OMOP concept id -> SDTM controlled terminology tables
- ``specs/*.json``: default mapping specification per domain

Usage:
    from omop2sdtm.reference import load_default_registry, load_lookup_tables

    registry = load_default_registry()
    lookups = load_lookup_tables()
"""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger

from omop2sdtm.models.schema import FieldDomain, TableSchema
from omop2sdtm.reference.registry import SchemaRegistry

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def default_specs_dir() -> Path:
    """Directory holding the bundled per-domain mapping specifications."""
    return _DATA_DIR / "specs"


def default_lookups_dir() -> Path:
    """Directory holding the bundled codelist lookup tables."""
    return _DATA_DIR / "lookups"


def load_tables(path: str | Path) -> list[TableSchema]:
    """Read a reference file of ``{"tables": [...]}`` into TableSchema models."""
    path = Path(path)
    if not path.exists():
        msg = f"Reference table file not found at {path}"
        raise FileNotFoundError(msg)

    with open(path) as f:
        raw = json.load(f)

    return [TableSchema(**t) for t in raw["tables"]]


def load_default_registry(
    omop_path: str | Path | None = None,
    sdtm_path: str | Path | None = None,
) -> SchemaRegistry:
    """Build a SchemaRegistry from the bundled OMOP and SDTM reference data.

    Args:
        omop_path: Override for the OMOP tables file.
        sdtm_path: Override for the SDTM domains file.

    Returns:
        Registry holding every source and target field.
    """
    registry = SchemaRegistry()
    for table in load_tables(omop_path or _DATA_DIR / "omop" / "tables.json"):
        registry.register_table(table, FieldDomain.SOURCE)
    for table in load_tables(sdtm_path or _DATA_DIR / "sdtm" / "domains.json"):
        registry.register_table(table, FieldDomain.TARGET)

    logger.info(
        "Loaded schema registry: {} source tables, {} target domains, {} fields",
        len(registry.tables(FieldDomain.SOURCE)),
        len(registry.tables(FieldDomain.TARGET)),
        len(registry),
    )
    return registry


def load_lookup_table(path: str | Path) -> tuple[str, dict[str, str]]:
    """Read one codelist lookup file.

    The file holds ``{"name": ..., "description": ..., "values": {code: label}}``.
    Codes are kept as strings; see transforms.recoding.normalize_code.

    Returns:
        Tuple of (codelist name, code -> label mapping).
    """
    path = Path(path)
    if not path.exists():
        msg = f"Lookup table not found at {path}"
        raise FileNotFoundError(msg)

    with open(path) as f:
        raw = json.load(f)

    name = raw.get("name") or path.stem
    values = {str(code): str(label) for code, label in raw["values"].items()}
    return name, values


def load_lookup_tables(lookups_dir: str | Path | None = None) -> dict[str, dict[str, str]]:
    """Load every ``*.json`` lookup table in a directory, keyed by codelist name."""
    lookups_dir = Path(lookups_dir) if lookups_dir else default_lookups_dir()
    if not lookups_dir.is_dir():
        msg = f"Lookup directory not found: {lookups_dir}"
        raise FileNotFoundError(msg)

    tables: dict[str, dict[str, str]] = {}
    for path in sorted(lookups_dir.glob("*.json")):
        name, values = load_lookup_table(path)
        tables[name] = values

    logger.info("Loaded {} lookup tables from {}", len(tables), lookups_dir)
    return tables
