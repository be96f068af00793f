"""Schema registry and bundled reference data.

Re-exports for convenient imports:
    from omop2sdtm.reference import SchemaRegistry, load_default_registry
"""

from omop2sdtm.reference.loader import (
    default_lookups_dir,
    default_specs_dir,
    load_default_registry,
    load_lookup_table,
    load_lookup_tables,
    load_tables,
)
from omop2sdtm.reference.registry import SchemaRegistry

__all__ = [
    "SchemaRegistry",
    "default_lookups_dir",
    "default_specs_dir",
    "load_default_registry",
    "load_lookup_table",
    "load_lookup_tables",
    "load_tables",
]
