"""Mapping specification building, loading and export."""

from omop2sdtm.mapping.builder import SpecificationBuilder, build_specification
from omop2sdtm.mapping.exporters import export_spec_to_excel, export_spec_to_json
from omop2sdtm.mapping.loader import (
    load_mapping_document,
    load_mapping_documents,
    load_specification,
    load_specifications,
)

__all__ = [
    "SpecificationBuilder",
    "build_specification",
    "export_spec_to_excel",
    "export_spec_to_json",
    "load_mapping_document",
    "load_mapping_documents",
    "load_specification",
    "load_specifications",
]
