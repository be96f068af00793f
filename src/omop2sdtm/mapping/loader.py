"""Load mapping specification documents from JSON.

A document holds ``{"target_domain": ..., "source_table": ..., "rules": [...]}``.
Loading validates the document shape with pydantic; building validates the
rules against a schema registry.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from omop2sdtm.mapping.builder import SpecificationBuilder
from omop2sdtm.models.mapping import MappingDocument, MappingSpecification
from omop2sdtm.reference.registry import SchemaRegistry


def load_mapping_document(path: str | Path) -> MappingDocument:
    """Read one specification document.

    Raises:
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If the JSON does not match MappingDocument.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Mapping specification not found: {path}"
        raise FileNotFoundError(msg)

    document = MappingDocument.model_validate_json(path.read_text())
    if document.name is None:
        document = document.model_copy(update={"name": path.stem})
    logger.debug("Loaded mapping document {} ({} rules)", path.name, len(document.rules))
    return document


def load_mapping_documents(path: str | Path) -> list[MappingDocument]:
    """Read a single document, or every ``*.json`` document in a directory.

    Directory contents are read in sorted filename order.
    """
    path = Path(path)
    if path.is_dir():
        files = sorted(path.glob("*.json"))
        if not files:
            msg = f"No mapping specifications (*.json) found in {path}"
            raise FileNotFoundError(msg)
        return [load_mapping_document(f) for f in files]
    return [load_mapping_document(path)]


def load_specification(path: str | Path, registry: SchemaRegistry) -> MappingSpecification:
    """Read and build one specification document."""
    return SpecificationBuilder(registry).build_document(load_mapping_document(path))


def load_specifications(
    path: str | Path, registry: SchemaRegistry
) -> list[MappingSpecification]:
    """Read and build every specification at ``path`` (file or directory).

    The first malformed specification raises; use the CLI ``validate``
    command to report problems across all documents.
    """
    builder = SpecificationBuilder(registry)
    return [builder.build_document(doc) for doc in load_mapping_documents(path)]
