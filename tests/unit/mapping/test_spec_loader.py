"""Tests for loading mapping specification documents from JSON."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from omop2sdtm.errors import SchemaViolationError
from omop2sdtm.mapping.loader import (
    load_mapping_document,
    load_mapping_documents,
    load_specification,
    load_specifications,
)
from omop2sdtm.reference import SchemaRegistry, load_default_registry


@pytest.fixture(scope="module")
def registry() -> SchemaRegistry:
    return load_default_registry()


def _write(path: Path, document: dict[str, Any]) -> Path:
    path.write_text(json.dumps(document))
    return path


def _dm_document(**overrides: Any) -> dict[str, Any]:
    document: dict[str, Any] = {
        "target_domain": "DM",
        "source_table": "person",
        "rules": [
            {"target": "STUDYID", "operation": "constant", "parameters": {"value": "S1"}},
            {"target": "SUBJID", "operation": "rename", "sources": ["person.person_id"]},
        ],
    }
    document.update(overrides)
    return document


class TestLoadDocument:
    def test_name_defaults_to_file_stem(self, tmp_path: Path) -> None:
        doc = load_mapping_document(_write(tmp_path / "dm_spec.json", _dm_document()))
        assert doc.name == "dm_spec"
        assert len(doc.rules) == 2

    def test_explicit_name_kept(self, tmp_path: Path) -> None:
        doc = load_mapping_document(_write(tmp_path / "x.json", _dm_document(name="demo")))
        assert doc.name == "demo"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_mapping_document(tmp_path / "absent.json")

    def test_malformed_document(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "bad.json", {"rules": [{"target": "X", "operation": "explode"}]})
        with pytest.raises(ValidationError):
            load_mapping_document(path)


class TestLoadDirectory:
    def test_sorted_by_filename(self, tmp_path: Path) -> None:
        _write(tmp_path / "b.json", _dm_document())
        _write(tmp_path / "a.json", _dm_document())
        (tmp_path / "notes.txt").write_text("ignored")
        assert [d.name for d in load_mapping_documents(tmp_path)] == ["a", "b"]

    def test_empty_directory(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="No mapping specifications"):
            load_mapping_documents(tmp_path)


class TestLoadSpecification:
    def test_builds_against_registry(self, tmp_path: Path, registry: SchemaRegistry) -> None:
        spec = load_specification(_write(tmp_path / "dm.json", _dm_document()), registry)
        assert spec.target_fields() == ["STUDYID", "SUBJID"]
        assert spec.source_table == "person"

    def test_invalid_rule_raises(self, tmp_path: Path, registry: SchemaRegistry) -> None:
        document = _dm_document(
            rules=[{"target": "SUBJID", "operation": "rename", "sources": ["person.nope"]}]
        )
        with pytest.raises(SchemaViolationError):
            load_specification(_write(tmp_path / "dm.json", document), registry)

    def test_load_specifications_from_directory(
        self, tmp_path: Path, registry: SchemaRegistry
    ) -> None:
        _write(tmp_path / "dm.json", _dm_document())
        _write(
            tmp_path / "ae.json",
            {
                "target_domain": "AE",
                "source_table": "condition_occurrence",
                "rules": [
                    {
                        "target": "AETERM",
                        "operation": "rename",
                        "sources": ["condition_occurrence.condition_source_value"],
                    }
                ],
            },
        )
        specs = load_specifications(tmp_path, registry)
        assert [s.target_domain for s in specs] == ["AE", "DM"]
