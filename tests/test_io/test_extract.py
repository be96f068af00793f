"""Tests for source record extraction from CSV and DB-API connections."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pandas as pd
import pytest

from omop2sdtm.io.extract import frame_to_records, iter_query_records, read_records_csv


@pytest.fixture
def connection() -> Iterator[sqlite3.Connection]:
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE person (person_id INTEGER, gender_concept_id INTEGER, note TEXT)")
    conn.executemany(
        "INSERT INTO person VALUES (?, ?, ?)",
        [(i, 8507 if i % 2 else 8532, None if i == 3 else f"n{i}") for i in range(1, 6)],
    )
    yield conn
    conn.close()


class _TrackingCursor:
    """Wraps a sqlite3 cursor and records whether close() was called."""

    def __init__(self, cursor: sqlite3.Cursor) -> None:
        self._cursor = cursor
        self.closed = False

    def __getattr__(self, name: str) -> object:
        return getattr(self._cursor, name)

    def close(self) -> None:
        self.closed = True
        self._cursor.close()


class _TrackingConnection:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self.cursors: list[_TrackingCursor] = []

    def cursor(self) -> _TrackingCursor:
        cursor = _TrackingCursor(self._conn.cursor())
        self.cursors.append(cursor)
        return cursor


class TestFrameToRecords:
    def test_nan_becomes_none(self) -> None:
        df = pd.DataFrame({"a": [1.0, float("nan")], "b": ["x", None]})
        assert frame_to_records(df) == [{"a": 1.0, "b": "x"}, {"a": None, "b": None}]


class TestReadRecordsCsv:
    def test_reads_rows(self, tmp_path: Path) -> None:
        path = tmp_path / "person.csv"
        path.write_text("person_id,gender_concept_id,person_source_value\n1,8507,A\n2,,B\n")
        records = read_records_csv(path)
        assert len(records) == 2
        assert records[0]["person_source_value"] == "A"
        assert records[1]["gender_concept_id"] is None

    def test_cells_kept_as_text(self, tmp_path: Path) -> None:
        path = tmp_path / "measurement.csv"
        path.write_text("measurement_id,value_source_value\n1,6.20\n2,007\n3,NA\n")
        records = read_records_csv(path)
        assert [r["value_source_value"] for r in records] == ["6.20", "007", "NA"]
        assert records[0]["measurement_id"] == "1"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_records_csv(tmp_path / "absent.csv")


class TestIterQueryRecords:
    def test_rows_as_dicts(self, connection: sqlite3.Connection) -> None:
        rows = list(iter_query_records(connection, "SELECT * FROM person ORDER BY person_id"))
        assert len(rows) == 5
        assert rows[0] == {"person_id": 1, "gender_concept_id": 8507, "note": "n1"}
        assert rows[2]["note"] is None

    def test_parameters_and_small_batches(self, connection: sqlite3.Connection) -> None:
        rows = list(
            iter_query_records(
                connection,
                "SELECT person_id FROM person WHERE gender_concept_id = ? ORDER BY person_id",
                (8507,),
                batch_size=1,
            )
        )
        assert [r["person_id"] for r in rows] == [1, 3, 5]

    def test_cursor_closed_after_exhaustion(self, connection: sqlite3.Connection) -> None:
        tracking = _TrackingConnection(connection)
        list(iter_query_records(tracking, "SELECT * FROM person"))
        assert tracking.cursors[0].closed

    def test_cursor_closed_when_abandoned(self, connection: sqlite3.Connection) -> None:
        tracking = _TrackingConnection(connection)
        rows = iter_query_records(tracking, "SELECT * FROM person", batch_size=2)
        next(rows)
        rows.close()
        assert tracking.cursors[0].closed

    def test_cursor_closed_on_query_error(self, connection: sqlite3.Connection) -> None:
        tracking = _TrackingConnection(connection)
        with pytest.raises(sqlite3.OperationalError):
            list(iter_query_records(tracking, "SELECT * FROM no_such_table"))
        assert tracking.cursors[0].closed

    def test_connection_left_open(self, connection: sqlite3.Connection) -> None:
        list(iter_query_records(connection, "SELECT * FROM person"))
        assert connection.execute("SELECT COUNT(*) FROM person").fetchone() == (5,)
