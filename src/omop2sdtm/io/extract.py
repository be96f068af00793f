"""Source record extraction from CSV extracts and database connections.

The database path never opens or closes a connection: the caller acquires
one (from whatever driver it uses), passes it in, and releases it. Only the
cursor is owned here, and it is closed on every exit path.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import closing
from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger


def frame_to_records(df: pd.DataFrame) -> list[dict[str, Any]]:
    """Convert a DataFrame to a list of dict records with NaN/NaT as None."""
    return df.astype(object).where(df.notna(), None).to_dict(orient="records")


def read_records_csv(filepath: str | Path) -> list[dict[str, Any]]:
    """Read a CSV extract into source records.

    Column names are kept as-is (OMOP extracts use lower-case names).
    Every cell is read as text so source values such as "007" or "6.20"
    keep their original form; typing happens in the mapping rules. Only
    empty cells become None.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"CSV extract not found: {filepath}")

    logger.info("Reading CSV extract: {}", filepath.name)
    df = pd.read_csv(filepath, dtype=str, keep_default_na=False, na_values=[""])
    records = frame_to_records(df)
    logger.info("Read {}: {} rows x {} cols", filepath.name, len(df), len(df.columns))
    return records


def iter_query_records(
    connection: Any,
    sql: str,
    params: Sequence[Any] = (),
    *,
    batch_size: int = 1000,
) -> Iterator[dict[str, Any]]:
    """Yield rows of a query as dict records.

    Args:
        connection: An open DB-API 2.0 connection owned by the caller.
        sql: Query text using the driver's parameter style.
        params: Query parameters.
        batch_size: Rows fetched per round trip.

    Yields:
        One dict per row, keyed by column name.
    """
    with closing(connection.cursor()) as cursor:
        cursor.execute(sql, params)
        columns = [d[0] for d in cursor.description]
        count = 0
        while True:
            rows = cursor.fetchmany(batch_size)
            if not rows:
                break
            for row in rows:
                count += 1
                yield dict(zip(columns, row, strict=True))
        logger.debug("Query returned {} rows", count)
