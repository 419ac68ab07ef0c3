from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import psycopg2
from psycopg2.extras import execute_values

"""Batched INSERT helper on top of psycopg2.extras.execute_values.

Used for bulk course roster inserts. Table and column names are trusted
(module constants), values are always passed as parameters.
"""


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Timing data for a single batch insert call."""
    batch_size: int  # Number of rows in this batch
    elapsed_seconds: float  # Time spent on execute_values call
    start_time: float  # time.time()
    end_time: float  # time.time()


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    returned_values: list[tuple[Any, ...]] | None = None


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    returning: str | None = None,
    on_conflict: str | None = None,
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """Perform a batched INSERT.

    Parameters
    ----------
    cursor: psycopg2 cursor (トランザクション境界は呼び出し側)
    table: target table
    columns: insert column order, matching each row's value order
    rows: row value sequences
    returning: optional column list for a RETURNING clause (e.g. "id")
    on_conflict: optional conflict action, e.g. "(name) DO NOTHING"
    page_size: execute_values page_size
    metrics_callback: receives BatchMetrics after the call; not invoked for
        empty input (returns early)
    """
    rows_list = [tuple(r) for r in rows]
    if not rows_list:
        return InsertResult(inserted_rows=0, returned_values=[] if returning else None)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"
    if on_conflict:
        sql += f" ON CONFLICT {on_conflict}"
    if returning:
        sql += f" RETURNING {returning}"

    start_time = time.time()
    returned = None
    try:
        # fetch=True で全ページ分の RETURNING 結果を回収
        result = execute_values(cursor, sql, rows_list, page_size=page_size, fetch=bool(returning))
        if returning:
            returned = [tuple(r) for r in (result or [])]
    except psycopg2.Error as e:
        raise BatchInsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    inserted = len(returned) if returned is not None else len(rows_list)
    return InsertResult(inserted_rows=inserted, returned_values=returned)
