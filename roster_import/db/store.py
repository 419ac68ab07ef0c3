from __future__ import annotations

import copy
import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Protocol

import psycopg2

from ..errors import StoreError
from ..models.course import CourseRecord
from ..models.offday import OffDayEntry
from .batch_insert import BatchInsertError, BatchMetrics, batch_insert

"""Persistence adapters for instructors, off-days and courses.

Idempotency lives in the storage layer: instructor names are unique and an
instructor has at most one off-day per date. ``add_off_day`` reports a
uniqueness conflict as ``False`` (already present) instead of relying on a
prior existence check, so two uploads racing on the same instructor/date
cannot both insert it.

PostgresStore expects a cursor on an autocommit connection; transaction()
issues BEGIN / COMMIT / ROLLBACK explicitly.
"""

__all__ = [
    "OffDayStore",
    "PostgresStore",
    "MemoryStore",
    "SCHEMA_SQL",
    "COURSE_TABLE_COLUMNS",
]

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS instructors (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE TABLE IF NOT EXISTS off_days (
    id SERIAL PRIMARY KEY,
    instructor_id INTEGER NOT NULL REFERENCES instructors(id) ON DELETE CASCADE,
    date DATE NOT NULL,
    reason TEXT NOT NULL DEFAULT '',
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    UNIQUE (instructor_id, date)
);
CREATE TABLE IF NOT EXISTS courses (
    id SERIAL PRIMARY KEY,
    category TEXT NOT NULL,
    title TEXT NOT NULL,
    hours INTEGER NOT NULL,
    instructor TEXT NOT NULL,
    pre_assignment SMALLINT NOT NULL DEFAULT 2 CHECK (pre_assignment IN (1, 2)),
    evaluation TEXT NOT NULL DEFAULT '0',
    excel_order INTEGER NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

# CourseRecord.as_row() と同じ順序
COURSE_TABLE_COLUMNS = (
    "category",
    "title",
    "hours",
    "instructor",
    "pre_assignment",
    "evaluation",
    "excel_order",
)


class OffDayStore(Protocol):
    """Persistence operations the ingestion services depend on."""

    def transaction(self) -> Any: ...

    def find_or_create_instructor(self, name: str) -> int: ...

    def add_off_day(self, instructor_id: int, date: str, reason: str) -> bool: ...

    def replace_courses(self, records: Sequence[CourseRecord]) -> int: ...

    def list_instructors(self) -> list[tuple[int, str]]: ...

    def list_off_days(self, instructor_id: int) -> list[OffDayEntry]: ...


class PostgresStore:
    """OffDayStore backed by PostgreSQL through a psycopg2 cursor."""

    def __init__(self, cursor: Any, page_size: int = 1000) -> None:
        self.cursor = cursor
        self.page_size = page_size

    def _execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        try:
            self.cursor.execute(sql, params)
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e

    def _fetchone(self) -> tuple[Any, ...] | None:
        try:
            return self.cursor.fetchone()
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e

    def ensure_schema(self) -> None:
        self._execute(SCHEMA_SQL)

    @contextmanager
    def transaction(self) -> Iterator[PostgresStore]:
        self._execute("BEGIN")
        try:
            yield self
        except BaseException:
            try:
                self.cursor.execute("ROLLBACK")
            except psycopg2.Error:
                # 元の例外を優先 (ROLLBACK 失敗は記録のみ)
                logger.warning("rollback failed", exc_info=True)
            raise
        self._execute("COMMIT")

    def find_or_create_instructor(self, name: str) -> int:
        self._execute(
            "INSERT INTO instructors (name) VALUES (%s) ON CONFLICT (name) DO NOTHING RETURNING id",
            (name,),
        )
        row = self._fetchone()
        if row is None:
            self._execute("SELECT id FROM instructors WHERE name = %s", (name,))
            row = self._fetchone()
        if row is None:
            raise StoreError(f"instructor '{name}' could not be created")
        return int(row[0])

    def add_off_day(self, instructor_id: int, date: str, reason: str) -> bool:
        self._execute(
            "INSERT INTO off_days (instructor_id, date, reason) VALUES (%s, %s, %s) "
            "ON CONFLICT (instructor_id, date) DO NOTHING RETURNING id",
            (instructor_id, date, reason),
        )
        return self._fetchone() is not None

    def replace_courses(self, records: Sequence[CourseRecord]) -> int:
        self._execute("DELETE FROM courses")

        def _log_batch(metrics: BatchMetrics) -> None:
            logger.debug(
                "courses batch_size=%d elapsed_sec=%.4f", metrics.batch_size, metrics.elapsed_seconds
            )

        try:
            result = batch_insert(
                self.cursor,
                table="courses",
                columns=COURSE_TABLE_COLUMNS,
                rows=[r.as_row() for r in records],
                page_size=self.page_size,
                metrics_callback=_log_batch,
            )
        except BatchInsertError as e:
            raise StoreError(str(e)) from e
        return result.inserted_rows

    def list_instructors(self) -> list[tuple[int, str]]:
        self._execute("SELECT id, name FROM instructors ORDER BY name")
        try:
            return [(int(r[0]), str(r[1])) for r in self.cursor.fetchall()]
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e

    def list_off_days(self, instructor_id: int) -> list[OffDayEntry]:
        self._execute(
            "SELECT date, reason FROM off_days WHERE instructor_id = %s ORDER BY date",
            (instructor_id,),
        )
        try:
            rows = self.cursor.fetchall()
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e
        return [OffDayEntry(date=d.isoformat() if hasattr(d, "isoformat") else str(d), reason=r or "") for d, r in rows]


class MemoryStore:
    """In-memory OffDayStore (mock mode and tests).

    transaction() snapshots the state and restores it when the block raises,
    so a failed ingestion leaves nothing behind.
    """

    def __init__(self) -> None:
        self.instructors: dict[str, int] = {}
        self.off_days: dict[tuple[int, str], str] = {}
        self.courses: list[CourseRecord] = []
        self._next_id = 1

    @contextmanager
    def transaction(self) -> Iterator[MemoryStore]:
        snapshot = copy.deepcopy((self.instructors, self.off_days, self.courses, self._next_id))
        try:
            yield self
        except BaseException:
            self.instructors, self.off_days, self.courses, self._next_id = snapshot
            raise

    def find_or_create_instructor(self, name: str) -> int:
        if name not in self.instructors:
            self.instructors[name] = self._next_id
            self._next_id += 1
        return self.instructors[name]

    def add_off_day(self, instructor_id: int, date: str, reason: str) -> bool:
        key = (instructor_id, date)
        if key in self.off_days:
            return False
        self.off_days[key] = reason
        return True

    def replace_courses(self, records: Sequence[CourseRecord]) -> int:
        self.courses = list(records)
        return len(self.courses)

    def list_instructors(self) -> list[tuple[int, str]]:
        return sorted(((i, n) for n, i in self.instructors.items()), key=lambda t: t[1])

    def list_off_days(self, instructor_id: int) -> list[OffDayEntry]:
        return [
            OffDayEntry(date=d, reason=r)
            for (iid, d), r in sorted(self.off_days.items())
            if iid == instructor_id
        ]
