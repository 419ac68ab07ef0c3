from __future__ import annotations

import logging
from collections.abc import Sequence

from ..db.store import OffDayStore
from ..errors import EmptyInputError, IngestionError, StoreError
from ..excel.columns import COURSE_COLUMNS, ColumnSpec, resolve_columns
from ..excel.reader import PandasSheetCodec, SheetCodec
from ..logging.error_log import ErrorLogBuffer
from ..models.course import CourseRecord, CourseSummary, ParsedCourse
from ..models.processing_result import UploadResult
from ..models.sheet import Sheet
from .row_parser import parse_course_row
from .summary import render_course_message

"""Course roster ingestion.

An upload replaces the whole roster. A course taught by several instructors
is stored once per instructor; its hours are divided evenly and the first
listed instructor takes the remainder.
"""

__all__ = [
    "parse_course_sheet",
    "split_course",
    "ingest_courses",
    "upload_courses",
]

logger = logging.getLogger(__name__)


def parse_course_sheet(
    sheet: Sheet, columns: Sequence[ColumnSpec] = COURSE_COLUMNS
) -> list[ParsedCourse]:
    if not sheet.has_header or not sheet.rows:
        raise EmptyInputError()
    index = resolve_columns(sheet.header, columns)
    courses = []
    for row_number, row in enumerate(sheet.rows, start=1):
        parsed = parse_course_row(row, index, row_number)
        if parsed is not None:
            courses.append(parsed)
    if not courses:
        raise EmptyInputError()
    return courses


def split_course(course: ParsedCourse) -> list[CourseRecord]:
    """One CourseRecord per instructor; hours // n each, remainder to the first."""
    n = len(course.instructors)
    share, remainder = divmod(course.hours, n)
    return [
        CourseRecord(
            category=course.category,
            title=course.title,
            hours=share + (remainder if i == 0 else 0),
            instructor=name,
            pre_assignment=course.pre_assignment,
            evaluation=course.evaluation,
            excel_order=course.excel_order,
        )
        for i, name in enumerate(course.instructors)
    ]


def ingest_courses(
    sheet: Sheet,
    store: OffDayStore,
    columns: Sequence[ColumnSpec] = COURSE_COLUMNS,
) -> CourseSummary:
    courses = parse_course_sheet(sheet, columns)

    names: list[str] = []
    for course in courses:
        for name in course.instructors:
            if name not in names:
                names.append(name)
    records = [record for course in courses for record in split_course(course)]

    with store.transaction():
        for name in names:
            store.find_or_create_instructor(name)
        saved = store.replace_courses(records)

    logger.info("courses ingested courses=%d instructors=%d", saved, len(names))
    return CourseSummary(
        course_count=saved,
        instructor_count=len(names),
        instructors=tuple(names),
        message=render_course_message(saved, len(names)),
    )


def upload_courses(
    content: bytes,
    store: OffDayStore,
    codec: SheetCodec | None = None,
    columns: Sequence[ColumnSpec] = COURSE_COLUMNS,
    error_log: ErrorLogBuffer | None = None,
    file_name: str = "upload.xlsx",
) -> UploadResult:
    codec = codec or PandasSheetCodec()
    sheet_name = "<FILE_LEVEL>"
    try:
        sheet = codec.decode(content)
        sheet_name = sheet.name
        summary = ingest_courses(sheet, store, columns)
    except (IngestionError, StoreError) as e:
        logger.error("%s: %s", file_name, e)
        if error_log is not None:
            error_log.record_exception(file_name, sheet_name, e)
        return UploadResult.course_failure(str(e))
    return UploadResult(
        success=True,
        message=summary.message,
        course_count=summary.course_count,
        instructor_count=summary.instructor_count,
    )
