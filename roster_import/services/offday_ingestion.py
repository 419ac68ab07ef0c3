from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from datetime import date, timedelta

from ..db.store import OffDayStore
from ..errors import EmptyInputError, IngestionError, StoreError
from ..excel.columns import OFFDAY_COLUMNS, ColumnSpec, resolve_columns
from ..excel.reader import PandasSheetCodec, SheetCodec
from ..logging.error_log import ErrorLogBuffer
from ..models.offday import ExpandedOffDayRecord, IngestionSummary, OffDayEntry, ParsedOffDayRequest
from ..models.processing_result import UploadResult
from ..models.sheet import Sheet
from .row_parser import parse_offday_row
from .summary import render_offday_message

"""Instructor off-day ingestion pipeline.

1. resolve the header once (abort on a missing required column)
2. parse every data row in order; the first bad row aborts the whole upload
3-5. inside one store transaction: find-or-create every instructor, expand
   each request into one record per day, store the days not yet present and
   count the rest as duplicates
6-7. build the per-instructor summary (one entry per date, first remark wins,
   dates ascending, instructors ascending)

Validation fully precedes persistence: no row error can leave stored rows.
"""

__all__ = [
    "parse_offday_sheet",
    "expand_off_days",
    "ingest_off_days",
    "upload_off_days",
]

logger = logging.getLogger(__name__)


def parse_offday_sheet(
    sheet: Sheet, columns: Sequence[ColumnSpec] = OFFDAY_COLUMNS
) -> list[ParsedOffDayRequest]:
    """Validate a decoded sheet into requests (steps 1-2, no side effects).

    Raises:
        EmptyInputError: no header, no data rows, or only blank rows
        MissingColumnError / InvalidDateError / ValidationError
    """
    if not sheet.has_header or not sheet.rows:
        raise EmptyInputError()

    index = resolve_columns(sheet.header, columns)
    logger.debug("sheet=%s columns=%s", sheet.name, dict(index))

    requests: list[ParsedOffDayRequest] = []
    for row_number, row in enumerate(sheet.rows, start=1):
        parsed = parse_offday_row(row, index, row_number)
        if parsed is None:
            logger.debug("row %d skipped (blank)", row_number)
            continue
        requests.append(parsed)

    if not requests:
        raise EmptyInputError()
    return requests


def expand_off_days(request: ParsedOffDayRequest) -> Iterator[ExpandedOffDayRecord]:
    """Yield one record per calendar day from start to end, both inclusive."""
    current = date.fromisoformat(request.start_date)
    end = date.fromisoformat(request.end_date)
    while current <= end:
        yield ExpandedOffDayRecord(
            subject_name=request.subject_name,
            date=current.isoformat(),
            remark=request.remark,
        )
        current += timedelta(days=1)


def _collapse(entries: list[OffDayEntry]) -> tuple[OffDayEntry, ...]:
    seen: dict[str, OffDayEntry] = {}
    for entry in entries:
        # 同一日付は最初の備考を採用
        seen.setdefault(entry.date, entry)
    return tuple(sorted(seen.values(), key=lambda e: e.date))


def ingest_off_days(
    sheet: Sheet,
    store: OffDayStore,
    columns: Sequence[ColumnSpec] = OFFDAY_COLUMNS,
) -> IngestionSummary:
    """Run the full off-day pipeline against ``store``.

    Raises IngestionError subclasses before anything is stored; StoreError if
    the database rejects an operation (the transaction is rolled back).
    """
    requests = parse_offday_sheet(sheet, columns)

    total_new = 0
    total_duplicate = 0
    submitted: dict[str, list[OffDayEntry]] = {}

    with store.transaction():
        instructor_ids: dict[str, int] = {}
        for request in requests:
            name = request.subject_name
            if name not in instructor_ids:
                instructor_ids[name] = store.find_or_create_instructor(name)

        for request in requests:
            entries = submitted.setdefault(request.subject_name, [])
            for record in expand_off_days(request):
                if store.add_off_day(instructor_ids[record.subject_name], record.date, record.remark):
                    total_new += 1
                else:
                    total_duplicate += 1
                # 重複かどうかに関わらずユーザーの送信内容をすべて記録
                entries.append(OffDayEntry(date=record.date, reason=record.remark))

    per_subject = {name: _collapse(submitted[name]) for name in sorted(submitted)}
    message = render_offday_message(total_new, total_duplicate)
    logger.info(
        "off-days ingested instructors=%d new=%d duplicate=%d",
        len(per_subject),
        total_new,
        total_duplicate,
    )
    return IngestionSummary(
        total_new=total_new,
        total_duplicate=total_duplicate,
        per_subject=per_subject,
        message=message,
    )


def upload_off_days(
    content: bytes,
    store: OffDayStore,
    codec: SheetCodec | None = None,
    columns: Sequence[ColumnSpec] = OFFDAY_COLUMNS,
    error_log: ErrorLogBuffer | None = None,
    file_name: str = "upload.xlsx",
) -> UploadResult:
    """Decode an uploaded workbook and ingest it, returning the caller-facing result.

    Ingestion and database failures become ``success=False`` results carrying
    the error message; they are logged and, if ``error_log`` is given,
    recorded there.
    """
    codec = codec or PandasSheetCodec()
    sheet_name = "<FILE_LEVEL>"
    try:
        sheet = codec.decode(content)
        sheet_name = sheet.name
        summary = ingest_off_days(sheet, store, columns)
    except (IngestionError, StoreError) as e:
        logger.error("%s: %s", file_name, e)
        if error_log is not None:
            error_log.record_exception(file_name, sheet_name, e)
        return UploadResult.offday_failure(str(e))
    return UploadResult.from_summary(summary)
