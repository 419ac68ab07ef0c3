from __future__ import annotations

import numbers
from collections.abc import Sequence
from typing import Any

import pandas as pd

from ..errors import InvalidDateError, ValidationError
from ..excel.columns import ColumnIndex
from ..excel.dates import normalize_date
from ..models.course import NOT_PRE_ASSIGNED, PRE_ASSIGNED, ParsedCourse
from ..models.offday import ParsedOffDayRequest

"""Row parsing: one raw spreadsheet row -> one validated domain record.

Both parsers return None for a blank row (empty key cell), which is how
trailing template rows are skipped. Every failure is a row-indexed
ValidationError / InvalidDateError; row numbers are 1-based with the header
row excluded.
"""

__all__ = [
    "parse_offday_row",
    "parse_course_row",
    "split_instructors",
    "EVALUATION_VALUES",
]

# 평가 セル表記 -> 保存値 ("1" 평가 / "0" 무시험)
EVALUATION_VALUES: dict[str, str] = {
    "평가": "1",
    "1": "1",
    "Y": "1",
    "O": "1",
    "무시험": "0",
    "0": "0",
    "N": "0",
    "X": "0",
    "": "0",
}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _text(value: Any) -> str:
    if _is_empty(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        # 数値セル (例: 3.0) は整数表記に
        return str(int(value))
    return str(value).strip()


def _row_is_absent(row: Sequence[Any] | None) -> bool:
    return row is None or len(row) == 0 or all(_is_empty(v) for v in row)


def parse_offday_row(
    row: Sequence[Any] | None, columns: ColumnIndex, row_number: int
) -> ParsedOffDayRequest | None:
    """Parse one off-day row.

    Returns None for a blank row. Raises ValidationError for a missing name or
    a start date after the end date, InvalidDateError (with the row number)
    for an unreadable date.
    """
    if _row_is_absent(row) or _is_empty(columns.cell(row, "name")):
        return None

    name = _text(columns.cell(row, "name"))
    if not name:
        raise ValidationError("missing name", row_number)

    try:
        start = normalize_date(columns.cell(row, "start_date"))
        end = normalize_date(columns.cell(row, "end_date"))
    except InvalidDateError as e:
        raise e.with_row(row_number) from e

    # CalendarDate 文字列は辞書順 = 日付順
    if start > end:
        raise ValidationError(f"start after end ({start} > {end})", row_number)

    return ParsedOffDayRequest(
        row_number=row_number,
        subject_name=name,
        start_date=start,
        end_date=end,
        remark=_text(columns.cell(row, "remark")),
    )


def split_instructors(value: Any) -> tuple[str, ...]:
    """Split a 담당교관 cell on commas, dropping empty names."""
    return tuple(n for n in (part.strip() for part in _text(value).split(",")) if n)


def _parse_int(value: Any, field: str, row_number: int) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"invalid {field} {value!r}", row_number)
    if isinstance(value, numbers.Real):
        if pd.isna(value) or not float(value).is_integer():
            raise ValidationError(f"invalid {field} {value!r}", row_number)
        return int(value)
    text = _text(value)
    try:
        number = float(text)
    except ValueError:
        raise ValidationError(f"invalid {field} {value!r}", row_number) from None
    if not number.is_integer():
        raise ValidationError(f"invalid {field} {value!r}", row_number)
    return int(number)


def parse_course_row(
    row: Sequence[Any] | None, columns: ColumnIndex, row_number: int
) -> ParsedCourse | None:
    """Parse one course roster row (None for a blank row)."""
    if _row_is_absent(row) or _is_empty(columns.cell(row, "title")):
        return None

    title = _text(columns.cell(row, "title"))
    if not title:
        raise ValidationError("missing course title", row_number)
    category = _text(columns.cell(row, "category"))
    if not category:
        raise ValidationError("missing category", row_number)

    raw_hours = columns.cell(row, "hours")
    if _is_empty(raw_hours):
        raise ValidationError("missing hours", row_number)
    hours = _parse_int(raw_hours, "hours", row_number)
    if hours < 0:
        raise ValidationError(f"invalid hours {raw_hours!r}", row_number)

    instructors = split_instructors(columns.cell(row, "instructors"))
    if not instructors:
        raise ValidationError("missing instructor", row_number)

    raw_pre = columns.cell(row, "pre_assignment")
    pre_assignment = NOT_PRE_ASSIGNED
    if not _is_empty(raw_pre) and _text(raw_pre):
        pre_assignment = _parse_int(raw_pre, "pre-assignment", row_number)
        if pre_assignment not in (PRE_ASSIGNED, NOT_PRE_ASSIGNED):
            raise ValidationError(f"invalid pre-assignment {raw_pre!r} (expected 1 or 2)", row_number)

    raw_eval = _text(columns.cell(row, "evaluation")).upper()
    if raw_eval not in EVALUATION_VALUES:
        raise ValidationError(f"invalid evaluation {raw_eval!r}", row_number)

    return ParsedCourse(
        row_number=row_number,
        category=category,
        title=title,
        hours=hours,
        instructors=instructors,
        pre_assignment=pre_assignment,
        evaluation=EVALUATION_VALUES[raw_eval],
        excel_order=row_number,
    )
