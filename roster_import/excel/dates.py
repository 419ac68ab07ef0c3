from __future__ import annotations

import numbers
import re
from datetime import UTC, date, datetime, timedelta
from typing import Any

import pandas as pd

from ..errors import InvalidDateError

"""Date normalization for spreadsheet cells.

Cells arrive as spreadsheet serial numbers, strings in a handful of layouts,
or native date/datetime objects (pandas Timestamps included). All of them are
coerced to a CalendarDate string "YYYY-MM-DD" with no time-of-day and no
local-timezone shifting.

Serials: the spreadsheet format counts 1900-02-29 as a real day. Counting
from 1899-12-30 absorbs that phantom day for every serial past 59, so serial
61 is 1900-03-01 and modern serials agree with spreadsheet tools, while
serial 45 stays on 1900-02-13.
"""

__all__ = [
    "normalize_date",
    "to_calendar_date",
    "from_serial",
    "SERIAL_EPOCH",
    "STRING_PATTERNS",
]

SERIAL_EPOCH = date(1899, 12, 30)

# (name, regex, group order) - 先頭一致優先。位置/桁数で判定しロケール推測はしない
STRING_PATTERNS: list[tuple[str, re.Pattern[str], tuple[str, str, str]]] = [
    ("YYYY-MM-DD", re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$"), ("y", "m", "d")),
    ("YYYY/MM/DD", re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$"), ("y", "m", "d")),
    ("MM/DD/YYYY", re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$"), ("m", "d", "y")),
    ("DD/MM/YYYY", re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$"), ("d", "m", "y")),
]


def from_serial(serial: float) -> date:
    """Convert a spreadsheet date serial to a date (time-of-day dropped)."""
    if serial < 0:
        raise InvalidDateError(serial, reason="negative date serial")
    try:
        # 60 以降: エポックを 1899-12-30 に置くことで架空の 1900-02-29 を補正済み
        return SERIAL_EPOCH + timedelta(days=int(serial))
    except OverflowError as e:
        raise InvalidDateError(serial, reason="date serial out of range") from e


def _from_datetime(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.date()


def _match_patterns(text: str) -> date | None:
    for _name, pattern, order in STRING_PATTERNS:
        m = pattern.match(text)
        if not m:
            continue
        parts = dict(zip(order, (int(g) for g in m.groups()), strict=True))
        try:
            return date(parts["y"], parts["m"], parts["d"])
        except ValueError:
            # 形式は一致したが実在しない日付 -> 次のパターンへ
            continue
    return None


def _parse_generic(text: str) -> date:
    try:
        ts = pd.to_datetime(text, utc=True)
    except (ValueError, TypeError, OverflowError, pd.errors.OutOfBoundsDatetime) as e:
        raise InvalidDateError(text, reason="unrecognized date format") from e
    if pd.isna(ts):
        raise InvalidDateError(text, reason="unrecognized date format")
    return ts.date()


def to_calendar_date(value: Any) -> date:
    """Coerce a raw cell value to a ``datetime.date``.

    Raises:
        InvalidDateError: for empty, null, unsupported or unparseable values.
    """
    if value is None:
        raise InvalidDateError(value, reason="empty cell")
    # datetime は date のサブクラスなので先に判定 (pd.Timestamp も datetime)
    if isinstance(value, datetime):
        if pd.isna(value):
            raise InvalidDateError(value, reason="empty cell")
        return _from_datetime(value)
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        raise InvalidDateError(value)
    if isinstance(value, numbers.Real):
        if pd.isna(value):
            raise InvalidDateError(value, reason="empty cell")
        return from_serial(float(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidDateError(value, reason="empty cell")
        matched = _match_patterns(text)
        if matched is not None:
            return matched
        return _parse_generic(text)
    raise InvalidDateError(value, reason="unsupported value type")


def normalize_date(value: Any) -> str:
    """Return the CalendarDate string ("YYYY-MM-DD") for a raw cell value.

    Idempotent: feeding the result back in returns the same string.
    """
    return to_calendar_date(value).isoformat()
