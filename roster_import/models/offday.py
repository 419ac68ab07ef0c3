from __future__ import annotations

from dataclasses import dataclass, field

"""Off-day domain models.

ParsedOffDayRequest is one validated spreadsheet row. The ingestion pipeline
expands it into ExpandedOffDayRecord values (one per calendar day) and
reports what the user submitted through IngestionSummary.

Dates are CalendarDate strings ("YYYY-MM-DD"), never datetimes.
"""

__all__ = [
    "ParsedOffDayRequest",
    "ExpandedOffDayRecord",
    "OffDayEntry",
    "IngestionSummary",
]


@dataclass(frozen=True)
class ParsedOffDayRequest:
    """One validated off-day row (name, inclusive date range, remark)."""
    row_number: int  # 1-based data row (header excluded)
    subject_name: str
    start_date: str
    end_date: str
    remark: str = ""


@dataclass(frozen=True)
class ExpandedOffDayRecord:
    subject_name: str
    date: str
    remark: str = ""


@dataclass(frozen=True)
class OffDayEntry:
    date: str
    reason: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"date": self.date, "reason": self.reason}


@dataclass(frozen=True)
class IngestionSummary:
    """Outcome of one off-day ingestion.

    per_subject maps subject name (sorted ascending) to a date-sorted tuple of
    entries with one entry per date; it reflects everything submitted, whether
    the day was newly stored or already present.
    """
    total_new: int
    total_duplicate: int
    per_subject: dict[str, tuple[OffDayEntry, ...]] = field(default_factory=dict)
    message: str = ""
