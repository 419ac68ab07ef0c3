from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .offday import IngestionSummary

"""Result models for uploads and CLI runs.

UploadResult is the logical result object handed back to the caller of one
upload. FileStat / RunResult aggregate several uploads for the SUMMARY line.
"""


@dataclass(frozen=True)
class UploadResult:
    """Result of a single upload (off-day or course roster).

    to_dict() uses the camelCase keys expected by the frontend and omits the
    counters that do not apply to the upload kind.
    """
    success: bool
    message: str
    off_day_count: int | None = None  # 新規保存された日数
    duplicate_count: int | None = None
    instructor_off_days: list[dict[str, Any]] | None = None
    course_count: int | None = None
    instructor_count: int | None = None

    @classmethod
    def from_summary(cls, summary: IngestionSummary) -> UploadResult:
        return cls(
            success=True,
            message=summary.message,
            off_day_count=summary.total_new,
            duplicate_count=summary.total_duplicate,
            instructor_off_days=[
                {"instructorName": name, "offDays": [e.to_dict() for e in entries]}
                for name, entries in summary.per_subject.items()
            ],
        )

    @classmethod
    def offday_failure(cls, message: str) -> UploadResult:
        return cls(success=False, message=message, off_day_count=0, instructor_off_days=[])

    @classmethod
    def course_failure(cls, message: str) -> UploadResult:
        return cls(success=False, message=message, course_count=0, instructor_count=0)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.off_day_count is not None:
            data["offDayCount"] = self.off_day_count
        if self.instructor_off_days is not None:
            data["instructorOffDays"] = self.instructor_off_days
        if self.course_count is not None:
            data["courseCount"] = self.course_count
        if self.instructor_count is not None:
            data["instructorCount"] = self.instructor_count
        return data


@dataclass(frozen=True)
class FileStat:
    """Per-file outcome inside a CLI run."""
    file_name: str
    status: str  # success/failed
    new_rows: int
    duplicate_rows: int
    elapsed_seconds: float
    message: str = ""


@dataclass(frozen=True)
class RunResult:
    """Aggregated results of one CLI invocation over one or more files."""
    success_files: int
    failed_files: int
    total_new: int
    total_duplicate: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
