from __future__ import annotations

from dataclasses import dataclass, field

"""Course roster models.

A ParsedCourse is one spreadsheet row and may name several instructors
(comma separated 담당교관 cell). It is split into one CourseRecord per
instructor before storage.
"""

__all__ = [
    "ParsedCourse",
    "CourseRecord",
    "CourseSummary",
]

PRE_ASSIGNED = 1
NOT_PRE_ASSIGNED = 2


@dataclass(frozen=True)
class ParsedCourse:
    row_number: int
    category: str  # 구분
    title: str  # 과목
    hours: int  # 시수
    instructors: tuple[str, ...]  # 담당교관 (split + trimmed)
    pre_assignment: int = NOT_PRE_ASSIGNED  # 선배정 1|2
    evaluation: str = "0"  # 평가 "1"=평가 / "0"=무시험
    excel_order: int = 0


@dataclass(frozen=True)
class CourseRecord:
    """Storage row for a single instructor's share of a course."""
    category: str
    title: str
    hours: int
    instructor: str
    pre_assignment: int
    evaluation: str
    excel_order: int

    def as_row(self) -> tuple[object, ...]:
        # courses テーブルの列順 (COURSE_TABLE_COLUMNS) と一致させること
        return (
            self.category,
            self.title,
            self.hours,
            self.instructor,
            self.pre_assignment,
            self.evaluation,
            self.excel_order,
        )


@dataclass(frozen=True)
class CourseSummary:
    course_count: int
    instructor_count: int
    instructors: tuple[str, ...] = field(default_factory=tuple)
    message: str = ""
