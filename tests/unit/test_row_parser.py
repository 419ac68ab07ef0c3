from __future__ import annotations

from datetime import datetime

import pytest

from roster_import.errors import InvalidDateError, ValidationError
from roster_import.excel.columns import COURSE_COLUMNS, resolve_columns
from roster_import.models.course import NOT_PRE_ASSIGNED, PRE_ASSIGNED
from roster_import.services.row_parser import parse_course_row, parse_offday_row, split_instructors

COURSE_HEADER = ["구분", "과목", "시수", "담당교관", "선배정", "평가"]


@pytest.fixture()
def course_index():
    return resolve_columns(COURSE_HEADER, COURSE_COLUMNS)


def test_parse_offday_row(offday_index):
    parsed = parse_offday_row(["  김교관 ", "2024-01-15", 45308, " 개인사유 "], offday_index, 1)
    assert parsed is not None
    assert parsed.subject_name == "김교관"
    assert parsed.start_date == "2024-01-15"
    assert parsed.end_date == "2024-01-17"
    assert parsed.remark == "개인사유"
    assert parsed.row_number == 1


def test_missing_remark_is_empty(offday_index):
    parsed = parse_offday_row(["김교관", "2024-01-15", "2024-01-15", None], offday_index, 1)
    assert parsed.remark == ""


def test_datetime_cells(offday_index):
    parsed = parse_offday_row(
        ["김교관", datetime(2024, 1, 15), datetime(2024, 1, 16, 12)], offday_index, 2
    )
    assert (parsed.start_date, parsed.end_date) == ("2024-01-15", "2024-01-16")


@pytest.mark.parametrize("row", [None, [], [None, None, None, None], ["", "2024-01-15", "2024-01-16", "x"]])
def test_blank_rows_skipped(offday_index, row):
    assert parse_offday_row(row, offday_index, 3) is None


def test_whitespace_name_rejected(offday_index):
    with pytest.raises(ValidationError) as e:
        parse_offday_row(["   ", "2024-01-15", "2024-01-16"], offday_index, 5)
    assert e.value.row_number == 5
    assert str(e.value) == "row 5: missing name"


def test_invalid_date_carries_row(offday_index):
    with pytest.raises(InvalidDateError) as e:
        parse_offday_row(["김교관", "someday", "2024-01-16"], offday_index, 7)
    assert e.value.row_number == 7
    assert e.value.value == "someday"
    assert str(e.value).startswith("row 7: ")


def test_missing_end_date(offday_index):
    with pytest.raises(InvalidDateError) as e:
        parse_offday_row(["김교관", "2024-01-15", None], offday_index, 2)
    assert e.value.row_number == 2


def test_start_after_end(offday_index):
    with pytest.raises(ValidationError) as e:
        parse_offday_row(["김교관", "2024-01-17", "2024-01-15"], offday_index, 3)
    assert "start after end" in str(e.value)
    assert e.value.row_number == 3


def test_split_instructors():
    assert split_instructors("김교관, 이교관,,  박교관 ") == ("김교관", "이교관", "박교관")
    assert split_instructors(None) == ()


def test_parse_course_row(course_index):
    parsed = parse_course_row(["공통", "전술학", 5, "김교관, 이교관", 1, "평가"], course_index, 1)
    assert parsed.category == "공통"
    assert parsed.title == "전술학"
    assert parsed.hours == 5
    assert parsed.instructors == ("김교관", "이교관")
    assert parsed.pre_assignment == PRE_ASSIGNED
    assert parsed.evaluation == "1"
    assert parsed.excel_order == 1


def test_course_defaults(course_index):
    parsed = parse_course_row(["공통", "체육", "3", "박교관", None, None], course_index, 2)
    assert parsed.hours == 3
    assert parsed.pre_assignment == NOT_PRE_ASSIGNED
    assert parsed.evaluation == "0"


def test_course_no_exam(course_index):
    parsed = parse_course_row(["공통", "체육", 3.0, "박교관", 2, "무시험"], course_index, 2)
    assert parsed.hours == 3
    assert parsed.evaluation == "0"


def test_course_blank_title_skipped(course_index):
    assert parse_course_row(["공통", None, 3, "박교관", None, None], course_index, 4) is None


@pytest.mark.parametrize(
    "row, message",
    [
        (["", "체육", 3, "박교관", None, None], "missing category"),
        (["공통", "체육", None, "박교관", None, None], "missing hours"),
        (["공통", "체육", "세시간", "박교관", None, None], "invalid hours"),
        (["공통", "체육", 2.5, "박교관", None, None], "invalid hours"),
        (["공통", "체육", -1, "박교관", None, None], "invalid hours"),
        (["공통", "체육", 3, " , ", None, None], "missing instructor"),
        (["공통", "체육", 3, "박교관", 3, None], "invalid pre-assignment"),
        (["공통", "체육", 3, "박교관", None, "maybe"], "invalid evaluation"),
    ],
)
def test_course_validation(course_index, row, message):
    with pytest.raises(ValidationError) as e:
        parse_course_row(row, course_index, 6)
    assert message in str(e.value)
    assert e.value.row_number == 6
