from __future__ import annotations

from datetime import UTC, datetime

import pytest

from roster_import.models.processing_result import RunResult
from roster_import.services.summary import render_course_message, render_offday_message, render_summary_line


def _result(elapsed: float, **kwargs) -> RunResult:
    now = datetime.now(UTC)
    defaults = dict(success_files=2, failed_files=1, total_new=10, total_duplicate=3)
    defaults.update(kwargs)
    return RunResult(start_time=now, end_time=now, elapsed_seconds=elapsed, **defaults)


def test_render_summary_line():
    assert render_summary_line(_result(1.5)) == (
        "SUMMARY files=3 success=2 failed=1 new=10 duplicate=3 elapsed_sec=1.5"
    )


@pytest.mark.parametrize(
    "elapsed, expected",
    [(0.0, "0"), (2.0, "2"), (1.23456, "1.235"), (0.000123, "0.000123"), (0.0000001, "0")],
)
def test_elapsed_formatting(elapsed, expected):
    assert render_summary_line(_result(elapsed)).endswith(f"elapsed_sec={expected}")


def test_offday_messages():
    assert render_offday_message(3, 0) == "Uploaded instructor off-days (total 3 days)"
    assert render_offday_message(1, 2) == "Uploaded instructor off-days (new: 1 days, duplicate: 2 days)"


def test_course_message():
    assert render_course_message(4, 2) == "Uploaded course roster (courses: 4, instructors: 2)"
