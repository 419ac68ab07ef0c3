from __future__ import annotations

from ..models.processing_result import RunResult

"""Message and SUMMARY line rendering.

SUMMARY line format:
SUMMARY files={total} success={success} failed={failed} new={new}
duplicate={duplicate} elapsed_sec={elapsed}
"""


def render_offday_message(total_new: int, total_duplicate: int) -> str:
    """Human readable result of an off-day upload."""
    if total_duplicate > 0:
        return (
            "Uploaded instructor off-days "
            f"(new: {total_new} days, duplicate: {total_duplicate} days)"
        )
    return f"Uploaded instructor off-days (total {total_new} days)"


def render_course_message(course_count: int, instructor_count: int) -> str:
    return (
        "Uploaded course roster "
        f"(courses: {course_count}, instructors: {instructor_count})"
    )


def _format_seconds(value: float) -> str:
    # 指数表記を避けつつ整数値は整数で表示
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: RunResult) -> str:
    """Render the SUMMARY line for a CLI run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = RunResult(
        ...     success_files=1, failed_files=0, total_new=3, total_duplicate=0,
        ...     start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY files=1 success=1 failed=0 new=3 duplicate=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY files={result.total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"new={result.total_new} "
        f"duplicate={result.total_duplicate} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
