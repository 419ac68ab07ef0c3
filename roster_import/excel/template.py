from __future__ import annotations

from datetime import date, timedelta

from ..models.sheet import Sheet
from .columns import OFFDAY_COLUMNS

"""Off-day upload template.

Convenience export only: a data sheet with the canonical header labels, three
example rows dated in the coming months and a few blank rows, followed by a
usage-instructions sheet. The example rows parse back into valid requests.
"""

__all__ = [
    "OFFDAY_SHEET_NAME",
    "INSTRUCTIONS_SHEET_NAME",
    "TEMPLATE_FILE_NAME",
    "build_offday_template",
]

OFFDAY_SHEET_NAME = "교관휴무일"
INSTRUCTIONS_SHEET_NAME = "사용법"
TEMPLATE_FILE_NAME = "instructor-offdays-template.xlsx"
BLANK_ROWS = 5

INSTRUCTIONS = [
    "교관 휴무일 업로드 양식 사용법",
    "",
    "1. 컬럼 설명:",
    "   - 이름: 교관의 이름을 입력하세요",
    "   - 시작날짜: 휴무 시작 날짜 (YYYY-MM-DD 형식)",
    "   - 종료날짜: 휴무 종료 날짜 (YYYY-MM-DD 형식)",
    "   - 비고: 휴무 사유 (선택사항)",
    "",
    "2. 주의사항:",
    "   - 날짜는 YYYY-MM-DD 형식으로 입력하세요 (예: 2024-01-15)",
    "   - 시작날짜는 종료날짜보다 이전이어야 합니다",
    "   - 시작날짜부터 종료날짜까지 모든 날짜가 휴무일로 등록됩니다",
    "   - 이미 등록된 휴무일은 중복 등록되지 않습니다",
    "",
    "3. 예시:",
    "   이름: 김교관",
    "   시작날짜: 2024-01-15",
    "   종료날짜: 2024-01-17",
    "   비고: 개인사유",
    "   → 2024-01-15, 2024-01-16, 2024-01-17 총 3일이 휴무일로 등록됩니다",
]


def _first_of_next_month(d: date) -> date:
    return (d.replace(day=1) + timedelta(days=32)).replace(day=1)


def build_offday_template(today: date | None = None) -> list[Sheet]:
    """Return the template sheets (data sheet first, instructions second)."""
    today = today or date.today()
    next_month = _first_of_next_month(today)
    month_after = _first_of_next_month(next_month)

    header = [spec.label for spec in OFFDAY_COLUMNS]
    examples = [
        ["김교관", next_month.replace(day=15).isoformat(), next_month.replace(day=17).isoformat(), "개인사유"],
        ["이교관", next_month.replace(day=20).isoformat(), next_month.replace(day=20).isoformat(), "병가"],
        ["박교관", month_after.replace(day=5).isoformat(), month_after.replace(day=10).isoformat(), "연차휴가"],
    ]
    blanks = [["", "", "", ""] for _ in range(BLANK_ROWS)]

    data_sheet = Sheet(
        name=OFFDAY_SHEET_NAME,
        header=header,
        rows=examples + blanks,
        column_widths=[15, 15, 15, 20],
    )
    instructions = Sheet(
        name=INSTRUCTIONS_SHEET_NAME,
        header=[INSTRUCTIONS[0]],
        rows=[[line] for line in INSTRUCTIONS[1:]],
        column_widths=[80],
    )
    return [data_sheet, instructions]
