from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..errors import MissingColumnError

"""Header row -> logical field resolution.

Each logical field has a canonical (Korean) label and an ordered alias list.
Matching is exact after trimming: the canonical label is tried first, then
the aliases in priority order; the first header position that matches wins.
A required field without a match aborts ingestion with MissingColumnError
before any row is looked at. Optional fields simply resolve to "absent".
"""

__all__ = [
    "ColumnSpec",
    "ColumnIndex",
    "resolve_columns",
    "with_extra_aliases",
    "OFFDAY_COLUMNS",
    "COURSE_COLUMNS",
]


@dataclass(frozen=True)
class ColumnSpec:
    key: str  # 論理フィールド名
    label: str  # 正式ヘッダ名
    aliases: tuple[str, ...] = ()
    required: bool = True

    @property
    def candidates(self) -> tuple[str, ...]:
        return (self.label, *self.aliases)


class ColumnIndex(Mapping[str, int]):
    """Immutable logical field -> 0-based column position mapping."""

    def __init__(self, positions: Mapping[str, int]) -> None:
        self._positions = dict(positions)

    def __getitem__(self, key: str) -> int:
        return self._positions[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._positions)

    def __len__(self) -> int:
        return len(self._positions)

    def __repr__(self) -> str:
        return f"ColumnIndex({self._positions!r})"

    def cell(self, row: Sequence[Any] | None, key: str) -> Any:
        """Value of ``key`` in ``row``; None when the field is absent or the row is short."""
        pos = self._positions.get(key)
        if row is None or pos is None or pos >= len(row):
            return None
        return row[pos]


OFFDAY_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("name", "이름", ("성명", "교관명", "교관")),
    ColumnSpec("start_date", "시작날짜", ("시작일", "시작", "휴가시작일", "휴가시작")),
    ColumnSpec("end_date", "종료날짜", ("종료일", "종료", "휴가종료일", "휴가종료")),
    ColumnSpec("remark", "비고", ("사유", "휴가사유", "내용"), required=False),
)

COURSE_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("category", "구분"),
    ColumnSpec("title", "과목", ("교과목", "과목명")),
    ColumnSpec("hours", "시수"),
    ColumnSpec("instructors", "담당교관", ("교관", "담당")),
    ColumnSpec("pre_assignment", "선배정", required=False),
    ColumnSpec("evaluation", "평가", ("평가여부",), required=False),
)


def with_extra_aliases(
    specs: Sequence[ColumnSpec], extra: Mapping[str, Sequence[str]] | None
) -> tuple[ColumnSpec, ...]:
    """Append configured aliases (lowest priority) to the matching specs."""
    if not extra:
        return tuple(specs)
    out = []
    for spec in specs:
        added = tuple(a for a in extra.get(spec.key, ()) if a not in spec.candidates)
        out.append(ColumnSpec(spec.key, spec.label, spec.aliases + added, spec.required))
    return tuple(out)


def _find(labels: list[str | None], candidates: Sequence[str]) -> int | None:
    for candidate in candidates:
        for pos, label in enumerate(labels):
            if label is not None and label == candidate:
                return pos
    return None


def resolve_columns(header: Sequence[Any] | None, specs: Sequence[ColumnSpec]) -> ColumnIndex:
    """Build a ColumnIndex from a header row.

    Raises:
        MissingColumnError: when a required field matches no header cell.
    """
    labels = [None if c is None else str(c).strip() for c in (header or [])]
    positions: dict[str, int] = {}
    for spec in specs:
        pos = _find(labels, spec.candidates)
        if pos is None:
            if spec.required:
                raise MissingColumnError(spec.key, spec.label, [lbl for lbl in labels if lbl])
            continue
        positions[spec.key] = pos
    return ColumnIndex(positions)
