from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Sheet model shared by the spreadsheet codec and the ingestion services.

A Sheet is the decoded first worksheet of an upload: one header row plus
data rows, each a positional list of plain Python cell values (None for an
empty cell). Column widths are only used when encoding templates.
"""

__all__ = [
    "Sheet",
]


@dataclass(frozen=True)
class Sheet:
    """One worksheet as header + rows of raw cell values."""
    name: str
    header: list[Any] | None
    rows: list[list[Any]] = field(default_factory=list)
    column_widths: list[int] | None = None  # encode 時のみ使用

    @property
    def has_header(self) -> bool:
        return bool(self.header) and any(c is not None and str(c).strip() for c in self.header)

    def as_rows(self) -> list[list[Any]]:
        """Header (if any) followed by data rows, as written to a workbook."""
        out: list[list[Any]] = []
        if self.header is not None:
            out.append(list(self.header))
        out.extend(list(r) for r in self.rows)
        return out
