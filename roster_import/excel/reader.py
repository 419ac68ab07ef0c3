from __future__ import annotations

import io
from collections.abc import Sequence
from typing import Any, Protocol

import pandas as pd
from openpyxl.utils import get_column_letter

from ..errors import SpreadsheetDecodeError
from ..models.sheet import Sheet

"""Spreadsheet codec.

The ingestion services never touch pandas directly: they receive a codec
with ``decode(bytes) -> Sheet`` and ``encode(list[Sheet]) -> bytes``.

Decode rules:
- only the first worksheet is read
- row 1 is the header row, rows 2.. are data rows
- empty cells become None; text such as "NA" is kept as text
- rows that are entirely empty at the end of the sheet are dropped; blank
  rows in the middle are kept so row numbers stay aligned with the sheet
"""

__all__ = [
    "SheetCodec",
    "PandasSheetCodec",
]


class SheetCodec(Protocol):
    def decode(self, content: bytes) -> Sheet: ...

    def encode(self, sheets: Sequence[Sheet]) -> bytes: ...


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


def _frame_to_rows(df: pd.DataFrame) -> list[list[Any]]:
    cleaned = df.astype(object).where(pd.notna(df), None)
    rows: list[list[Any]] = cleaned.values.tolist()
    # 末尾の完全空行のみ除去 (途中の空行は行番号維持のため残す)
    while rows and all(_is_blank(v) for v in rows[-1]):
        rows.pop()
    return rows


class PandasSheetCodec:
    """SheetCodec backed by pandas (openpyxl engine)."""

    def __init__(self, engine: str = "openpyxl") -> None:
        self.engine = engine

    def decode(self, content: bytes) -> Sheet:
        if not content:
            raise SpreadsheetDecodeError("uploaded file is empty")
        try:
            xls = pd.ExcelFile(io.BytesIO(content), engine=self.engine)
            sheet_name = str(xls.sheet_names[0])
            # ヘッダなしで生読み; dtype=object で整数列の float 化を防ぐ
            # 空セルのみ NaN 扱い ("NA" 等の文字列は既定 NaN 変換から除外)
            df = xls.parse(sheet_name, header=None, dtype=object, keep_default_na=False, na_values=[""])
        except Exception as e:
            raise SpreadsheetDecodeError(f"could not read Excel file: {e}") from e

        rows = _frame_to_rows(df)
        if not rows:
            return Sheet(name=sheet_name, header=None, rows=[])
        return Sheet(name=sheet_name, header=rows[0], rows=rows[1:])

    def encode(self, sheets: Sequence[Sheet]) -> bytes:
        buf = io.BytesIO()
        with pd.ExcelWriter(buf, engine=self.engine) as writer:
            for sheet in sheets:
                df = pd.DataFrame(sheet.as_rows())
                df.to_excel(writer, sheet_name=sheet.name, header=False, index=False)
                if sheet.column_widths:
                    ws = writer.sheets[sheet.name]
                    for idx, width in enumerate(sheet.column_widths, start=1):
                        ws.column_dimensions[get_column_letter(idx)].width = width
        return buf.getvalue()
