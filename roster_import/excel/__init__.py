"""Spreadsheet decoding, header resolution and date normalization."""

from .columns import COURSE_COLUMNS, OFFDAY_COLUMNS, ColumnIndex, ColumnSpec, resolve_columns
from .dates import normalize_date
from .reader import PandasSheetCodec, SheetCodec

__all__ = [
    "ColumnIndex",
    "ColumnSpec",
    "COURSE_COLUMNS",
    "OFFDAY_COLUMNS",
    "resolve_columns",
    "normalize_date",
    "PandasSheetCodec",
    "SheetCodec",
]
