from __future__ import annotations

from collections.abc import Sequence
from typing import Any

"""Exception hierarchy for roster ingestion.

Every failure that aborts an upload derives from IngestionError so the
upload boundary can turn it into a failed UploadResult. Row-level errors
carry the 1-based data row number (header row excluded) and prefix their
message with it.
"""

__all__ = [
    "IngestionError",
    "MissingColumnError",
    "InvalidDateError",
    "ValidationError",
    "EmptyInputError",
    "SpreadsheetDecodeError",
    "StoreError",
]


class IngestionError(Exception):
    """Base exception for all ingestion failures."""

    error_type = "INGESTION_ERROR"

    def __init__(self, message: str, row_number: int | None = None) -> None:
        self.message = message
        self.row_number = row_number
        if row_number is not None:
            message = f"row {row_number}: {message}"
        super().__init__(message)


class MissingColumnError(IngestionError):
    """Raised when a required column cannot be found in the header row."""

    error_type = "MISSING_COLUMN"

    def __init__(self, field: str, label: str, available: Sequence[str]) -> None:
        self.field = field
        self.label = label
        self.available = list(available)
        shown = ", ".join(self.available) if self.available else "(none)"
        super().__init__(
            f"required column '{label}' ({field}) not found; available columns: {shown}"
        )


class InvalidDateError(IngestionError):
    """Raised when a cell value cannot be interpreted as a calendar date."""

    error_type = "INVALID_DATE"

    def __init__(self, value: Any, row_number: int | None = None, reason: str | None = None) -> None:
        self.value = value
        self.type_name = type(value).__name__
        self.reason = reason
        detail = f"invalid date value {value!r} (type {self.type_name})"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail, row_number)

    def with_row(self, row_number: int) -> InvalidDateError:
        return InvalidDateError(self.value, row_number, self.reason)


class ValidationError(IngestionError):
    """Raised when a parsed row violates a domain rule."""

    error_type = "VALIDATION_ERROR"


class EmptyInputError(IngestionError):
    """Raised when an upload contains no usable data rows."""

    error_type = "EMPTY_INPUT"

    def __init__(self, message: str = "No data rows found in the Excel file") -> None:
        super().__init__(message)


class SpreadsheetDecodeError(IngestionError):
    """Raised when the uploaded bytes are not a readable workbook."""

    error_type = "DECODE_ERROR"


class StoreError(Exception):
    """Raised by persistence adapters when the database rejects an operation."""

    error_type = "DATABASE_ERROR"
