from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from pathlib import Path

from ..config.loader import RosterConfig, default_config
from ..db.store import OffDayStore
from ..errors import IngestionError
from ..excel.reader import PandasSheetCodec, SheetCodec
from ..logging.error_log import ErrorLogBuffer
from ..models.processing_result import FileStat, RunResult, UploadResult
from .course_ingestion import upload_courses
from .offday_ingestion import upload_off_days
from .progress import ProgressTracker

"""Multi-file upload orchestration for the CLI.

1. collect the .xlsx workbooks named on the command line (directories are
   scanned non-recursively)
2. upload each one in its own store transaction; a failed workbook never
   stops the others
3. aggregate the per-file outcomes into a RunResult for the SUMMARY line
"""

__all__ = [
    "ProcessingError",
    "UPLOAD_KINDS",
    "scan_excel_files",
    "collect_input_files",
    "process_files",
]

logger = logging.getLogger(__name__)

UPLOAD_KINDS = ("offdays", "courses")


class ProcessingError(Exception):
    """Fatal error that prevents a run from starting."""


def scan_excel_files(directory: Path) -> list[Path]:
    """Scan directory for .xlsx files (non-recursive, sorted by name).

    Raises:
        ProcessingError: directory missing or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(
            (p for p in directory.iterdir() if p.is_file() and p.suffix == ".xlsx"),
            key=lambda p: p.name,
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def collect_input_files(paths: Iterable[Path | str]) -> list[Path]:
    files: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(scan_excel_files(path))
        elif path.is_file():
            files.append(path)
        else:
            raise ProcessingError(f"File not found: {path}")
    return files


def _upload(
    kind: str,
    content: bytes,
    store: OffDayStore,
    codec: SheetCodec,
    config: RosterConfig,
    error_log: ErrorLogBuffer,
    file_name: str,
) -> UploadResult:
    if kind == "offdays":
        return upload_off_days(
            content,
            store,
            codec=codec,
            columns=config.offday_columns(),
            error_log=error_log,
            file_name=file_name,
        )
    return upload_courses(
        content,
        store,
        codec=codec,
        columns=config.course_columns(),
        error_log=error_log,
        file_name=file_name,
    )


def _read_bytes(path: Path, error_log: ErrorLogBuffer) -> bytes | None:
    try:
        return path.read_bytes()
    except OSError as e:
        logger.error("%s: cannot read file: %s", path.name, e)
        error_log.record_exception(path.name, "<FILE_LEVEL>", IngestionError(f"cannot read file: {e}"))
        return None


def process_files(
    paths: Sequence[Path],
    kind: str,
    store: OffDayStore,
    *,
    codec: SheetCodec | None = None,
    config: RosterConfig | None = None,
    error_log: ErrorLogBuffer | None = None,
    on_result: Callable[[Path, UploadResult], None] | None = None,
    progress: bool | None = None,
) -> RunResult:
    """Upload every workbook in ``paths`` and aggregate the outcome.

    ``on_result`` is called after each file with its UploadResult. The error
    log is not flushed here; the caller owns it.

    Raises:
        ProcessingError: unknown upload kind
    """
    if kind not in UPLOAD_KINDS:
        raise ProcessingError(f"unknown upload kind: {kind}")
    codec = codec or PandasSheetCodec()
    config = config or default_config()
    error_log = error_log if error_log is not None else ErrorLogBuffer(config.error_log_dir)

    start_time = datetime.now(UTC)
    file_stats: list[FileStat] = []
    success_count = 0
    failed_count = 0
    total_new = 0
    total_duplicate = 0

    with ProgressTracker(len(paths), enabled=progress) as tracker:
        for path in paths:
            tracker.start_file(path)
            file_start = datetime.now(UTC)

            content = _read_bytes(path, error_log)
            if content is None:
                result = (
                    UploadResult.offday_failure(f"cannot read file: {path.name}")
                    if kind == "offdays"
                    else UploadResult.course_failure(f"cannot read file: {path.name}")
                )
            else:
                result = _upload(kind, content, store, codec, config, error_log, path.name)

            if kind == "offdays":
                new = result.off_day_count or 0
                duplicate = result.duplicate_count or 0
            else:
                new = result.course_count or 0
                duplicate = 0

            if result.success:
                success_count += 1
                total_new += new
                total_duplicate += duplicate
            else:
                failed_count += 1

            elapsed = (datetime.now(UTC) - file_start).total_seconds()
            file_stats.append(
                FileStat(
                    file_name=path.name,
                    status="success" if result.success else "failed",
                    new_rows=new if result.success else 0,
                    duplicate_rows=duplicate if result.success else 0,
                    elapsed_seconds=elapsed,
                    message=result.message,
                )
            )
            tracker.finish_file(result.success, new=total_new, duplicate=total_duplicate)
            if on_result is not None:
                on_result(path, result)

    end_time = datetime.now(UTC)
    return RunResult(
        success_files=success_count,
        failed_files=failed_count,
        total_new=total_new,
        total_duplicate=total_duplicate,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )
