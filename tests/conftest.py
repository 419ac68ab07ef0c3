# Shared pytest fixtures
from __future__ import annotations

import io
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from roster_import.db.store import MemoryStore
from roster_import.excel.columns import OFFDAY_COLUMNS, resolve_columns
from roster_import.logging import init as logging_init

OFFDAY_HEADER = ["이름", "시작날짜", "종료날짜", "비고"]
COURSE_HEADER = ["구분", "과목", "시수", "담당교관", "선배정", "평가"]


def make_workbook(rows: Sequence[Sequence[Any]], sheet_name: str = "Sheet1") -> bytes:
    """Build real .xlsx bytes; rows[0] is the header row."""
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        pd.DataFrame([list(r) for r in rows]).to_excel(
            writer, sheet_name=sheet_name, header=False, index=False
        )
    return buf.getvalue()


def write_workbook(path: Path, rows: Sequence[Sequence[Any]], sheet_name: str = "Sheet1") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(make_workbook(rows, sheet_name))
    return path


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: roster
error_log_dir: ./logs
page_size: 500
column_aliases:
  offdays:
    name: [강사명]
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def offday_index():
    return resolve_columns(OFFDAY_HEADER, OFFDAY_COLUMNS)


@pytest.fixture(autouse=True)
def _reset_logging():
    logging_init.reset_logging()
    yield
    logging_init.reset_logging()


@pytest.fixture()
def no_db(monkeypatch):
    # CLI はモック (MemoryStore) で動かす
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
