from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import psycopg2
import pytest

import roster_import.cli.__main__ as cli
from conftest import OFFDAY_HEADER, write_workbook
from roster_import.cli.__main__ import _build_dsn, main as cli_main
from roster_import.config.loader import DatabaseConfig

"""Live-mode CLI paths with psycopg2.connect replaced by an in-memory fake."""


class FakeCursor:
    def __init__(self, db):
        self.db = db
        self._result = []
        self.closed = False

    def execute(self, sql, params=None):
        self.db.statements.append(sql.strip().split()[0].upper())
        if sql.startswith("INSERT INTO instructors"):
            (name,) = params
            if name in self.db.instructors:
                self._result = []
            else:
                self.db.instructors[name] = len(self.db.instructors) + 1
                self._result = [(self.db.instructors[name],)]
        elif sql.startswith("SELECT id FROM instructors"):
            self._result = [(self.db.instructors[params[0]],)]
        elif sql.startswith("INSERT INTO off_days"):
            key = (params[0], params[1])
            if key in self.db.off_days:
                self._result = []
            else:
                self.db.off_days[key] = params[2]
                self._result = [(len(self.db.off_days),)]
        elif sql.startswith("SELECT id, name FROM instructors"):
            self._result = sorted(((i, n) for n, i in self.db.instructors.items()), key=lambda t: t[1])
        elif sql.startswith("SELECT date, reason FROM off_days"):
            self._result = sorted(
                (date.fromisoformat(d), r) for (iid, d), r in self.db.off_days.items() if iid == params[0]
            )
        else:
            self._result = []

    def fetchone(self):
        return self._result.pop(0) if self._result else None

    def fetchall(self):
        rows, self._result = self._result, []
        return rows

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, db):
        self.db = db
        self.autocommit = False
        self.closed = False

    def cursor(self):
        return FakeCursor(self.db)

    def close(self):
        self.closed = True


class FakeDatabase:
    def __init__(self):
        self.statements: list[str] = []
        self.instructors: dict[str, int] = {}
        self.off_days: dict[tuple[int, str], str] = {}
        self.connections: list[FakeConnection] = []
        self.dsns: list[str] = []

    def connect(self, dsn):
        self.dsns.append(dsn)
        conn = FakeConnection(self)
        self.connections.append(conn)
        return conn


@pytest.fixture()
def fake_db(monkeypatch) -> FakeDatabase:
    db = FakeDatabase()
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql://test@localhost/roster")
    monkeypatch.setattr(cli.psycopg2, "connect", db.connect)
    return db


def test_live_upload_uses_transactions(temp_workdir: Path, fake_db: FakeDatabase):
    path = write_workbook(temp_workdir / "data" / "a.xlsx", [OFFDAY_HEADER, ["김교관", "2024-01-15", "2024-01-16", "x"]])
    assert cli_main(["offdays", str(path)]) == 0

    assert fake_db.dsns == ["postgresql://test@localhost/roster"]
    (conn,) = fake_db.connections
    assert conn.autocommit is True
    assert conn.closed is True
    # スキーマ作成 -> BEGIN ... COMMIT
    assert fake_db.statements[0] == "CREATE"
    assert fake_db.statements[1] == "BEGIN"
    assert fake_db.statements[-1] == "COMMIT"
    assert fake_db.off_days == {(1, "2024-01-15"): "x", (1, "2024-01-16"): "x"}


def test_live_failure_rolls_back(temp_workdir: Path, fake_db: FakeDatabase):
    path = write_workbook(temp_workdir / "data" / "a.xlsx", [OFFDAY_HEADER, ["김교관", "2024-01-16", "2024-01-15", ""]])
    assert cli_main(["offdays", str(path)]) == 2
    # 検証エラーは永続化前に検出されるので BEGIN も発行されない
    assert "BEGIN" not in fake_db.statements
    assert fake_db.off_days == {}


def test_show_lists_off_days(temp_workdir: Path, fake_db: FakeDatabase, capsys):
    path = write_workbook(temp_workdir / "data" / "a.xlsx", [OFFDAY_HEADER, ["김교관", "2024-01-15", "2024-01-16", "x"]])
    cli_main(["offdays", str(path)])
    capsys.readouterr()

    assert cli_main(["--json", "show"]) == 0
    (line,) = capsys.readouterr().out.splitlines()
    assert json.loads(line) == {
        "instructorName": "김교관",
        "offDays": [{"date": "2024-01-15", "reason": "x"}, {"date": "2024-01-16", "reason": "x"}],
    }


def test_init_db(temp_workdir: Path, fake_db: FakeDatabase, capsys):
    assert cli_main(["init-db"]) == 0
    assert fake_db.statements == ["CREATE"]
    assert "INFO schema ready" in capsys.readouterr().out


def test_schema_failure_is_fatal(temp_workdir: Path, fake_db: FakeDatabase, monkeypatch):
    def broken(self, sql, params=None):
        raise psycopg2.ProgrammingError("permission denied for schema public")

    monkeypatch.setattr(FakeCursor, "execute", broken)
    path = write_workbook(temp_workdir / "data" / "a.xlsx", [OFFDAY_HEADER, ["김교관", "2024-01-15", "2024-01-15", ""]])
    assert cli_main(["offdays", str(path)]) == 1


def test_build_dsn_precedence(monkeypatch):
    for var in ("DATABASE_URL", "PGDSN", "PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE"):
        monkeypatch.delenv(var, raising=False)
    cfg = DatabaseConfig(host="db", port=6543, user="u", password="p", database="roster")
    assert _build_dsn(cfg) == "host=db port=6543 user=u dbname=roster password=p"

    monkeypatch.setenv("PGHOST", "envhost")
    assert _build_dsn(cfg).startswith("host=envhost port=6543")

    assert _build_dsn(DatabaseConfig(dsn="postgresql://cfg/roster")) == "postgresql://cfg/roster"
    monkeypatch.setenv("PGDSN", "postgresql://pgdsn/roster")
    assert _build_dsn(DatabaseConfig(dsn="postgresql://cfg/roster")) == "postgresql://pgdsn/roster"
    monkeypatch.setenv("DATABASE_URL", "postgresql://url/roster")
    assert _build_dsn(cfg) == "postgresql://url/roster"


def test_build_dsn_defaults(monkeypatch):
    for var in ("DATABASE_URL", "PGDSN", "PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE"):
        monkeypatch.delenv(var, raising=False)
    assert _build_dsn(DatabaseConfig()) == "host=localhost port=5432 user=postgres dbname=postgres"
