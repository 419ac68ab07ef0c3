from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import ConfigError, DatabaseConfig, RosterConfig, default_config, load_config
from ..db.store import MemoryStore, OffDayStore, PostgresStore
from ..errors import StoreError
from ..excel.reader import PandasSheetCodec
from ..excel.template import TEMPLATE_FILE_NAME, build_offday_template
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.processing_result import UploadResult
from ..services.orchestrator import ProcessingError, collect_input_files, process_files
from ..services.summary import render_summary_line

"""CLI entrypoint.

    roster-import [--config PATH] [--debug] [--json] offdays FILE_OR_DIR...
    roster-import [--config PATH] [--debug] [--json] courses FILE_OR_DIR...
    roster-import template [OUT.xlsx]
    roster-import init-db
    roster-import show

Exit codes: 0 every file uploaded, 2 at least one file failed, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = Path("config/import.yml")


def _build_dsn(db_cfg: DatabaseConfig) -> str:
    """Resolve the connection string.

    優先順位 (.env は main() 冒頭で上書き読込済み):
        1. DATABASE_URL / PGDSN
        2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. config の database セクション (不足分のフォールバック)
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def _connect(cfg: RosterConfig) -> Any:  # pragma: no cover (tested via integration)
    conn = psycopg2.connect(_build_dsn(cfg.database))
    # トランザクション境界は PostgresStore.transaction() が BEGIN/COMMIT で管理する
    conn.autocommit = True
    return conn


@contextmanager
def _db_connection(cfg: RosterConfig, conn: Any = None) -> Iterator[Any]:  # pragma: no cover
    """Yield a cursor on an autocommit connection, closing both afterwards."""
    if conn is None:
        conn = _connect(cfg)
    cur = conn.cursor()
    try:
        yield cur
    finally:
        cur.close()
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env (override=True: .env wins over the existing environment)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="roster-import", description="Instructor roster Excel importer")
    p.add_argument("--config", type=Path, default=None, help="YAML config (default: config/import.yml if present)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--json", action="store_true", help="Print each upload result as a JSON line")
    sub = p.add_subparsers(dest="command", required=True)

    off = sub.add_parser("offdays", help="Upload instructor off-day workbooks")
    off.add_argument("paths", nargs="+", type=Path, metavar="FILE_OR_DIR")
    crs = sub.add_parser("courses", help="Upload course roster workbooks (replaces the roster)")
    crs.add_argument("paths", nargs="+", type=Path, metavar="FILE_OR_DIR")
    tpl = sub.add_parser("template", help="Write the off-day upload template")
    tpl.add_argument("output", nargs="?", type=Path, default=Path(TEMPLATE_FILE_NAME), metavar="OUT.xlsx")
    sub.add_parser("init-db", help="Create the tables if they do not exist")
    sub.add_parser("show", help="List stored instructors and their off-days")
    return p.parse_args(argv)


def _resolve_config(path: Path | None) -> RosterConfig:
    if path is not None:
        return load_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return default_config()


def _write_template(output: Path, logger: logging.Logger) -> int:
    content = PandasSheetCodec().encode(build_offday_template())
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(content)
    except OSError as e:
        logger.error(f"template: {e}")
        return EXIT_FATAL
    logger.info(f"template written: {output}")
    return EXIT_SUCCESS_ALL


def _init_db(cfg: RosterConfig, logger: logging.Logger) -> int:
    try:
        with _db_connection(cfg) as cur:
            PostgresStore(cur, page_size=cfg.page_size).ensure_schema()
    except (psycopg2.Error, StoreError) as e:
        logger.error(f"init-db: {e}")
        return EXIT_FATAL
    logger.info("schema ready")
    return EXIT_SUCCESS_ALL


def _show(cfg: RosterConfig, as_json: bool, logger: logging.Logger) -> int:
    try:
        with _db_connection(cfg) as cur:
            store = PostgresStore(cur, page_size=cfg.page_size)
            listing = [
                (name, store.list_off_days(instructor_id))
                for instructor_id, name in store.list_instructors()
            ]
    except (psycopg2.Error, StoreError) as e:
        logger.error(f"show: {e}")
        return EXIT_FATAL

    for name, entries in listing:
        if as_json:
            payload = {"instructorName": name, "offDays": [e.to_dict() for e in entries]}
            print(json.dumps(payload, ensure_ascii=False))
        else:
            days = ", ".join(e.date for e in entries) or "-"
            logger.info(f"{name}: {days}")
    return EXIT_SUCCESS_ALL


def _run_upload(
    kind: str,
    paths: list[Path],
    cfg: RosterConfig,
    store: OffDayStore,
    as_json: bool,
    logger: logging.Logger,
) -> int:
    error_log = ErrorLogBuffer(cfg.error_log_dir)

    def _report(path: Path, result: UploadResult) -> None:
        if as_json:
            print(json.dumps({"file": path.name, **result.to_dict()}, ensure_ascii=False))
        elif result.success:
            logger.info(f"{path.name}: {result.message}")
        else:
            logger.error(f"{path.name}: {result.message}")

    result = process_files(paths, kind, store, config=cfg, error_log=error_log, on_result=_report)

    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.warning(f"error log could not be written: {e}")
    else:
        if log_path is not None:
            logger.info(f"error log: {log_path}")

    summary_line = render_summary_line(result)
    # log_summary が "SUMMARY " ラベルを付与するため本文のみ渡す
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # 空リスト [] はそのまま使う (None の時のみ sys.argv を読む)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        logger = setup_logging(debug=True)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)

    try:
        cfg = _resolve_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "template":
        return _write_template(args.output, logger)
    if args.command == "init-db":
        return _init_db(cfg, logger)
    if args.command == "show":
        return _show(cfg, args.json, logger)

    try:
        paths = collect_input_files(args.paths)
    except ProcessingError as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL

    # DISABLE_DB_CONNECT=1 で DB 接続を完全に無効化 (テスト用)
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
        return _run_upload(args.command, paths, cfg, MemoryStore(), args.json, logger)

    try:
        conn = _connect(cfg)
    except psycopg2.OperationalError as e:
        logger.info(f"DB connection failed -> fallback to mock mode: {e}")
        return _run_upload(args.command, paths, cfg, MemoryStore(), args.json, logger)

    with _db_connection(cfg, conn) as cur:
        store = PostgresStore(cur, page_size=cfg.page_size)
        try:
            store.ensure_schema()
        except StoreError as e:
            logger.error(f"schema: {e}")
            return EXIT_FATAL
        logger.debug("mode=live")
        return _run_upload(args.command, paths, cfg, store, args.json, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
