from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..excel.columns import COURSE_COLUMNS, OFFDAY_COLUMNS, ColumnSpec, with_extra_aliases

"""Config loader.

Responsibilities:
- Load YAML (config/import.yml)
- Validate against the bundled config_schema.json
- Apply defaults (error_log_dir=./logs, page_size=1000)
- Merge configured column aliases after the built-in ones
"""

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "RosterConfig",
    "load_config",
    "default_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

DEFAULT_ERROR_LOG_DIR = "./logs"
DEFAULT_PAGE_SIZE = 1000


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class RosterConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    error_log_dir: str = DEFAULT_ERROR_LOG_DIR
    page_size: int = DEFAULT_PAGE_SIZE
    # kind ("offdays" / "courses") -> field key -> extra aliases
    column_aliases: Mapping[str, Mapping[str, list[str]]] = field(default_factory=dict)

    def offday_columns(self) -> tuple[ColumnSpec, ...]:
        return with_extra_aliases(OFFDAY_COLUMNS, self.column_aliases.get("offdays"))

    def course_columns(self) -> tuple[ColumnSpec, ...]:
        return with_extra_aliases(COURSE_COLUMNS, self.column_aliases.get("courses"))


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing/invalid, or data violates the schema
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def default_config() -> RosterConfig:
    return RosterConfig()


def load_config(path: Path | str) -> RosterConfig:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"config validation failed: invalid yaml: {e}") from e

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    aliases_raw = data.get("column_aliases") or {}
    aliases = {
        kind: {key: list(values) for key, values in (fields or {}).items()}
        for kind, fields in aliases_raw.items()
    }
    return RosterConfig(
        database=db,
        error_log_dir=data.get("error_log_dir", DEFAULT_ERROR_LOG_DIR),
        page_size=data.get("page_size", DEFAULT_PAGE_SIZE),
        column_aliases=aliases,
    )
