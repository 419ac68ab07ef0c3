from __future__ import annotations

from pathlib import Path

import pytest

from roster_import.config.loader import ConfigError, default_config, load_config


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.database.host == "localhost"
    assert cfg.database.port == 5432
    assert cfg.database.dsn is None
    assert cfg.error_log_dir == "./logs"
    assert cfg.page_size == 500


def test_configured_aliases_extend_columns(write_config: Path):
    cfg = load_config(write_config)
    name_spec = next(s for s in cfg.offday_columns() if s.key == "name")
    assert name_spec.aliases[-1] == "강사명"
    # courses は追加なし
    title_spec = next(s for s in cfg.course_columns() if s.key == "title")
    assert title_spec.aliases == ("교과목", "과목명")


def test_empty_file_uses_defaults(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("", encoding="utf-8")
    cfg = load_config(path)
    assert cfg == default_config()
    assert cfg.page_size == 1000
    assert cfg.error_log_dir == "./logs"


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError) as e:
        load_config(temp_workdir / "config" / "not_exists.yml")
    assert "config file not found" in str(e.value)


def test_invalid_yaml(write_config: Path):
    write_config.write_text("database: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


@pytest.mark.parametrize(
    "extra",
    [
        "extra_field: not_allowed\n",
        "page_size: 0\n",
        "page_size: many\n",
    ],
)
def test_schema_violations(write_config: Path, extra: str):
    text = write_config.read_text(encoding="utf-8").replace("page_size: 500\n", "") + extra
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_alias_must_be_list(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("name: [강사명]", "name: 강사명")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(write_config)


def test_unknown_alias_kind(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("  offdays:", "  holidays:")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(write_config)
