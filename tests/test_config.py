"""Tests for pgmon.config."""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

import pgmon.config as config_mod
from pgmon.config import (
    DEFAULT_CONFIG,
    _merge,
    dump_default_config,
    load_config,
    resolve_dsn,
)
from pgmon.errors import ConfigError


@pytest.fixture(autouse=True)
def _no_home_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep the developer's own ~/.config/pgmon out of the tests
    monkeypatch.setattr(config_mod, "_DEFAULT_PATH", tmp_path / "absent.toml")


class TestLoadConfigDefaults:
    def test_defaults_returned_when_no_file(self) -> None:
        cfg = load_config(None)
        assert cfg["dsn_env"] == "DATABASE_URL"
        assert cfg["view"] == "activity"
        assert cfg["title"] == "PostgreSQL Monitor"

    def test_all_default_keys_present(self) -> None:
        cfg = load_config(None)
        assert set(cfg.keys()) == set(DEFAULT_CONFIG.keys())

    def test_default_location_used(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        home_cfg = tmp_path / "config.toml"
        home_cfg.write_text('view = "table_stats"\n')
        monkeypatch.setattr(config_mod, "_DEFAULT_PATH", home_cfg)
        assert load_config(None)["view"] == "table_stats"

    def test_invalid_default_location_warns(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        home_cfg = tmp_path / "config.toml"
        home_cfg.write_text("view = \n")
        monkeypatch.setattr(config_mod, "_DEFAULT_PATH", home_cfg)
        cfg = load_config(None)
        assert cfg == DEFAULT_CONFIG
        assert "ignoring invalid TOML" in capsys.readouterr().err


class TestTomlOverlay:
    def test_overrides_scalar(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('title = "prod-db"\n')
        cfg = load_config(toml_file)
        assert cfg["title"] == "prod-db"
        assert cfg["view"] == "activity"

    def test_unknown_keys_kept(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text("extra = 1\n")
        assert load_config(toml_file)["extra"] == 1


class TestExplicitPath:
    def test_missing_explicit_path_errors(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        missing = tmp_path / "nonexistent.toml"
        with pytest.raises(SystemExit) as exc:
            load_config(missing)
        assert exc.value.code == 1
        assert "config file not found" in capsys.readouterr().err

    def test_invalid_toml_errors(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text("this is [not valid toml\n")
        with pytest.raises(SystemExit):
            load_config(bad_file)


class TestResolveDsn:
    def test_environment_wins(self) -> None:
        cfg = {**DEFAULT_CONFIG, "dsn": "postgresql://file/db"}
        env = {"DATABASE_URL": "postgresql://env/db"}
        assert resolve_dsn(cfg, env) == "postgresql://env/db"

    def test_falls_back_to_config(self) -> None:
        cfg = {**DEFAULT_CONFIG, "dsn": "postgresql://file/db"}
        assert resolve_dsn(cfg, {}) == "postgresql://file/db"

    def test_custom_variable_name(self) -> None:
        cfg = {**DEFAULT_CONFIG, "dsn_env": "PGMON_DSN"}
        env = {"PGMON_DSN": "host=db", "DATABASE_URL": "host=other"}
        assert resolve_dsn(cfg, env) == "host=db"

    def test_missing_is_config_error(self) -> None:
        with pytest.raises(ConfigError, match="DATABASE_URL must be set"):
            resolve_dsn(DEFAULT_CONFIG, {})

    def test_blank_is_config_error(self) -> None:
        with pytest.raises(ConfigError):
            resolve_dsn(DEFAULT_CONFIG, {"DATABASE_URL": "   "})

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "dbname=postgres")
        assert resolve_dsn(DEFAULT_CONFIG) == "dbname=postgres"


class TestDumpDefaultConfig:
    def test_roundtrips_defaults(self) -> None:
        parsed = tomllib.loads(dump_default_config())
        assert parsed == DEFAULT_CONFIG


class TestMerge:
    def test_scalar_overwrite(self) -> None:
        result = _merge({"a": 1, "b": 2}, {"a": 10})
        assert result == {"a": 10, "b": 2}

    def test_new_key_added(self) -> None:
        assert _merge({"a": 1}, {"b": 2}) == {"a": 1, "b": 2}

    def test_base_not_mutated(self) -> None:
        base = {"a": 1}
        _merge(base, {"a": 2})
        assert base == {"a": 1}
