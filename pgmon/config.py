"""Configuration loading for pgmon.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/pgmon/config.toml → defaults only.

The connection string itself normally comes from the environment variable
named by ``dsn_env`` (``DATABASE_URL`` unless overridden).
"""

from __future__ import annotations

import os
import sys
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pgmon.errors import ConfigError

DEFAULT_CONFIG: dict[str, Any] = {
    "dsn_env": "DATABASE_URL",
    "dsn": "",
    "view": "activity",
    "title": "PostgreSQL Monitor",
    "log_file": "",
}

_DEFAULT_PATH = Path.home() / ".config" / "pgmon" / "config.toml"


def _merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Overlay user settings on the defaults; the config is flat."""
    return {**base, **overlay}


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/pgmon/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
    """
    if path is not None:
        if not path.is_file():
            print(f"pgmon: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"pgmon: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _merge(DEFAULT_CONFIG, user_config)

    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _merge(DEFAULT_CONFIG, user_config)
        except tomllib.TOMLDecodeError:
            print(
                f"pgmon: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return dict(DEFAULT_CONFIG)


def resolve_dsn(
    config: Mapping[str, Any], environ: Mapping[str, str] | None = None
) -> str:
    """Pick the connection string: environment first, then the config file.

    Raises:
        ConfigError: If neither source provides a non-blank value.
    """
    if environ is None:
        environ = os.environ
    var = str(config.get("dsn_env") or DEFAULT_CONFIG["dsn_env"])
    dsn = environ.get(var, "").strip()
    if dsn:
        return dsn
    dsn = str(config.get("dsn") or "").strip()
    if dsn:
        return dsn
    raise ConfigError(f"{var} must be set in the environment")


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# pgmon configuration",
        "# Place this file at ~/.config/pgmon/config.toml",
        "",
        "# Environment variable holding the connection string",
        f'dsn_env = "{DEFAULT_CONFIG["dsn_env"]}"',
        "# Fallback connection string when the variable is unset",
        f'dsn = "{DEFAULT_CONFIG["dsn"]}"',
        "",
        "# Which view to display: activity or table_stats",
        f'view = "{DEFAULT_CONFIG["view"]}"',
        f'title = "{DEFAULT_CONFIG["title"]}"',
        "",
        "# Append log records here (empty = no logging)",
        f'log_file = "{DEFAULT_CONFIG["log_file"]}"',
    ]
    return "\n".join(lines) + "\n"
