"""Shared path utilities for claude-token-usage-monitor."""

from __future__ import annotations

import os
from pathlib import Path

APP_DIR_NAME = "claude-token-usage-monitor"


def get_default_database_path() -> Path:
    """Return the default DuckDB path following XDG data directory conventions."""
    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        base_data_dir = Path(xdg_data_home).expanduser()
    else:
        base_data_dir = Path("~/.local/share").expanduser()
    return base_data_dir / APP_DIR_NAME / "token_usage.duckdb"


def get_default_pricing_path() -> Path:
    """Return the default pricing override path following XDG config conventions."""
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        base_config_dir = Path(xdg_config_home).expanduser()
    else:
        base_config_dir = Path("~/.config").expanduser()
    return base_config_dir / APP_DIR_NAME / "pricing.json"


def get_default_projects_root() -> Path:
    """Return the directory holding Claude transcript JSONL files.

    Honors `CLAUDE_CONFIG_DIR` the same way the assistant client does.
    """
    config_dir = os.environ.get("CLAUDE_CONFIG_DIR")
    if config_dir:
        return Path(config_dir).expanduser() / "projects"
    return Path("~/.claude/projects").expanduser()
