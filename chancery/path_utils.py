"""Platform-aware path utilities for Chancery.

Provides a single source of truth for data, config, and log paths so
Windows entry points can map to APPDATA while Unix-like platforms continue
to use XDG-style defaults.
"""
from __future__ import annotations

import os
import platform
from pathlib import Path


def _is_windows() -> bool:
    return platform.system().lower().startswith("windows")


def get_config_root() -> Path:
    """Return the base configuration directory.

    Environment overrides (CHANCERY_CONFIG_DIR) take precedence. On Windows we
    align with %APPDATA%\\Chancery\\config; otherwise ~/.config/chancery is used.
    """

    override = os.environ.get("CHANCERY_CONFIG_DIR")
    if override:
        return Path(override).expanduser()

    if _is_windows():
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "Chancery" / "config"

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config).expanduser() / "chancery"
    return Path.home() / ".config" / "chancery"


def get_config_file() -> Path:
    """Return the settings file path."""

    override = os.environ.get("CHANCERY_CONFIG_FILE")
    if override:
        return Path(override).expanduser()
    return get_config_root() / "config.yaml"


def get_data_root() -> Path:
    """Return the directory holding the character/scene library files."""

    override = os.environ.get("CHANCERY_DATA_DIR")
    if override:
        return Path(override).expanduser()

    if _is_windows():
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "Chancery" / "data"

    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data).expanduser() / "chancery"
    return Path.home() / ".local" / "share" / "chancery"


def get_log_path() -> Path:
    """Return the primary log path."""

    override = os.environ.get("CHANCERY_LOG_PATH")
    if override:
        return Path(override).expanduser()

    if _is_windows():
        local_appdata = os.environ.get("LOCALAPPDATA")
        if local_appdata:
            return Path(local_appdata) / "Chancery" / "logs" / "chancery.log"

    return get_config_root() / "chancery.log"


def ensure_file_path(path: Path) -> Path:
    """Ensure the parent directory exists and the file is present."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch(exist_ok=True)
    return path
