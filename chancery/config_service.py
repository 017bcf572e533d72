"""Configuration service for Chancery.

Loads and saves the single JSON/YAML settings file with migrations and light
validation. Library content (characters, scenes, presets) lives in the data
directory managed by ``prompt_builder.services``; this file only carries
application settings.
"""
from __future__ import annotations

import json
import logging
import os
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from chancery.path_utils import get_config_file, get_data_root

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    pass


CURRENT_VERSION = 1

DEFAULT_CONFIG: Dict[str, Any] = {
    "version": CURRENT_VERSION,
    "data_dir": "",
    "default_generator": "ai-vibrant-image-generator",
    "logging": {"level": "INFO"},
    "seed_samples": True,
}

KNOWN_KEYS = set(DEFAULT_CONFIG)

ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class LoadedConfig:
    data: Dict[str, Any]
    warnings: List[str]
    migrated: bool
    path: str = ""

    @property
    def data_dir(self) -> Path:
        configured = str(self.data.get("data_dir") or "").strip()
        return Path(configured).expanduser() if configured else get_data_root()

    @property
    def default_generator(self) -> str:
        return self.data["default_generator"]

    @property
    def log_level(self) -> str:
        return deep_get(self.data, "logging.level") or "INFO"

    @property
    def seed_samples(self) -> bool:
        return bool(self.data.get("seed_samples", True))


def ensure_config_root(path: str) -> None:
    root = os.path.dirname(path)
    if root and not os.path.exists(root):
        os.makedirs(root, exist_ok=True)


def coerce_value(value: Any) -> Any:
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in {"true", "1", "yes", "on"}:
            return True
        if lower in {"false", "0", "no", "off"}:
            return False
    return value


def deep_get(data: Dict[str, Any], path: str) -> Any:
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def deep_set(data: Dict[str, Any], path: str, value: Any) -> None:
    current = data
    parts = path.split(".")
    for key in parts[:-1]:
        if key not in current or not isinstance(current[key], dict):
            current[key] = {}
        current = current[key]
    current[parts[-1]] = value


def load_raw_config(path: str) -> Tuple[Dict[str, Any], List[str]]:
    warnings: List[str] = []
    if not os.path.exists(path):
        return deepcopy(DEFAULT_CONFIG), warnings

    with open(path, "r", encoding="utf-8") as f:
        text = f.read()

    stripped = text.lstrip()
    if not stripped:
        return deepcopy(DEFAULT_CONFIG), warnings

    try:
        if stripped.startswith("{") or stripped.startswith("["):
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to parse settings file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be an object/dictionary.")
    return data, warnings


def migrate_v0_to_v1(data: Dict[str, Any], warnings: List[str]) -> Dict[str, Any]:
    migrated = deepcopy(DEFAULT_CONFIG)
    for key, value in data.items():
        if key == "version":
            continue
        if key not in KNOWN_KEYS:
            warnings.append(f"Deprecated or unknown field '{key}' preserved under legacy namespace.")
            migrated.setdefault("legacy", {})[key] = value
            continue
        migrated[key] = value
    migrated["version"] = 1
    return migrated


MIGRATIONS = {
    0: migrate_v0_to_v1,
}


def migrate(data: Dict[str, Any], warnings: List[str]) -> Tuple[Dict[str, Any], bool]:
    migrated = False
    version = data.get("version", 0)
    if not isinstance(version, int):
        raise ConfigError(f"Configuration version must be an integer; received {version!r}")
    while version < CURRENT_VERSION:
        migrate_fn = MIGRATIONS.get(version)
        if not migrate_fn:
            raise ConfigError(f"No migration path from version {version}")
        data = migrate_fn(data, warnings)
        version = data.get("version", version + 1)
        migrated = True
    return data, migrated


def validate(config: Dict[str, Any], warnings: List[str]) -> Dict[str, Any]:
    for key, value in DEFAULT_CONFIG.items():
        config.setdefault(key, deepcopy(value))

    for key in list(config):
        if key not in KNOWN_KEYS and key != "legacy":
            warnings.append(f"Deprecated or unknown field '{key}' preserved under legacy namespace.")
            config.setdefault("legacy", {})[key] = config.pop(key)

    generator = config.get("default_generator")
    if not isinstance(generator, str) or not generator.strip():
        raise ConfigError("default_generator must be a non-empty string")
    config["default_generator"] = generator.strip()

    data_dir = config.get("data_dir")
    if data_dir is None:
        config["data_dir"] = ""
    elif not isinstance(data_dir, str):
        raise ConfigError(f"data_dir expected string; received {type(data_dir).__name__}")

    level = deep_get(config, "logging.level")
    if not isinstance(level, str) or level.strip().upper() not in ALLOWED_LOG_LEVELS:
        warnings.append(f"Invalid logging.level '{level}' replaced with 'INFO'. Allowed: {sorted(ALLOWED_LOG_LEVELS)}")
        deep_set(config, "logging.level", "INFO")
    else:
        deep_set(config, "logging.level", level.strip().upper())

    seed = config.get("seed_samples")
    if not isinstance(seed, bool):
        warnings.append(f"Field seed_samples expected boolean; coerced from '{seed}'.")
        config["seed_samples"] = bool(coerce_value(str(seed)))

    return config


def save_config(data: Dict[str, Any], path: str) -> None:
    ensure_config_root(path)
    ext = os.path.splitext(path)[1].lower()
    if ext in {".yaml", ".yml"}:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)
    else:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)


def load_config(path: Optional[str] = None) -> LoadedConfig:
    """Read, migrate and validate the settings file, logging any warnings."""

    config_path = str(path or get_config_file())
    raw, warnings = load_raw_config(config_path)
    migrated_config, migrated = migrate(raw, warnings)
    validated = validate(migrated_config, warnings)
    for note in warnings:
        logger.warning(note)
    return LoadedConfig(validated, warnings, migrated, config_path)
