from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .db import DEFAULT_BUSY_TIMEOUT_MS, DEFAULT_DB_PATH

DEFAULT_CONFIG_PATH = Path("~/.config/andtask/config.json").expanduser()

CONFIG_ENV_OVERRIDES = {
    "db_path": "ANDTASK_DB_PATH",
    "search_limit": "ANDTASK_SEARCH_LIMIT",
    "busy_timeout_ms": "ANDTASK_BUSY_TIMEOUT_MS",
}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("ANDTASK_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class AndtaskConfig:
    db_path: str = field(default_factory=lambda: str(DEFAULT_DB_PATH))
    search_limit: int = 50
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS


_INT_KEYS = {"search_limit", "busy_timeout_ms"}


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def load_config(path: Path | None = None) -> AndtaskConfig:
    cfg = AndtaskConfig()
    try:
        data = read_config_file(path)
    except ValueError as exc:
        warnings.warn(f"Ignoring {get_config_path(path)}: {exc}", RuntimeWarning, stacklevel=2)
        data = {}
    cfg = _apply_dict(cfg, data)
    cfg = _apply_env(cfg)
    return cfg


def _apply_dict(cfg: AndtaskConfig, data: dict[str, Any]) -> AndtaskConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in _INT_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key == "db_path" and isinstance(value, str) and value.strip():
            cfg.db_path = value.strip()
    return cfg


def _apply_env(cfg: AndtaskConfig) -> AndtaskConfig:
    overrides = get_env_overrides()
    if overrides.get("db_path", "").strip():
        cfg.db_path = overrides["db_path"].strip()
    for key in _INT_KEYS:
        setattr(cfg, key, _parse_int(overrides.get(key), getattr(cfg, key), key=key))
    return cfg
