"""Search defaults and settings helpers."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger("uvicorn.error")

CONFIG_ENV_VAR = "SESSION_FINDER_CONFIG"
ENV_PREFIX = "SESSION_FINDER_"

# Safety valve for the date-set backtracking; past this many branch decisions
# the search stops and reports a partial answer.
DEFAULT_SEARCH_STEP_LIMIT = 150000
DEFAULT_WEEKDAY_HOURS = 3
DEFAULT_HOLIDAY_HOURS = 15
DEFAULT_MAX_RESULTS = 500
DEFAULT_PROGRESS_INTERVAL = 1000
DEFAULT_SORT_MODE = "holiday-first"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "step_limit": DEFAULT_SEARCH_STEP_LIMIT,
    "weekday_hours": DEFAULT_WEEKDAY_HOURS,
    "holiday_hours": DEFAULT_HOLIDAY_HOURS,
    "max_results": DEFAULT_MAX_RESULTS,
    "progress_interval": DEFAULT_PROGRESS_INTERVAL,
    "sort_mode": DEFAULT_SORT_MODE,
    "max_workers": 1,
}

_INT_KEYS = ("step_limit", "weekday_hours", "holiday_hours", "max_results", "progress_interval", "max_workers")


def load_config_file(path: Path | str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        logger.warning("Ignoring search config %s because it does not contain key/value mappings", path)
        return {}
    return normalize_keys(data)


def normalize_keys(values: Dict[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for key, value in values.items():
        normalized_key = str(key).replace("-", "_").lower()
        if isinstance(value, dict):
            normalized[normalized_key] = normalize_keys(value)
        else:
            normalized[normalized_key] = value
    return normalized


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for key in DEFAULT_SETTINGS:
        raw = os.getenv(ENV_PREFIX + key.upper())
        if raw is None or raw.strip() == "":
            continue
        overrides[key] = raw.strip()
    return overrides


def _coerce(settings: Dict[str, Any]) -> Dict[str, Any]:
    for key in _INT_KEYS:
        value = settings.get(key)
        if value is None:
            continue
        # Only the result cap may be switched off.
        if key == "max_results" and isinstance(value, str) and value.lower() in ("none", "unbounded"):
            settings[key] = None
            continue
        settings[key] = int(value)
    return settings


def get_settings(config_path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Defaults, then the YAML file, then ``SESSION_FINDER_*`` env vars."""
    settings = dict(DEFAULT_SETTINGS)
    path = config_path or os.getenv(CONFIG_ENV_VAR)
    if path:
        if Path(path).exists():
            settings.update(load_config_file(path))
        else:
            logger.warning("search.config.missing path=%s", path)
    settings.update(_env_overrides())
    return _coerce(settings)


__all__ = [
    "DEFAULT_SEARCH_STEP_LIMIT",
    "DEFAULT_SETTINGS",
    "get_settings",
    "load_config_file",
    "normalize_keys",
]
