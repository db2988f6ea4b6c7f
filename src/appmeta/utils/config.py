"""Helpers for loading the user configuration file (~/.appmeta/config.json)."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Final

CONFIG_DIR = Path.home() / ".appmeta"
CONFIG_FILE = CONFIG_DIR / "config.json"

ANDROID_ICON_DENSITY_KEY: Final[str] = "android_icon_density"
DEFAULT_ANDROID_ICON_DENSITY: Final[int] = 720


@lru_cache(maxsize=1)
def load_config() -> dict[str, Any]:
    """Load configuration data from disk (cached)."""

    if not CONFIG_FILE.exists():
        return {}

    try:
        raw = CONFIG_FILE.read_text()
    except OSError:
        return {}

    try:
        data = json.loads(raw)
    except ValueError:
        return {}

    if isinstance(data, dict):
        return data

    return {}


def get_config_value(key: str, default: Any | None = None) -> Any | None:
    """Fetch a configuration value by key."""

    return load_config().get(key, default)


def get_android_icon_density() -> int:
    """Target density for Android icon lookup (config override or 720)."""

    value = get_config_value(ANDROID_ICON_DENSITY_KEY)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return DEFAULT_ANDROID_ICON_DENSITY


def reload_config() -> None:
    """Force the cached configuration to be reloaded on next access."""

    load_config.cache_clear()
