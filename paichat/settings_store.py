"""
Settings store utilities.

Persists client preferences to ~/.paichat/config.json and bridges env <-> config
so `paichat connect` only has to be run once.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

CONFIG_DIR = Path.home() / ".paichat"
CONFIG_PATH = CONFIG_DIR / "config.json"

RELAY_URL_KEY = "relay_url"
HISTORY_PATH_KEY = "history_path"

_ENV_KEYS = {
    RELAY_URL_KEY: "PAICHAT_RELAY_URL",
    HISTORY_PATH_KEY: "PAICHAT_HISTORY_PATH",
}


def _ensure_dir() -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True, mode=0o700)


def load_config() -> dict[str, Any]:
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}
    return {}


def save_config(config: dict[str, Any]) -> None:
    _ensure_dir()
    try:
        with open(CONFIG_PATH, "w", encoding="utf-8") as handle:
            json.dump(config, handle, indent=2)
    except PermissionError:
        return


def set_value(key: str, value: str | None) -> None:
    if not value:
        return
    config = load_config()
    config[key] = value
    save_config(config)


def get_value(key: str) -> str | None:
    return load_config().get(key)


def apply_config_defaults() -> None:
    """
    Apply persisted preferences to the environment where it has no value.

    Explicit environment variables always win over the config file.
    """
    config = load_config()
    for key, env_name in _ENV_KEYS.items():
        if not os.getenv(env_name) and config.get(key):
            os.environ[env_name] = str(config[key])


def clear_config() -> None:
    """Remove persisted config file."""
    try:
        if CONFIG_PATH.exists():
            CONFIG_PATH.unlink()
    except OSError:
        return
