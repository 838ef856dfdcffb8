"""Persistent JSON settings for the command-line front end.

Stores default walk and reconciliation preferences. The core modules never
read this file; the CLI resolves settings and passes them as arguments.
All access is defensive: malformed or missing config falls back safely.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from platformdirs import user_config_dir

from .reconcile.planner import MATCH_STRATEGIES, NAME_STRATEGY

APP_NAME = "tidyup"
CONFIG_FILENAME = "config.json"
CONFIG_ENV_VAR = "TIDYUP_CONFIG"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH


@dataclass(frozen=True)
class Settings:
    """Resolved defaults for one CLI invocation."""

    recurse: bool = False
    include_hidden: bool = True
    match_strategy: str = NAME_STRATEGY
    remove_empty_folders: bool = False


def config_path() -> Path:
    """Return config path, honoring the ``TIDYUP_CONFIG`` override."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return CONFIG_PATH


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(config_path().read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Any filesystem/serialization error is ignored to keep CLI behavior
    non-fatal when config cannot be written.
    """
    path = config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except Exception:
        pass


def _load_bool(data: dict[str, object], key: str, default: bool) -> bool:
    """Only explicit booleans are accepted; anything else yields ``default``."""
    value = data.get(key)
    return value if isinstance(value, bool) else default


def load_settings() -> Settings:
    """Return typed settings, sanitizing each key independently."""
    data = load_config()
    defaults = Settings()
    strategy = data.get("match_strategy")
    if strategy not in MATCH_STRATEGIES:
        strategy = defaults.match_strategy
    return Settings(
        recurse=_load_bool(data, "recurse", defaults.recurse),
        include_hidden=_load_bool(data, "include_hidden", defaults.include_hidden),
        match_strategy=str(strategy),
        remove_empty_folders=_load_bool(data, "remove_empty_folders", defaults.remove_empty_folders),
    )


def save_settings(settings: Settings) -> None:
    """Persist ``settings`` while keeping unrelated keys in the config file."""
    config = load_config()
    config.update(asdict(settings))
    save_config(config)


__all__ = [
    "APP_NAME",
    "CONFIG_ENV_VAR",
    "CONFIG_PATH",
    "Settings",
    "config_path",
    "load_config",
    "save_config",
    "load_settings",
    "save_settings",
]
