"""
Configuration for Taccuino.

The data directory is resolved once from the host's per-user application
data location. A JSON config file lives inside it; missing or invalid files
fall back to the defaults below.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

APP_NAME = "Taccuino"
CONFIG_FILENAME = "config.json"
NOTES_DIR_ENV = "TACCUINO_NOTES_DIR"

DEFAULT_MESSAGE_TIMEOUT = 2.0
DEFAULT_THEME = {
    'header': 'bg:#0055aa #ffffff bold',
    'footer': 'fg:#888888',
    'selected': 'bg:#0055aa #ffffff bold',
    'date': 'fg:#00aa00',
    'label': 'fg:#ffffff bold',
    'error': 'fg:#ff5555 bold',
    'message': 'fg:#55ff55 bold',
    'warning': 'fg:#ffaa00',
}

Config = Dict[str, Any]


class Colors:
    """ANSI color codes for terminal output."""
    GREEN = '\033[92m'
    RED = '\033[91m'
    YELLOW = '\033[93m'
    CYAN = '\033[96m'
    END = '\033[0m'


def user_data_dir(platform: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> Path:
    """
    Resolve the per-user application data directory.

    Args:
        platform: Value of ``sys.platform`` to resolve for (defaults to the host)
        environ: Environment mapping to read (defaults to ``os.environ``)

    Returns:
        Path of the Taccuino data directory (not created here)
    """
    platform = platform or sys.platform
    environ = os.environ if environ is None else environ

    if platform.startswith("win"):
        base = environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / APP_NAME
    if platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME

    base = environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base) / APP_NAME.lower()


def default_config(data_dir: Path) -> Config:
    return {
        "notes_dir": str(data_dir / "notes"),
        "message_timeout": DEFAULT_MESSAGE_TIMEOUT,
        "theme": dict(DEFAULT_THEME),
    }


def load_config(data_dir: Optional[Path] = None) -> Config:
    """
    Load configuration from the JSON file in the data directory.

    Args:
        data_dir: Directory holding ``config.json`` (defaults to ``user_data_dir()``)

    Returns:
        Defaults overlaid with the file's values. The defaults alone are
        returned when the file doesn't exist or is invalid.
    """
    data_dir = data_dir or user_data_dir()
    config = default_config(data_dir)
    config_file = data_dir / CONFIG_FILENAME

    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                stored = json.load(f)
        except (json.JSONDecodeError, IOError):
            return config
        if isinstance(stored, dict):
            theme = stored.pop("theme", None)
            config.update(stored)
            if isinstance(theme, dict):
                config["theme"].update(theme)
    return config


def resolve_notes_dir(config: Config, override: Optional[str] = None,
                      environ: Optional[Dict[str, str]] = None) -> Path:
    """
    Pick the notes directory: CLI override, then environment, then config.

    Args:
        config: Loaded configuration
        override: Value of the ``--notes-dir`` option, if given
        environ: Environment mapping to read (defaults to ``os.environ``)

    Returns:
        Expanded path of the notes directory
    """
    environ = os.environ if environ is None else environ
    chosen = override or environ.get(NOTES_DIR_ENV) or config["notes_dir"]
    return Path(chosen).expanduser()


def message_timeout(config: Config) -> float:
    try:
        return max(0.0, float(config.get("message_timeout", DEFAULT_MESSAGE_TIMEOUT)))
    except (TypeError, ValueError):
        return DEFAULT_MESSAGE_TIMEOUT
