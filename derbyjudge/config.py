"""Judge configuration stored as JSON in the user's config directory."""

from __future__ import annotations

import json
import os
from pathlib import Path
import sys
from typing import Any, Dict, Optional

from .utils import DEFAULT_SERIAL_SETTINGS


DEFAULTS: Dict[str, Any] = {
    "com_settings": DEFAULT_SERIAL_SETTINGS,
    "capture_path": "",
    "display": "text",
    "winner_font": "bigmono12",
    "times_font": "future",
}


def get_config_dir() -> Path:
    """Return platform-appropriate configuration directory for this app.

    Linux:  $XDG_CONFIG_HOME/derby-judge or ~/.config/derby-judge
    Windows: %APPDATA%/derby-judge or ~/AppData/Roaming/derby-judge
    Other: treat like Linux.
    """

    if sys.platform.startswith("win"):
        base = os.environ.get("APPDATA")
        if base:
            base_path = Path(base)
        else:
            base_path = Path.home() / "AppData" / "Roaming"
        return base_path / "derby-judge"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        base_path = Path(xdg)
    else:
        base_path = Path.home() / ".config"
    return base_path / "derby-judge"


def default_config_file() -> Path:
    return get_config_dir() / "config.json"


def load_config(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Load the config file on top of the defaults.

    A missing file is normal. An unreadable or malformed one is reported and
    ignored. Only known keys are taken from the file.
    """

    config = dict(DEFAULTS)
    cfg_file = Path(path).expanduser() if path else default_config_file()

    if not cfg_file.is_file():
        if path:
            print(f"[judge] WARNING: config file {cfg_file} not found; "
                  "using defaults", file=sys.stderr)
        return config

    try:
        with cfg_file.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"[judge] WARNING: could not read config {cfg_file}: {exc}; "
              "using defaults", file=sys.stderr)
        return config

    if not isinstance(data, dict):
        print(f"[judge] WARNING: config {cfg_file} is not a JSON object; "
              "using defaults", file=sys.stderr)
        return config

    for key in DEFAULTS:
        if key in data and data[key] is not None:
            config[key] = str(data[key])

    return config
