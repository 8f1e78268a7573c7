"""JSON file storage for application state that outlives a session."""

from __future__ import annotations

import json
import logging
from typing import Any

from deptox.utils import xdg_data_home

log = logging.getLogger(__name__)

_DATA_DIR = xdg_data_home() / "deptox"

STATE_FILE = _DATA_DIR / "state.json"


def _ensure_data_dir() -> None:
    """Create the data directory if it doesn't exist."""
    STATE_FILE.parent.mkdir(parents=True, exist_ok=True)


def load_state() -> dict[str, Any]:
    """Load the state file, returning an empty dict if missing."""
    if not STATE_FILE.exists():
        return {}
    try:
        with open(STATE_FILE, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        log.exception("Failed to load state file: %s", STATE_FILE)
        return {}
    return data if isinstance(data, dict) else {}


def save_state(data: dict[str, Any]) -> None:
    """Write the state data to disk."""
    try:
        _ensure_data_dir()
        with open(STATE_FILE, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
    except OSError:
        log.exception("Failed to save state file: %s", STATE_FILE)
