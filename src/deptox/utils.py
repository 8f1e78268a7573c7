"""Shared utility functions."""

from __future__ import annotations

import os
import time
from pathlib import Path

_KB = 1024.0
_MB = _KB * 1024
_GB = _MB * 1024
_TB = _GB * 1024


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def xdg_data_home() -> Path:
    """Return XDG_DATA_HOME, defaulting to ~/.local/share."""
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def bytes_to_human(size_bytes: int) -> str:
    """Convert byte count to a human-readable string."""
    if size_bytes < 0:
        return f"-{bytes_to_human(-size_bytes)}"
    if size_bytes == 0:
        return "0 B"

    units = ("B", "KB", "MB", "GB", "TB")
    value = float(size_bytes)
    for unit in units[:-1]:
        if abs(value) < 1024:
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{value:.1f} {units[-1]}"


def format_bytes_compact(size_bytes: int) -> str:
    """Two-decimal size without a space, e.g. '1.50GB' (tray titles)."""
    value = float(size_bytes)
    if value >= _TB:
        return f"{value / _TB:.2f}TB"
    if value >= _GB:
        return f"{value / _GB:.2f}GB"
    if value >= _MB:
        return f"{value / _MB:.2f}MB"
    if value >= _KB:
        return f"{value / _KB:.2f}KB"
    return f"{value:.2f}B"


def format_relative_time(timestamp_ms: int, now: int | None = None) -> str:
    """Format an epoch-millis timestamp as relative time ('2 hours ago')."""
    now = now_ms() if now is None else now
    seconds = max(0, (now - timestamp_ms) // 1000)

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        m = seconds // 60
        return f"{m} minute{'s' if m != 1 else ''} ago"
    if seconds < 86400:
        h = seconds // 3600
        return f"{h} hour{'s' if h != 1 else ''} ago"
    d = seconds // 86400
    if d < 30:
        return f"{d} day{'s' if d != 1 else ''} ago"
    mo = d // 30
    if mo < 12:
        return f"{mo} month{'s' if mo != 1 else ''} ago"
    y = max(1, d // 365)
    return f"{y} year{'s' if y != 1 else ''} ago"


def format_elapsed(seconds: float) -> str:
    """Format an elapsed time as a human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds) // 60
    secs = seconds - minutes * 60
    return f"{minutes}m {secs:.0f}s"


_SIZE_UNITS = {"": 1, "B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3, "TB": 1024**4}


def parse_size(text: str) -> int:
    """Parse '500', '500MB' or '1.5 GB' into bytes (binary units)."""
    raw = text.strip().upper().replace(" ", "")
    number = raw.rstrip("KMGTB")
    unit = raw[len(number):]
    if unit not in _SIZE_UNITS or not number:
        raise ValueError(f"Invalid size: {text!r}")
    try:
        value = float(number)
    except ValueError as e:
        raise ValueError(f"Invalid size: {text!r}") from e
    if value < 0:
        raise ValueError(f"Size must not be negative: {text!r}")
    return int(value * _SIZE_UNITS[unit])
