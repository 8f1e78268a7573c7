"""Events emitted by the scan backend."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union

from deptox.models.directory_entry import DirectoryEntry


@dataclass(frozen=True, slots=True)
class EntryFound:
    entry: DirectoryEntry


@dataclass(frozen=True, slots=True)
class StatsUpdated:
    """Progress tick. ``total_size`` is informational only."""

    total_size: int
    current_path: str | None = None


@dataclass(frozen=True, slots=True)
class ScanCompleted:
    """Authoritative final result of a scan."""

    entries: tuple[DirectoryEntry, ...] = field(default_factory=tuple)
    total_size: int = 0
    skipped_count: int = 0
    scan_time_ms: int = 0


@dataclass(frozen=True, slots=True)
class ScanCancelled:
    pass


@dataclass(frozen=True, slots=True)
class ScanFailed:
    message: str


ScanEvent = Union[EntryFound, StatsUpdated, ScanCompleted, ScanCancelled, ScanFailed]

# Signal names as sent by the backend
ENTRY_FOUND = "EntryFound"
STATS_UPDATED = "StatsUpdated"
SCAN_COMPLETED = "ScanCompleted"
SCAN_CANCELLED = "ScanCancelled"
SCAN_FAILED = "ScanFailed"


def decode_event(name: str, payload: str | None = None) -> ScanEvent:
    """Build a ScanEvent from a signal name and its JSON payload.

    ``ScanFailed`` carries its message as a plain string, every other
    payload is JSON. Raises ValueError for unknown names or bad payloads.
    """
    if name == SCAN_CANCELLED:
        return ScanCancelled()
    if name == SCAN_FAILED:
        return ScanFailed(message=payload or "Unknown scan error")

    try:
        data: Any = json.loads(payload or "")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid {name} payload: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Invalid {name} payload: expected an object")

    try:
        match name:
            case "EntryFound":
                return EntryFound(entry=DirectoryEntry.from_dict(data))
            case "StatsUpdated":
                current = data.get("currentPath")
                return StatsUpdated(
                    total_size=int(data.get("totalSize", 0)),
                    current_path=str(current) if current else None,
                )
            case "ScanCompleted":
                return ScanCompleted(
                    entries=tuple(DirectoryEntry.from_dict(e) for e in data.get("entries", [])),
                    total_size=int(data.get("totalSize", 0)),
                    skipped_count=int(data.get("skippedCount", 0)),
                    scan_time_ms=int(data.get("scanTimeMs", 0)),
                )
    except (TypeError, AttributeError) as e:
        raise ValueError(f"Invalid {name} payload: {e}") from e
    raise ValueError(f"Unknown scan event: {name}")
