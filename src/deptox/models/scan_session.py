"""Scan session state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from deptox.models.directory_entry import DirectoryEntry

MAX_RECENTLY_INSPECTED = 5


class ScanStatus(str, Enum):
    IDLE = "IDLE"
    SCANNING = "SCANNING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


@dataclass(slots=True)
class ScanSession:
    """The in-progress or most recently finished scan.

    ``total_size_bytes`` is derived from ``entries`` and is only changed by
    the entry mutators below, so it always equals the sum over entries.
    """

    status: ScanStatus = ScanStatus.IDLE
    scanned_count: int = 0
    skipped_count: int = 0
    current_path: str | None = None
    recently_inspected_paths: list[str] = field(default_factory=list)
    last_completed_at_ms: int | None = None
    error: str | None = None
    _entries: dict[str, DirectoryEntry] = field(default_factory=dict)
    _total_size_bytes: int = 0

    @property
    def entries(self) -> list[DirectoryEntry]:
        return list(self._entries.values())

    @property
    def total_size_bytes(self) -> int:
        return self._total_size_bytes

    @property
    def paths(self) -> set[str]:
        return set(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, path: str) -> DirectoryEntry | None:
        return self._entries.get(path)

    # -- Entry mutators --

    def add_entry(self, entry: DirectoryEntry) -> bool:
        """Insert a new entry. Returns False if the path is already present."""
        if entry.path in self._entries:
            return False
        self._entries[entry.path] = entry
        self._total_size_bytes += entry.size_bytes
        return True

    def replace_entries(self, entries: Iterable[DirectoryEntry]) -> None:
        """Replace all entries, keeping the first entry seen for each path."""
        replacement: dict[str, DirectoryEntry] = {}
        for entry in entries:
            replacement.setdefault(entry.path, entry)
        self._entries = replacement
        self._resum()

    def replace_entry(self, entry: DirectoryEntry) -> bool:
        """Swap the entry with the same path. Returns False if it is unknown."""
        if entry.path not in self._entries:
            return False
        self._entries[entry.path] = entry
        self._resum()
        return True

    def remove_paths(self, paths: Iterable[str]) -> set[str]:
        """Remove entries by path and return the paths actually removed."""
        removed = {path for path in paths if self._entries.pop(path, None) is not None}
        self._resum()
        return removed

    def _resum(self) -> None:
        self._total_size_bytes = sum(e.size_bytes for e in self._entries.values())

    # -- Lifecycle --

    def reset_for_scan(self) -> None:
        """Start a fresh scan; the last completion time survives."""
        self.status = ScanStatus.SCANNING
        self.scanned_count = 0
        self.skipped_count = 0
        self.error = None
        self._entries = {}
        self._total_size_bytes = 0
        self.clear_transient()

    def clear_transient(self) -> None:
        self.current_path = None
        self.recently_inspected_paths = []

    def push_inspected_path(self, path: str) -> None:
        """Move ``path`` to the front of the recently inspected list."""
        recent = [p for p in self.recently_inspected_paths if p != path]
        recent.insert(0, path)
        self.recently_inspected_paths = recent[:MAX_RECENTLY_INSPECTED]
