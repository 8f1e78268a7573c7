"""Scan backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from deptox.core.channel import EventChannel
from deptox.models.directory_entry import DependencyCategory
from deptox.models.outcomes import DeletionOutcome, RescanOutcome


class BackendError(Exception):
    """The scan backend is unavailable or rejected a call."""


@dataclass(frozen=True)
class ScanConfig:
    """What the backend should scan."""

    root_directory: str
    enabled_categories: tuple[DependencyCategory, ...]
    exclude_patterns: tuple[str, ...] = field(default_factory=tuple)
    min_size_bytes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "rootDirectory": self.root_directory,
            "enabledCategories": [c.value for c in self.enabled_categories],
            "excludePaths": list(self.exclude_patterns),
            "minSizeBytes": self.min_size_bytes,
        }


class ScanBackend(ABC):
    """Out-of-process engine that walks the filesystem.

    Commands are awaited; discoveries and progress arrive asynchronously on
    ``events``. Every command raises BackendError on failure.
    """

    @property
    @abstractmethod
    def events(self) -> EventChannel:
        """Channel the backend publishes scan events on."""

    @abstractmethod
    async def start_scan(self, config: ScanConfig) -> None:
        """Begin a scan. Returns once the backend has accepted it."""

    @abstractmethod
    async def cancel_scan(self) -> None:
        """Ask the backend to stop; it confirms with a ScanCancelled event."""

    @abstractmethod
    async def delete_directory(self, path: str, *, permanent: bool = False) -> DeletionOutcome:
        """Move a directory to the trash, or delete it when ``permanent``."""

    @abstractmethod
    async def rescan_directory(self, path: str) -> RescanOutcome:
        """Measure one directory again."""

    @abstractmethod
    async def update_tray(self, total_size: int, threshold_bytes: int) -> None:
        """Refresh the tray icon summary."""

    async def close(self) -> None:
        """Release the connection to the backend."""
        self.events.close()
