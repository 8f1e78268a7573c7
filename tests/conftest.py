"""Shared test fixtures."""

from __future__ import annotations

import pytest

import deptox.storage as storage
from deptox.backend.base import BackendError, ScanBackend, ScanConfig
from deptox.core.channel import EventChannel
from deptox.core.preferences import Preferences
from deptox.models.directory_entry import DependencyCategory, DirectoryEntry
from deptox.models.outcomes import DeletionOutcome, RescanOutcome
from deptox.settings import SettingsStore


def make_entry(
    path: str,
    size: int = 1024,
    category: DependencyCategory = DependencyCategory.NODE_MODULES,
    modified: int = 0,
) -> DirectoryEntry:
    return DirectoryEntry(path=path, size_bytes=size, category=category, file_count=10, last_modified_ms=modified)


class FakeBackend(ScanBackend):
    """In-memory backend that records every call and never touches the bus."""

    def __init__(self) -> None:
        self._events = EventChannel()
        self.configs: list[ScanConfig] = []
        self.cancel_calls = 0
        self.deleted: list[tuple[str, bool]] = []
        self.rescanned: list[str] = []
        self.tray_updates: list[tuple[int, int]] = []
        self.fail_start = False
        self.fail_cancel = False
        self.fail_tray = False
        self.crash_tray = False
        self.crash_start = False
        self.failing_deletes: set[str] = set()
        self.raising_deletes: set[str] = set()
        self.crashing_deletes: set[str] = set()
        self.rescan_results: dict[str, RescanOutcome] = {}
        self.scan_script: list = []
        self.closed = False

    @property
    def events(self) -> EventChannel:
        return self._events

    def emit(self, *events) -> None:
        for event in events:
            self._events.publish(event)

    async def start_scan(self, config: ScanConfig) -> None:
        if self.fail_start:
            raise BackendError("scanner unavailable")
        if self.crash_start:
            raise RuntimeError("scanner crashed")
        self.configs.append(config)
        self.emit(*self.scan_script)

    async def cancel_scan(self) -> None:
        if self.fail_cancel:
            raise BackendError("cancel rejected")
        self.cancel_calls += 1

    async def delete_directory(self, path: str, *, permanent: bool = False) -> DeletionOutcome:
        self.deleted.append((path, permanent))
        if path in self.raising_deletes:
            raise BackendError("permission denied")
        if path in self.crashing_deletes:
            raise RuntimeError("reply lost")
        if path in self.failing_deletes:
            return DeletionOutcome.failed(path)
        return DeletionOutcome(path=path, success=True, size_freed=1024)

    async def rescan_directory(self, path: str) -> RescanOutcome:
        self.rescanned.append(path)
        if path not in self.rescan_results:
            raise BackendError("rescan failed")
        return self.rescan_results[path]

    async def update_tray(self, total_size: int, threshold_bytes: int) -> None:
        if self.fail_tray:
            raise BackendError("tray unavailable")
        if self.crash_tray:
            raise RuntimeError("tray crashed")
        self.tray_updates.append((total_size, threshold_bytes))

    async def close(self) -> None:
        self.closed = True
        await super().close()


class ManualScheduler:
    """Scheduler that only counts requests; tests decide when to sync."""

    def __init__(self) -> None:
        self.scheduled = 0
        self.cancelled = 0
        self.flushed = 0

    def schedule(self) -> None:
        self.scheduled += 1

    def cancel(self) -> None:
        self.cancelled += 1

    async def flush(self) -> None:
        self.flushed += 1


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[tuple[int, int]] = []
        self.waited = False

    def notify_threshold_exceeded(self, total_size: int, threshold_bytes: int) -> None:
        self.calls.append((total_size, threshold_bytes))

    async def wait(self) -> None:
        self.waited = True


@pytest.fixture
def isolate_storage(tmp_path, monkeypatch):
    """Redirect storage to a temp directory."""
    data_dir = tmp_path / "deptox_data"
    data_dir.mkdir()
    state_file = data_dir / "state.json"
    monkeypatch.setattr(storage, "STATE_FILE", state_file)
    monkeypatch.setattr(storage, "_DATA_DIR", data_dir)
    return state_file


@pytest.fixture
def settings_store(tmp_path):
    return SettingsStore(tmp_path / "config" / "settings.json")


@pytest.fixture
def preferences(settings_store):
    return Preferences(settings_store)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def notifier():
    return RecordingNotifier()
