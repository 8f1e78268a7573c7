"""Tests for backend event and reply decoding."""

from __future__ import annotations

import json

import pytest

from deptox.models.directory_entry import DependencyCategory, DirectoryEntry
from deptox.models.events import (
    EntryFound,
    ScanCancelled,
    ScanCompleted,
    ScanFailed,
    StatsUpdated,
    decode_event,
)
from deptox.models.outcomes import DeletionOutcome, RescanOutcome

ENTRY = {
    "path": "/code/app/node_modules",
    "sizeBytes": 2048,
    "fileCount": 12,
    "lastModifiedMs": 1_700_000_000_000,
    "category": "NODE_MODULES",
    "hasOnlySymlinks": False,
}


class TestDecodeEvent:
    def test_entry_found(self):
        event = decode_event("EntryFound", json.dumps(ENTRY))
        assert isinstance(event, EntryFound)
        assert event.entry.path == "/code/app/node_modules"
        assert event.entry.size_bytes == 2048
        assert event.entry.category == DependencyCategory.NODE_MODULES

    def test_stats_updated(self):
        event = decode_event("StatsUpdated", json.dumps({"totalSize": 10, "currentPath": "/code"}))
        assert event == StatsUpdated(total_size=10, current_path="/code")
        assert decode_event("StatsUpdated", "{}") == StatsUpdated(total_size=0, current_path=None)

    def test_scan_completed(self):
        payload = {"entries": [ENTRY], "totalSize": 2048, "skippedCount": 3, "scanTimeMs": 90}
        event = decode_event("ScanCompleted", json.dumps(payload))
        assert isinstance(event, ScanCompleted)
        assert len(event.entries) == 1
        assert event.skipped_count == 3
        assert event.scan_time_ms == 90

    def test_cancelled_ignores_payload(self):
        assert decode_event("ScanCancelled") == ScanCancelled()
        assert decode_event("ScanCancelled", "garbage") == ScanCancelled()

    def test_failed_uses_raw_message(self):
        assert decode_event("ScanFailed", "Permission denied") == ScanFailed(message="Permission denied")
        assert decode_event("ScanFailed", "").message == "Unknown scan error"

    @pytest.mark.parametrize(
        "name, payload",
        [
            ("EntryFound", "not json"),
            ("EntryFound", "[]"),
            ("EntryFound", json.dumps({"path": "/x"})),
            ("EntryFound", json.dumps({**ENTRY, "category": "COBOL"})),
            ("ScanCompleted", json.dumps({"entries": 5})),
            ("Exploded", "{}"),
        ],
    )
    def test_malformed_raises_value_error(self, name, payload):
        with pytest.raises(ValueError):
            decode_event(name, payload)


class TestOutcomes:
    def test_deletion_from_dict(self):
        outcome = DeletionOutcome.from_dict({"path": "/a", "success": True, "sizeFreed": 5})
        assert outcome == DeletionOutcome(path="/a", success=True, size_freed=5)
        assert DeletionOutcome.failed("/b") == DeletionOutcome(path="/b", success=False, size_freed=0)

    def test_rescan_from_dict(self):
        assert RescanOutcome.from_dict({"exists": False, "entry": None}) == RescanOutcome(exists=False)
        outcome = RescanOutcome.from_dict({"exists": True, "entry": ENTRY})
        assert outcome.entry == DirectoryEntry.from_dict(ENTRY)

    def test_malformed_outcomes(self):
        with pytest.raises(ValueError):
            DeletionOutcome.from_dict({"success": True})
        with pytest.raises(ValueError):
            RescanOutcome.from_dict({"entry": None})


class TestDependencyCategory:
    def test_parse(self):
        assert DependencyCategory.parse("node") == DependencyCategory.NODE_MODULES
        assert DependencyCategory.parse("python_venv") == DependencyCategory.PYTHON_VENV
        assert DependencyCategory.parse(" GO_MOD ") == DependencyCategory.GO_MOD
        with pytest.raises(ValueError):
            DependencyCategory.parse("cobol")

    def test_entry_negative_size_is_clamped(self):
        entry = DirectoryEntry.from_dict({**ENTRY, "sizeBytes": -1})
        assert entry.size_bytes == 0
