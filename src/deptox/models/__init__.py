"""Deptox data models."""

from deptox.models.directory_entry import ALL_CATEGORIES, DependencyCategory, DirectoryEntry
from deptox.models.events import (
    EntryFound,
    ScanCancelled,
    ScanCompleted,
    ScanEvent,
    ScanFailed,
    StatsUpdated,
    decode_event,
)
from deptox.models.outcomes import DeletionOutcome, RescanOutcome
from deptox.models.rescan_interval import RescanInterval
from deptox.models.scan_session import ScanSession, ScanStatus

__all__ = [
    "ALL_CATEGORIES",
    "DeletionOutcome",
    "DependencyCategory",
    "DirectoryEntry",
    "EntryFound",
    "RescanInterval",
    "RescanOutcome",
    "ScanCancelled",
    "ScanCompleted",
    "ScanEvent",
    "ScanFailed",
    "ScanSession",
    "ScanStatus",
    "StatsUpdated",
    "decode_event",
]
