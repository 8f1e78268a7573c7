"""Display ordering of discovered directories."""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from deptox.models.directory_entry import DirectoryEntry
from deptox.paths import get_project_name


class SortOrder(str, Enum):
    SIZE_DESC = "SIZE_DESC"
    SIZE_ASC = "SIZE_ASC"
    NAME_ASC = "NAME_ASC"
    NAME_DESC = "NAME_DESC"
    DATE_DESC = "DATE_DESC"
    DATE_ASC = "DATE_ASC"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    SortOrder.SIZE_DESC: "Largest first",
    SortOrder.SIZE_ASC: "Smallest first",
    SortOrder.NAME_ASC: "Name (A-Z)",
    SortOrder.NAME_DESC: "Name (Z-A)",
    SortOrder.DATE_DESC: "Newest first",
    SortOrder.DATE_ASC: "Oldest first",
}

DEFAULT_SORT_ORDER = SortOrder.SIZE_DESC


def _project_key(entry: DirectoryEntry) -> str:
    return get_project_name(entry.path).lower()


def sort_entries(entries: Iterable[DirectoryEntry], order: SortOrder) -> list[DirectoryEntry]:
    """Return a new list ordered by ``order``; ties keep their original order."""
    match order:
        case SortOrder.SIZE_DESC:
            return sorted(entries, key=lambda e: e.size_bytes, reverse=True)
        case SortOrder.SIZE_ASC:
            return sorted(entries, key=lambda e: e.size_bytes)
        case SortOrder.NAME_ASC:
            return sorted(entries, key=_project_key)
        case SortOrder.NAME_DESC:
            return sorted(entries, key=_project_key, reverse=True)
        case SortOrder.DATE_DESC:
            return sorted(entries, key=lambda e: e.last_modified_ms, reverse=True)
        case SortOrder.DATE_ASC:
            return sorted(entries, key=lambda e: e.last_modified_ms)
    return list(entries)
