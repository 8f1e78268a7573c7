"""Per-path operation outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from deptox.models.directory_entry import DirectoryEntry


@dataclass(frozen=True, slots=True)
class DeletionOutcome:
    """Result of one delete attempt."""

    path: str
    success: bool
    size_freed: int = 0

    @classmethod
    def failed(cls, path: str) -> DeletionOutcome:
        return cls(path=path, success=False, size_freed=0)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeletionOutcome:
        try:
            return cls(
                path=str(data["path"]),
                success=bool(data["success"]),
                size_freed=int(data.get("sizeFreed", 0)),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed delete result: {data!r}") from e


@dataclass(frozen=True, slots=True)
class RescanOutcome:
    """Result of rescanning a single directory.

    ``entry`` carries fresh metrics when the directory still exists.
    """

    exists: bool
    entry: DirectoryEntry | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RescanOutcome:
        try:
            raw_entry = data.get("entry")
            return cls(
                exists=bool(data["exists"]),
                entry=DirectoryEntry.from_dict(raw_entry) if raw_entry else None,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed rescan result: {data!r}") from e
