"""Dependency directory dataclass and categories."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class DependencyCategory(str, Enum):
    """Kind of dependency directory, by package manager."""

    NODE_MODULES = "NODE_MODULES"
    COMPOSER = "COMPOSER"
    BUNDLER = "BUNDLER"
    PODS = "PODS"
    PYTHON_VENV = "PYTHON_VENV"
    ELIXIR_DEPS = "ELIXIR_DEPS"
    DART_TOOL = "DART_TOOL"
    GO_MOD = "GO_MOD"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def short_label(self) -> str:
        return _SHORT_LABELS[self]

    @property
    def directory_names(self) -> tuple[str, ...]:
        """Directory names this category is detected by."""
        return _DIRECTORY_NAMES[self]

    @classmethod
    def parse(cls, value: str) -> DependencyCategory:
        """Resolve a wire value ('NODE_MODULES') or short label ('node')."""
        normalized = value.strip()
        for category in cls:
            if normalized.upper() == category.value or normalized.lower() == category.short_label:
                return category
        raise ValueError(f"Unknown dependency category: {value!r}")


_LABELS = {
    DependencyCategory.NODE_MODULES: "Node (modules)",
    DependencyCategory.COMPOSER: "PHP (composer)",
    DependencyCategory.BUNDLER: "Ruby (bundler)",
    DependencyCategory.PODS: "iOS (pods)",
    DependencyCategory.PYTHON_VENV: "Python (venv)",
    DependencyCategory.ELIXIR_DEPS: "Elixir (deps)",
    DependencyCategory.DART_TOOL: "Dart (dart_tool)",
    DependencyCategory.GO_MOD: "Go (pkg/mod)",
}

_SHORT_LABELS = {
    DependencyCategory.NODE_MODULES: "node",
    DependencyCategory.COMPOSER: "php",
    DependencyCategory.BUNDLER: "ruby",
    DependencyCategory.PODS: "ios",
    DependencyCategory.PYTHON_VENV: "python",
    DependencyCategory.ELIXIR_DEPS: "elixir",
    DependencyCategory.DART_TOOL: "dart",
    DependencyCategory.GO_MOD: "go",
}

_DIRECTORY_NAMES = {
    DependencyCategory.NODE_MODULES: ("node_modules",),
    DependencyCategory.COMPOSER: ("vendor",),
    DependencyCategory.BUNDLER: ("vendor",),
    DependencyCategory.PODS: ("Pods",),
    DependencyCategory.PYTHON_VENV: (".venv", "venv"),
    DependencyCategory.ELIXIR_DEPS: ("deps",),
    DependencyCategory.DART_TOOL: (".dart_tool",),
    DependencyCategory.GO_MOD: ("pkg",),
}

ALL_CATEGORIES: tuple[DependencyCategory, ...] = tuple(DependencyCategory)


@dataclass(frozen=True, slots=True)
class DirectoryEntry:
    """A discovered dependency directory.

    ``path`` is the identity of an entry: a scan session never holds two
    entries with the same path. ``last_modified_ms`` is 0 when unknown.
    """

    path: str
    size_bytes: int
    category: DependencyCategory
    file_count: int = 0
    last_modified_ms: int = 0
    has_only_symlinks: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DirectoryEntry:
        """Build an entry from the backend's camelCase JSON form."""
        try:
            return cls(
                path=str(data["path"]),
                size_bytes=max(0, int(data["sizeBytes"])),
                category=DependencyCategory(data["category"]),
                file_count=max(0, int(data.get("fileCount", 0))),
                last_modified_ms=int(data.get("lastModifiedMs", 0)),
                has_only_symlinks=bool(data.get("hasOnlySymlinks", False)),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed directory entry: {data!r}") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "sizeBytes": self.size_bytes,
            "fileCount": self.file_count,
            "lastModifiedMs": self.last_modified_ms,
            "category": self.category.value,
            "hasOnlySymlinks": self.has_only_symlinks,
        }
