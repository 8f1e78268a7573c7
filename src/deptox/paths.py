"""Helpers for interpreting dependency directory paths."""

from __future__ import annotations

from dataclasses import dataclass

from deptox.models.directory_entry import DependencyCategory

MONOREPO_INDICATORS = ("apps", "packages", "libs", "services", "modules")
DEPENDENCY_DIRS = tuple(dict.fromkeys(name for c in DependencyCategory for name in c.directory_names))


@dataclass(frozen=True, slots=True)
class ProjectInfo:
    project_name: str
    monorepo_name: str | None = None


def contains_dependency_directory(path: str) -> bool:
    """Whether the path mentions any dependency directory name.

    This is a plain substring test, so '/src/vendored' also matches.
    """
    return any(name in path for name in DEPENDENCY_DIRS)


def get_project_info(path: str) -> ProjectInfo:
    """Derive the owning project (and monorepo, if any) of a dependency path.

    For '/code/shop/apps/web/node_modules' this returns project 'web' in
    monorepo 'shop'.
    """
    parts = path.split("/")
    dep_index = next((i for i, part in enumerate(parts) if part in DEPENDENCY_DIRS), -1)

    if dep_index <= 0:
        name = parts[-2] if len(parts) >= 2 and parts[-2] else "Unknown"
        return ProjectInfo(project_name=name)

    project_name = parts[dep_index - 1] or "Unknown"

    # Closest monorepo indicator above the project directory
    for index in range(dep_index - 2, -1, -1):
        if parts[index] in MONOREPO_INDICATORS:
            if index > 0 and parts[index - 1]:
                return ProjectInfo(project_name=project_name, monorepo_name=parts[index - 1])
            break

    return ProjectInfo(project_name=project_name)


def get_project_name(path: str) -> str:
    return get_project_info(path).project_name


def is_path_inside_directories(path: str, found_paths: list[str]) -> bool:
    return any(path == found or path.startswith(found + "/") for found in found_paths)


def filter_recently_checked_paths(recently_checked: list[str], found_directory_paths: list[str]) -> list[str]:
    """Drop recently checked paths that lie inside an already found directory."""
    return [p for p in recently_checked if not is_path_inside_directories(p, found_directory_paths)]
