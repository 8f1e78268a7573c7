"""JSON-backed settings store."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from deptox.models.directory_entry import ALL_CATEGORIES, DependencyCategory
from deptox.models.rescan_interval import RescanInterval
from deptox.utils import xdg_config_home

log = logging.getLogger(__name__)

_SETTINGS_DIR = "deptox"
_SETTINGS_FILE = "settings.json"

DEFAULT_THRESHOLD_BYTES = 5_368_709_120

# Exclude pattern limits
MAX_PATTERN_LENGTH = 500
MAX_PATTERN_COUNT = 50
MAX_TOTAL_LENGTH = 10_000
MAX_WILDCARDS_PER_PATTERN = 10


class SettingsError(Exception):
    """Settings could not be read, validated or written."""


def _default_root() -> str:
    return str(Path.home())


@dataclass(frozen=True)
class AppSettings:
    """Persisted user configuration."""

    threshold_bytes: int = DEFAULT_THRESHOLD_BYTES
    root_directory: str = field(default_factory=_default_root)
    enabled_categories: tuple[DependencyCategory, ...] = ALL_CATEGORIES
    min_size_bytes: int = 0
    permanent_delete: bool = False
    exclude_paths: str = ""
    rescan_interval: RescanInterval = RescanInterval.ONE_DAY
    confirm_before_delete: bool = True
    notify_on_threshold_exceeded: bool = True

    def evolve(self, **changes: Any) -> AppSettings:
        return replace(self, **changes)

    @property
    def exclude_patterns(self) -> list[str]:
        return split_exclude_patterns(self.exclude_paths)

    def to_dict(self) -> dict[str, Any]:
        return {
            "thresholdBytes": self.threshold_bytes,
            "rootDirectory": self.root_directory,
            "enabledCategories": [c.value for c in self.enabled_categories],
            "minSizeBytes": self.min_size_bytes,
            "permanentDelete": self.permanent_delete,
            "excludePaths": self.exclude_paths,
            "rescanInterval": self.rescan_interval.value,
            "confirmBeforeDelete": self.confirm_before_delete,
            "notifyOnThresholdExceeded": self.notify_on_threshold_exceeded,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppSettings:
        """Build settings from JSON, falling back to defaults per key."""
        defaults = cls()

        categories: list[DependencyCategory] = []
        for raw in data.get("enabledCategories", []):
            try:
                category = DependencyCategory(raw)
            except ValueError:
                log.warning("Ignoring unknown category in settings: %r", raw)
                continue
            if category not in categories:
                categories.append(category)

        try:
            interval = RescanInterval(data.get("rescanInterval", defaults.rescan_interval.value))
        except ValueError:
            interval = defaults.rescan_interval

        return cls(
            threshold_bytes=int(data.get("thresholdBytes", defaults.threshold_bytes)),
            root_directory=str(data.get("rootDirectory", defaults.root_directory)),
            enabled_categories=tuple(categories) or defaults.enabled_categories,
            min_size_bytes=int(data.get("minSizeBytes", defaults.min_size_bytes)),
            permanent_delete=bool(data.get("permanentDelete", defaults.permanent_delete)),
            exclude_paths=str(data.get("excludePaths", defaults.exclude_paths)),
            rescan_interval=interval,
            confirm_before_delete=bool(data.get("confirmBeforeDelete", defaults.confirm_before_delete)),
            notify_on_threshold_exceeded=bool(
                data.get("notifyOnThresholdExceeded", defaults.notify_on_threshold_exceeded)
            ),
        )


def split_exclude_patterns(exclude_paths: str) -> list[str]:
    """Split the comma separated exclude setting into trimmed patterns."""
    return [p.strip() for p in exclude_paths.split(",") if p.strip()]


def validate_exclude_patterns(exclude_paths: str) -> None:
    """Raise SettingsError if the exclude patterns exceed length or complexity limits."""
    if len(exclude_paths) > MAX_TOTAL_LENGTH:
        raise SettingsError(f"Total exclude patterns length exceeds {MAX_TOTAL_LENGTH} characters")

    patterns = split_exclude_patterns(exclude_paths)
    if len(patterns) > MAX_PATTERN_COUNT:
        raise SettingsError(f"Too many exclude patterns (max {MAX_PATTERN_COUNT})")

    for pattern in patterns:
        if len(pattern) > MAX_PATTERN_LENGTH:
            raise SettingsError(f"Pattern exceeds {MAX_PATTERN_LENGTH} characters: {pattern[:50]}...")
        if pattern.count("*") > MAX_WILDCARDS_PER_PATTERN:
            raise SettingsError(
                f"Pattern has too many wildcards (max {MAX_WILDCARDS_PER_PATTERN}): {pattern[:50]}..."
            )


class SettingsStore:
    """Loads and saves AppSettings as a JSON file."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (xdg_config_home() / _SETTINGS_DIR / _SETTINGS_FILE)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> AppSettings:
        """Read settings from disk. A missing file yields defaults."""
        if not self._path.exists():
            log.debug("Settings file not found, using defaults")
            return AppSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            raise SettingsError(f"Could not load settings from {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise SettingsError(f"Could not load settings from {self._path}: expected an object")
        try:
            return AppSettings.from_dict(data)
        except (TypeError, ValueError) as e:
            raise SettingsError(f"Could not parse settings from {self._path}: {e}") from e

    def save(self, settings: AppSettings) -> None:
        """Validate and persist settings."""
        validate_exclude_patterns(settings.exclude_paths)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(settings.to_dict(), indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            raise SettingsError(f"Could not save settings to {self._path}: {e}") from e
        log.debug("Settings saved to %s", self._path)

    def reset(self) -> None:
        """Delete the settings file so the next load yields defaults."""
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            raise SettingsError(f"Could not delete settings at {self._path}: {e}") from e
        log.info("Settings reset to defaults")
