"""User settings surface with write-through persistence."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from deptox.models.directory_entry import DependencyCategory
from deptox.models.rescan_interval import RescanInterval
from deptox.settings import AppSettings, SettingsError, SettingsStore, validate_exclude_patterns

log = logging.getLogger(__name__)

ThresholdListener = Callable[[int], Awaitable[None]]


class Preferences:
    """Holds the live AppSettings and persists every change immediately.

    Each setter saves the whole settings object on its own, so a crash
    between two setters loses at most the second change. A failed save is
    logged and the new value stays in effect for this process.
    """

    def __init__(self, store: SettingsStore, settings: AppSettings | None = None) -> None:
        self._store = store
        self._settings = settings or AppSettings()
        self._threshold_listeners: list[ThresholdListener] = []

    @property
    def settings(self) -> AppSettings:
        return self._settings

    def watch_threshold(self, listener: ThresholdListener) -> Callable[[], None]:
        """Call *listener* after every threshold change. Returns an unsubscribe callable."""
        self._threshold_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._threshold_listeners:
                self._threshold_listeners.remove(listener)

        return unsubscribe

    async def load(self) -> AppSettings:
        """Load settings from the store, keeping defaults if that fails."""
        try:
            self._settings = await asyncio.to_thread(self._store.load)
        except SettingsError as e:
            log.error("Failed to load settings: %s", e)
            return self._settings
        s = self._settings
        log.info(
            "Settings loaded: threshold=%d, root=%s, categories=%s, min_size=%d, "
            "permanent_delete=%s, rescan=%s",
            s.threshold_bytes,
            s.root_directory,
            ",".join(c.value for c in s.enabled_categories),
            s.min_size_bytes,
            s.permanent_delete,
            s.rescan_interval.value,
        )
        return self._settings

    async def _update(self, **changes: Any) -> None:
        self._settings = self._settings.evolve(**changes)
        try:
            await asyncio.to_thread(self._store.save, self._settings)
        except SettingsError as e:
            log.warning("Failed to save settings: %s", e)

    # -- Setters --

    async def set_threshold(self, threshold_bytes: int) -> None:
        log.info("set_threshold: %d bytes", threshold_bytes)
        await self._update(threshold_bytes=threshold_bytes)
        for listener in list(self._threshold_listeners):
            await listener(threshold_bytes)

    async def set_root_directory(self, path: str) -> None:
        log.info("set_root_directory: %s", path)
        await self._update(root_directory=path)

    async def set_enabled_categories(self, categories: list[DependencyCategory]) -> bool:
        """Replace the enabled categories. An empty list is rejected."""
        unique = tuple(dict.fromkeys(categories))
        if not unique:
            log.warning("Cannot disable all categories")
            return False
        log.info("set_enabled_categories: %s", ", ".join(c.value for c in unique))
        await self._update(enabled_categories=unique)
        return True

    async def toggle_category(self, category: DependencyCategory) -> bool:
        """Flip one category. Refuses to disable the last enabled one."""
        current = self._settings.enabled_categories
        if category in current:
            updated = [c for c in current if c != category]
        else:
            updated = [*current, category]

        if not updated:
            log.warning("Cannot disable all categories")
            return False
        return await self.set_enabled_categories(updated)

    async def set_min_size(self, size_bytes: int) -> None:
        log.info("set_min_size: %d bytes", size_bytes)
        await self._update(min_size_bytes=max(0, size_bytes))

    async def set_permanent_delete(self, enabled: bool) -> None:
        log.info("set_permanent_delete: %s", enabled)
        await self._update(permanent_delete=enabled)

    async def set_exclude_paths(self, paths: str) -> bool:
        """Replace the exclude patterns. Patterns over the limits are rejected."""
        try:
            validate_exclude_patterns(paths)
        except SettingsError as e:
            log.warning("Rejected exclude patterns: %s", e)
            return False
        log.info("set_exclude_paths: %s", paths)
        await self._update(exclude_paths=paths)
        return True

    async def set_rescan_interval(self, interval: RescanInterval) -> None:
        log.info("set_rescan_interval: %s", interval.value)
        await self._update(rescan_interval=interval)

    async def set_confirm_before_delete(self, enabled: bool) -> None:
        log.info("set_confirm_before_delete: %s", enabled)
        await self._update(confirm_before_delete=enabled)

    async def set_notify_on_threshold_exceeded(self, enabled: bool) -> None:
        log.info("set_notify_on_threshold_exceeded: %s", enabled)
        await self._update(notify_on_threshold_exceeded=enabled)

    async def reset(self) -> None:
        """Restore defaults and persist them."""
        log.info("Resetting settings to defaults")
        previous_threshold = self._settings.threshold_bytes
        self._settings = AppSettings()
        try:
            await asyncio.to_thread(self._store.reset)
        except SettingsError as e:
            log.warning("Failed to reset settings: %s", e)
        if self._settings.threshold_bytes != previous_threshold:
            for listener in list(self._threshold_listeners):
                await listener(self._settings.threshold_bytes)
