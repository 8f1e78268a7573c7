"""Application wiring and lifecycle."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import deptox.storage as storage
from deptox.backend.base import ScanBackend
from deptox.core.controller import ScanSessionController, ThresholdNotifier
from deptox.core.ingestion import EventIngestion
from deptox.core.preferences import Preferences
from deptox.core.sorting import SortOrder
from deptox.models.scan_session import ScanStatus
from deptox.notifications import DesktopNotifier
from deptox.settings import SettingsStore

log = logging.getLogger(__name__)


class DeptoxApp:
    """Builds the controller around a backend and runs it.

    ``start()`` loads settings and persisted state and begins ingesting
    backend events; ``close()`` undoes all of that exactly once. Prefer
    ``async with DeptoxApp(backend) as app``.
    """

    def __init__(
        self,
        backend: ScanBackend,
        store: SettingsStore | None = None,
        notifier: ThresholdNotifier | None = None,
        **controller_options: Any,
    ) -> None:
        self.backend = backend
        self.preferences = Preferences(store or SettingsStore())
        self.notifier = notifier or DesktopNotifier()
        self.controller = ScanSessionController(backend, self.preferences, self.notifier, **controller_options)
        self._ingestion = EventIngestion(backend.events, self.controller)
        self._started = False
        self._closed = False

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        await self.preferences.load()
        self._restore_state()
        self._ingestion.start()
        log.info("deptox started")

    async def close(self) -> None:
        if self._closed or not self._started:
            return
        self._closed = True
        await self._ingestion.stop()
        await self.controller.close()
        await self.notifier.wait()
        self._save_state()
        await self.backend.close()
        log.info("deptox stopped")

    async def __aenter__(self) -> DeptoxApp:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- Persisted state --

    def _restore_state(self) -> None:
        state = storage.load_state()
        last = state.get("lastScanTimestamp")
        self.controller.restore(int(last) if isinstance(last, (int, float)) else None)
        try:
            self.controller.sort_order = SortOrder(state.get("sortOrder", self.controller.sort_order.value))
        except ValueError:
            log.warning("Ignoring unknown sort order in state: %r", state.get("sortOrder"))

    def _save_state(self) -> None:
        storage.save_state(
            {
                "lastScanTimestamp": self.controller.session.last_completed_at_ms,
                "sortOrder": self.controller.sort_order.value,
            }
        )

    # -- Operations --

    async def wait_for_scan(self) -> ScanStatus:
        """Wait until the current scan leaves SCANNING and return the new status."""
        done = asyncio.Event()

        def on_change() -> None:
            if self.controller.status != ScanStatus.SCANNING:
                done.set()

        unsubscribe = self.controller.watch(on_change)
        try:
            on_change()
            await done.wait()
        finally:
            unsubscribe()
        await self.controller.wait_idle()
        return self.controller.status

    async def scan(self) -> ScanStatus:
        """Run a full scan and wait for it to finish."""
        await self.controller.start_scan()
        return await self.wait_for_scan()

    async def maybe_auto_rescan(self) -> bool:
        """Start a scan if the rescan interval has elapsed. Returns whether one ran."""
        if not self.controller.should_rescan():
            return False
        await self.scan()
        return True
