"""Forwards backend events to the scan session controller."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from deptox.core.channel import EventChannel, Subscription
from deptox.models.events import EntryFound, ScanCompleted, ScanEvent, StatsUpdated

if TYPE_CHECKING:
    from deptox.core.controller import ScanSessionController

log = logging.getLogger(__name__)

_STATS_LOG_EVERY = 100


class EventIngestion:
    """Owns one subscription on the backend's event channel.

    Events are handed to the controller one at a time, in arrival order,
    on the event loop that owns the controller.
    """

    def __init__(self, channel: EventChannel, controller: ScanSessionController) -> None:
        self._channel = channel
        self._controller = controller
        self._subscription: Subscription | None = None
        self._task: asyncio.Task | None = None
        self._stopped = False
        self.entry_count = 0
        self.stats_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> Subscription:
        """Subscribe and start forwarding. Returns the subscription handle."""
        if self._subscription is not None:
            return self._subscription
        log.debug("Setting up event ingestion")
        self._subscription = self._channel.subscribe()
        self._task = asyncio.get_running_loop().create_task(self._pump(self._subscription))
        return self._subscription

    async def stop(self) -> None:
        """Unsubscribe and wait for already queued events to be handled."""
        if self._stopped or self._subscription is None:
            return
        self._stopped = True
        log.debug(
            "Stopping event ingestion (received %d entries, %d stats)",
            self.entry_count,
            self.stats_count,
        )
        self._subscription.close()
        if self._task is not None:
            await self._task

    async def _pump(self, subscription: Subscription) -> None:
        async for event in subscription:
            self._trace(event)
            try:
                self._controller.handle_event(event)
            except Exception:
                log.exception("Failed to handle scan event %s", type(event).__name__)

    def _trace(self, event: ScanEvent) -> None:
        match event:
            case EntryFound(entry=entry):
                self.entry_count += 1
                log.debug(
                    "EntryFound #%d: %s (size=%d, files=%d)",
                    self.entry_count,
                    entry.path,
                    entry.size_bytes,
                    entry.file_count,
                )
            case StatsUpdated(current_path=current_path):
                self.stats_count += 1
                if self.stats_count % _STATS_LOG_EVERY == 1:
                    log.debug("StatsUpdated #%d: %s", self.stats_count, current_path)
            case ScanCompleted(entries=entries, scan_time_ms=scan_time_ms):
                log.info("Scan complete: %d entries, %d ms", len(entries), scan_time_ms)
            case _:
                log.debug("Received %s", type(event).__name__)
