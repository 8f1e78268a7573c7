"""Scan session controller.

Mediates between UI commands, the asynchronous scan backend and the
session state. All state lives on one asyncio event loop: event handlers
and selection edits are synchronous, and the only suspension points are
awaited backend calls and settings persistence.

Aggregation runs in two phases. While scanning, ``on_entry_found`` grows
the session incrementally; at completion the backend's final list replaces
it wholesale, because filters applied only at finalization may drop
entries that were streamed earlier.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Coroutine, Protocol

from deptox.backend.base import BackendError, ScanBackend, ScanConfig
from deptox.core.debounce import DebouncedScheduler
from deptox.core.preferences import Preferences
from deptox.core.rescan import should_rescan
from deptox.core.sorting import DEFAULT_SORT_ORDER, SortOrder, sort_entries
from deptox.models.directory_entry import DirectoryEntry
from deptox.models.events import (
    EntryFound,
    ScanCancelled,
    ScanCompleted,
    ScanEvent,
    ScanFailed,
    StatsUpdated,
)
from deptox.models.outcomes import DeletionOutcome, RescanOutcome
from deptox.models.scan_session import ScanSession, ScanStatus
from deptox.paths import contains_dependency_directory, filter_recently_checked_paths
from deptox.utils import now_ms

log = logging.getLogger(__name__)

Listener = Callable[[], None]


class SideEffectScheduler(Protocol):
    def schedule(self) -> None: ...

    def cancel(self) -> None: ...

    async def flush(self) -> None: ...


class ThresholdNotifier(Protocol):
    def notify_threshold_exceeded(self, total_size: int, threshold_bytes: int) -> None: ...

    async def wait(self) -> None: ...


class ScanSessionController:
    """Owns the scan session, the selection and the side-effect sync."""

    def __init__(
        self,
        backend: ScanBackend,
        preferences: Preferences,
        notifier: ThresholdNotifier,
        *,
        scheduler: SideEffectScheduler | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._backend = backend
        self._preferences = preferences
        self._notifier = notifier
        self._scheduler = scheduler or DebouncedScheduler(self.sync_side_effects)
        self._clock = clock
        self._session = ScanSession()
        self._selected: set[str] = set()
        self._deleting: set[str] = set()
        self._sort_order = DEFAULT_SORT_ORDER
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task] = set()
        self._closed = False
        self._unwatch_threshold = preferences.watch_threshold(self._on_threshold_changed)

    # -- Read-only views --

    @property
    def session(self) -> ScanSession:
        return self._session

    @property
    def status(self) -> ScanStatus:
        return self._session.status

    @property
    def entries(self) -> list[DirectoryEntry]:
        return self._session.entries

    @property
    def total_size_bytes(self) -> int:
        return self._session.total_size_bytes

    @property
    def selected_paths(self) -> frozenset[str]:
        return frozenset(self._selected)

    @property
    def deleting_paths(self) -> frozenset[str]:
        return frozenset(self._deleting)

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    @property
    def sort_order(self) -> SortOrder:
        return self._sort_order

    @sort_order.setter
    def sort_order(self, order: SortOrder) -> None:
        log.debug("sort_order: %s", order.value)
        self._sort_order = order
        self._notify_listeners()

    @property
    def recently_inspected_paths(self) -> list[str]:
        """Recently inspected paths, minus those inside an already found directory."""
        return filter_recently_checked_paths(self._session.recently_inspected_paths, list(self._session.paths))

    def sorted_entries(self, order: SortOrder | None = None) -> list[DirectoryEntry]:
        return sort_entries(self._session.entries, order or self._sort_order)

    def restore(self, last_completed_at_ms: int | None) -> None:
        """Seed the completion time persisted by a previous run."""
        self._session.last_completed_at_ms = last_completed_at_ms

    # -- Listeners --

    def watch(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* after every state change. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify_listeners(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                log.exception("State listener failed")

    # -- Scan lifecycle --

    async def start_scan(self) -> None:
        """Reset the session and ask the backend to scan.

        Allowed while a scan is running; the session simply starts over.
        """
        log.info("start_scan called")
        started = time.perf_counter()

        # A sync armed during the previous scan must not land after the reset
        self._scheduler.cancel()
        self._session.reset_for_scan()
        self._selected.clear()
        self._notify_listeners()

        await self.sync_side_effects()

        settings = self._preferences.settings
        config = ScanConfig(
            root_directory=settings.root_directory,
            enabled_categories=settings.enabled_categories,
            exclude_patterns=tuple(settings.exclude_patterns),
            min_size_bytes=settings.min_size_bytes,
        )
        try:
            await self._backend.start_scan(config)
        except BackendError as e:
            log.error("start_scan failed: %s", e)
            self._set_error(str(e))
            return
        except Exception as e:
            log.exception("Unexpected error starting scan")
            self._set_error(f"Scan could not be started: {e}")
            return
        log.info("start_scan accepted in %.2f ms", (time.perf_counter() - started) * 1000)

    async def cancel_scan(self) -> None:
        """Ask the backend to stop. The ScanCancelled event updates the status."""
        log.info("cancel_scan called")
        try:
            await self._backend.cancel_scan()
        except BackendError as e:
            log.error("cancel_scan failed: %s", e)
            self._set_error(str(e))
        except Exception as e:
            log.exception("Unexpected error cancelling scan")
            self._set_error(f"Scan could not be cancelled: {e}")

    def _set_error(self, message: str) -> None:
        self._session.status = ScanStatus.ERROR
        self._session.error = message
        self._notify_listeners()

    # -- Event ingestion --

    def handle_event(self, event: ScanEvent) -> None:
        match event:
            case EntryFound(entry=entry):
                self.on_entry_found(entry)
            case StatsUpdated(total_size=total_size, current_path=current_path):
                self.on_stats_updated(total_size, current_path)
            case ScanCompleted():
                self.on_scan_completed(event)
            case ScanCancelled():
                self.on_scan_cancelled()
            case ScanFailed(message=message):
                self.on_scan_failed(message)
            case _:
                log.warning("Ignoring unknown event: %r", event)

    def on_entry_found(self, entry: DirectoryEntry) -> None:
        min_size = self._preferences.settings.min_size_bytes
        if entry.size_bytes < min_size:
            log.debug("Skipping %s - below minimum size (%d < %d)", entry.path, entry.size_bytes, min_size)
            return
        if not self._session.add_entry(entry):
            log.debug("Skipping duplicate: %s", entry.path)
            return
        log.debug("Added %s (%d bytes)", entry.path, entry.size_bytes)
        self._scheduler.schedule()
        self._notify_listeners()

    def on_stats_updated(self, total_size: int, current_path: str | None) -> None:
        session = self._session
        session.scanned_count += 1
        session.current_path = current_path
        if current_path and not contains_dependency_directory(current_path):
            session.push_inspected_path(current_path)
        self._notify_listeners()

    def on_scan_completed(self, result: ScanCompleted) -> None:
        session = self._session
        min_size = self._preferences.settings.min_size_bytes
        entries = [e for e in result.entries if e.size_bytes >= min_size]
        if len(entries) != len(result.entries):
            log.debug("Dropped %d final entries below minimum size", len(result.entries) - len(entries))
        session.replace_entries(entries)
        session.skipped_count = result.skipped_count
        session.status = ScanStatus.COMPLETED
        session.error = None
        session.clear_transient()
        session.last_completed_at_ms = self._clock()
        self._selected &= session.paths
        log.info(
            "Scan completed: %d entries, %d bytes total, %d skipped, %d ms",
            len(session),
            session.total_size_bytes,
            result.skipped_count,
            result.scan_time_ms,
        )

        # The final sync supersedes any debounced one still pending
        self._scheduler.cancel()
        self._spawn(self.sync_side_effects())

        settings = self._preferences.settings
        if session.total_size_bytes > settings.threshold_bytes and settings.notify_on_threshold_exceeded:
            self._notifier.notify_threshold_exceeded(session.total_size_bytes, settings.threshold_bytes)

        self._notify_listeners()

    def on_scan_cancelled(self) -> None:
        log.info("Scan cancelled with %d partial entries", len(self._session))
        self._session.status = ScanStatus.IDLE
        self._session.clear_transient()
        self._notify_listeners()

    def on_scan_failed(self, message: str) -> None:
        log.error("Scan failed: %s", message)
        self._session.status = ScanStatus.ERROR
        self._session.error = message
        self._session.clear_transient()
        self._notify_listeners()

    # -- Per-path operations --

    async def delete_directory(self, path: str) -> DeletionOutcome | None:
        """Delete one known entry. Returns None if *path* is not an entry."""
        if path not in self._session:
            log.warning("delete_directory: entry not found for %s", path)
            return None

        log.info("delete_directory: %s", path)
        started = time.perf_counter()
        outcome = await self._delete_one(path)
        log.info(
            "delete_directory completed in %.2f ms, success: %s",
            (time.perf_counter() - started) * 1000,
            outcome.success,
        )

        if outcome.success:
            self._remove_entries({path})
            await self.sync_side_effects()
        return outcome

    async def rescan_directory(self, path: str) -> RescanOutcome | None:
        """Re-measure one directory. Returns None if the backend call fails."""
        log.info("rescan_directory: %s", path)
        try:
            outcome = await self._backend.rescan_directory(path)
        except BackendError as e:
            log.error("Failed to rescan %s: %s", path, e)
            return None
        except Exception:
            log.exception("Unexpected error rescanning %s", path)
            return None

        if not outcome.exists:
            self._remove_entries({path})
            await self.sync_side_effects()
        elif outcome.entry is not None and outcome.entry.path == path:
            if self._session.replace_entry(outcome.entry):
                self._notify_listeners()
                await self.sync_side_effects()
        return outcome

    async def delete_selected_directories(self) -> list[DeletionOutcome]:
        """Delete every selected entry concurrently.

        Waits for all deletes, then removes only the successful paths in one
        step and clears the whole selection, failures included.
        """
        paths = [p for p in self._selected if p in self._session]
        if not paths:
            return []

        log.info("delete_selected_directories: %d directories", len(paths))
        started = time.perf_counter()
        self._deleting = set(paths)
        self._notify_listeners()

        outcomes = await asyncio.gather(*(self._delete_one(path) for path in paths))

        succeeded = {o.path for o in outcomes if o.success}
        self._session.remove_paths(succeeded)
        self._selected.clear()
        self._deleting = set()
        self._notify_listeners()

        if succeeded:
            await self.sync_side_effects()

        log.info(
            "delete_selected_directories completed in %.2f ms, %d/%d successful",
            (time.perf_counter() - started) * 1000,
            len(succeeded),
            len(paths),
        )
        return list(outcomes)

    async def _delete_one(self, path: str) -> DeletionOutcome:
        permanent = self._preferences.settings.permanent_delete
        try:
            outcome = await self._backend.delete_directory(path, permanent=permanent)
        except BackendError as e:
            log.error("Failed to delete %s: %s", path, e)
            return DeletionOutcome.failed(path)
        except Exception:
            log.exception("Unexpected error deleting %s", path)
            return DeletionOutcome.failed(path)
        # Outcomes are keyed by the requested path
        if outcome.path != path:
            outcome = DeletionOutcome(path=path, success=outcome.success, size_freed=outcome.size_freed)
        return outcome

    def _remove_entries(self, paths: set[str]) -> None:
        removed = self._session.remove_paths(paths)
        self._selected -= removed
        self._notify_listeners()

    # -- Selection --

    def toggle_selection(self, path: str) -> None:
        if path in self._selected:
            self._selected.discard(path)
        elif path in self._session:
            self._selected.add(path)
        else:
            log.debug("toggle_selection: ignoring unknown path %s", path)
            return
        self._notify_listeners()

    def clear_selection(self) -> None:
        self._selected.clear()
        self._notify_listeners()

    def select_all(self) -> None:
        self._selected = self._session.paths
        self._notify_listeners()

    # -- Side effects --

    async def sync_side_effects(self) -> None:
        """Push the current total to the tray. Failures are logged and ignored."""
        total = self._session.total_size_bytes
        threshold = self._preferences.settings.threshold_bytes
        try:
            await self._backend.update_tray(total, threshold)
        except BackendError as e:
            log.warning("Failed to update tray icon: %s", e)
        except Exception:
            log.exception("Unexpected error updating tray icon")

    async def _on_threshold_changed(self, threshold_bytes: int) -> None:
        await self.sync_side_effects()

    def should_rescan(self) -> bool:
        interval = self._preferences.settings.rescan_interval
        last = self._session.last_completed_at_ms
        due = should_rescan(interval, last, self._clock())
        log.info("should_rescan: %s (interval %s, last completed %s)", due, interval.value, last)
        return due

    # -- Lifecycle --

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait for background side effects started by event handlers."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Push the last pending tray update instead of dropping it
        await self._scheduler.flush()
        self._unwatch_threshold()
        self._listeners.clear()
        await self.wait_idle()
