"""D-Bus client for the deptox scanner service.

Method and signal names use PascalCase per D-Bus convention; dbus-next
exposes them on the proxy as ``call_<snake_case>`` and ``on_<snake_case>``.
Structured payloads travel as JSON strings with camelCase keys.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from dbus_next import BusType
from dbus_next.aio import MessageBus, ProxyInterface
from dbus_next.errors import AuthError, DBusError, InvalidAddressError

from deptox.backend.base import BackendError, ScanBackend, ScanConfig
from deptox.core.channel import EventChannel
from deptox.models.events import (
    ENTRY_FOUND,
    SCAN_CANCELLED,
    SCAN_COMPLETED,
    SCAN_FAILED,
    STATS_UPDATED,
    decode_event,
)
from deptox.models.outcomes import DeletionOutcome, RescanOutcome

log = logging.getLogger(__name__)

BUS_NAME = "io.github.deptox"
OBJECT_PATH = "/io/github/deptox"
INTERFACE = "io.github.deptox.Scanner"

_CONNECT_ERRORS = (DBusError, InvalidAddressError, AuthError, OSError)


class DBusScanBackend(ScanBackend):
    """ScanBackend backed by the scanner service on the session bus."""

    def __init__(self, bus: MessageBus, interface: ProxyInterface) -> None:
        self._bus = bus
        self._interface = interface
        self._events = EventChannel()
        self._handlers: dict[str, Callable[..., None]] = {}
        self._closed = False
        self._subscribe_signals()

    @classmethod
    async def connect(cls) -> DBusScanBackend:
        """Connect to the session bus and bind to the scanner service."""
        try:
            bus = await MessageBus(bus_type=BusType.SESSION).connect()
        except _CONNECT_ERRORS as e:
            raise BackendError(f"Cannot connect to the session bus: {e}") from e
        try:
            introspection = await bus.introspect(BUS_NAME, OBJECT_PATH)
            proxy = bus.get_proxy_object(BUS_NAME, OBJECT_PATH, introspection)
            interface = proxy.get_interface(INTERFACE)
        except _CONNECT_ERRORS as e:
            bus.disconnect()
            raise BackendError(f"Scanner service {BUS_NAME} is not available: {e}") from e
        log.info("Connected to scanner service %s", BUS_NAME)
        return cls(bus, interface)

    @property
    def events(self) -> EventChannel:
        return self._events

    # -- Signals --

    def _subscribe_signals(self) -> None:
        for name in (ENTRY_FOUND, STATS_UPDATED, SCAN_COMPLETED, SCAN_FAILED):
            self._handlers[name] = self._make_payload_handler(name)
        self._handlers[SCAN_CANCELLED] = self._on_scan_cancelled
        for name, handler in self._handlers.items():
            getattr(self._interface, f"on_{_snake(name)}")(handler)

    def _make_payload_handler(self, name: str) -> Callable[[str], None]:
        def handler(payload: str) -> None:
            self._publish(name, payload)

        return handler

    def _on_scan_cancelled(self) -> None:
        self._publish(SCAN_CANCELLED, None)

    def _publish(self, name: str, payload: str | None) -> None:
        try:
            event = decode_event(name, payload)
        except ValueError as e:
            log.warning("Dropping malformed %s signal: %s", name, e)
            return
        self._events.publish(event)

    # -- Commands --

    async def start_scan(self, config: ScanConfig) -> None:
        await self._call("start_scan", json.dumps(config.to_dict()))

    async def cancel_scan(self) -> None:
        await self._call("cancel_scan")

    async def delete_directory(self, path: str, *, permanent: bool = False) -> DeletionOutcome:
        reply = await self._call("delete_directory", path, permanent)
        try:
            return DeletionOutcome.from_dict(_decode_reply(reply, "DeleteDirectory"))
        except ValueError as e:
            raise BackendError(str(e)) from e

    async def rescan_directory(self, path: str) -> RescanOutcome:
        reply = await self._call("rescan_directory", path)
        try:
            return RescanOutcome.from_dict(_decode_reply(reply, "RescanDirectory"))
        except ValueError as e:
            raise BackendError(str(e)) from e

    async def update_tray(self, total_size: int, threshold_bytes: int) -> None:
        await self._call("set_tray_icon", max(0, total_size), max(0, threshold_bytes))

    async def _call(self, member: str, *args: Any) -> Any:
        if self._closed:
            raise BackendError("Scanner connection is closed")
        try:
            return await getattr(self._interface, f"call_{member}")(*args)
        except DBusError as e:
            raise BackendError(f"{member} failed: {e.text}") from e
        except (EOFError, OSError) as e:
            raise BackendError(f"{member} failed: connection lost ({e})") from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for name, handler in self._handlers.items():
            getattr(self._interface, f"off_{_snake(name)}")(handler)
        self._handlers.clear()
        await super().close()
        self._bus.disconnect()
        log.debug("Disconnected from scanner service")


def _snake(name: str) -> str:
    """'ScanCompleted' -> 'scan_completed'."""
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in name).lstrip("_")


def _decode_reply(reply: Any, member: str) -> dict[str, Any]:
    try:
        data = json.loads(reply)
    except (json.JSONDecodeError, TypeError) as e:
        raise BackendError(f"{member} returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise BackendError(f"{member} returned an unexpected reply")
    return data
