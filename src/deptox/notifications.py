"""Desktop notifications for the size threshold."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Callable

from dbus_next import BusType, Variant
from dbus_next.aio import MessageBus
from dbus_next.errors import AuthError, DBusError, InvalidAddressError

from deptox.utils import bytes_to_human

log = logging.getLogger(__name__)

APP_NAME = "deptox"
COOLDOWN_SECONDS = 2.0

_NOTIFY_BUS_NAME = "org.freedesktop.Notifications"
_NOTIFY_OBJECT_PATH = "/org/freedesktop/Notifications"
_NOTIFY_INTERFACE = "org.freedesktop.Notifications"
_EXPIRE_DEFAULT = -1


def threshold_message(total_size: int, threshold_bytes: int, rng: random.Random | None = None) -> tuple[str, str]:
    """Pick a (title, body) variation describing how far over the threshold we are."""
    total = bytes_to_human(total_size)
    excess = bytes_to_human(max(0, total_size - threshold_bytes))
    threshold = bytes_to_human(threshold_bytes)

    variations = [
        ("Time for a Cleanup", f"Dependencies using {total} ({excess} over threshold)"),
        (
            "Dependencies Piling Up",
            f"Your dependencies have reached {total}, exceeding your {threshold} limit",
        ),
        (
            "Storage Alert",
            f"Dependency folders are consuming {total}, {excess} over your set threshold",
        ),
        (
            "Cleanup Recommended",
            f"Dependencies are taking up {total} of space, {excess} more than your limit",
        ),
    ]
    return (rng or random).choice(variations)


class DesktopNotifier:
    """Sends threshold alerts through org.freedesktop.Notifications.

    ``notify_threshold_exceeded`` never raises and never blocks: it applies a
    cooldown, then delivers in a background task. Delivery failures (no
    session bus, no notification daemon) are logged and dropped.
    """

    def __init__(
        self,
        cooldown: float = COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cooldown = cooldown
        self._clock = clock
        self._last_sent: float | None = None
        self._tasks: set[asyncio.Task] = set()

    def notify_threshold_exceeded(self, total_size: int, threshold_bytes: int) -> None:
        now = self._clock()
        if self._last_sent is not None and now - self._last_sent < self._cooldown:
            log.debug("Skipping notification - cooldown active (%.2fs since last)", now - self._last_sent)
            return
        self._last_sent = now

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.debug("No running event loop, skipping notification")
            return

        title, body = threshold_message(total_size, threshold_bytes)
        task = loop.create_task(self._send(title, body))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait(self) -> None:
        """Wait for deliveries still in flight."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _send(self, title: str, body: str) -> None:
        try:
            bus = await MessageBus(bus_type=BusType.SESSION).connect()
        except (DBusError, InvalidAddressError, AuthError, OSError) as e:
            log.debug("Session bus unavailable, skipping notification: %s", e)
            return
        try:
            introspection = await bus.introspect(_NOTIFY_BUS_NAME, _NOTIFY_OBJECT_PATH)
            proxy = bus.get_proxy_object(_NOTIFY_BUS_NAME, _NOTIFY_OBJECT_PATH, introspection)
            notifications = proxy.get_interface(_NOTIFY_INTERFACE)
            await notifications.call_notify(
                APP_NAME,
                0,
                "dialog-warning",
                title,
                body,
                [],
                {"urgency": Variant("y", 1)},
                _EXPIRE_DEFAULT,
            )
            log.debug("Notification sent: %s", title)
        except (DBusError, OSError, EOFError) as e:
            log.debug("Failed to send threshold notification: %s", e)
        finally:
            bus.disconnect()
