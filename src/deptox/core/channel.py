"""Fan-out channel for backend events with explicit subscriptions."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from deptox.models.events import ScanEvent

log = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """A registered consumer of an EventChannel.

    Iterate it with ``async for`` to receive events in publish order.
    ``close()`` unregisters it and ends the iteration; calling it again is
    a no-op.
    """

    def __init__(self, channel: EventChannel) -> None:
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, event: ScanEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    async def get(self) -> ScanEvent | None:
        """Next event, or None once the subscription is closed and drained."""
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._channel._unregister(self)
        self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[ScanEvent]:
        while True:
            event = await self.get()
            if event is None:
                return
            yield event


class EventChannel:
    """Delivers every published event to all open subscriptions."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        self._subscriptions.append(subscription)
        log.debug("Event subscription opened (%d active)", len(self._subscriptions))
        return subscription

    def publish(self, event: ScanEvent) -> None:
        for subscription in list(self._subscriptions):
            subscription.put(event)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def close(self) -> None:
        """Close every open subscription."""
        for subscription in list(self._subscriptions):
            subscription.close()

    def _unregister(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            log.debug("Event subscription closed (%d active)", len(self._subscriptions))
