"""Trailing-edge debounce for side effects that must not be flooded."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

log = logging.getLogger(__name__)

DEFAULT_DELAY = 0.5

Effect = Callable[[], Awaitable[None]]


class DebouncedScheduler:
    """Coalesces bursts of ``schedule()`` calls into one run of *effect*.

    Each ``schedule()`` re-arms a single timer, so only the call after the
    quiet period runs. The effect is invoked when the timer fires, not when
    it is armed, so it always observes the state current at that moment.
    Must be used from the thread running the event loop.
    """

    def __init__(self, effect: Effect, delay: float = DEFAULT_DELAY) -> None:
        self._effect = effect
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        """Arm the timer, replacing any timer armed earlier."""
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        """Drop the pending run without executing it."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def flush(self) -> None:
        """Run a pending effect now and wait for runs already in flight."""
        if self._handle is not None:
            self.cancel()
            await self._run()
        await self.wait()

    async def wait(self) -> None:
        """Wait for effect runs that already started."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.get_running_loop().create_task(self._run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self) -> None:
        try:
            await self._effect()
        except Exception:
            log.exception("Debounced side effect failed")
