"""
Pagesmith Kernel — Debounce and Throttle

Timer helpers for the synchronization controller, built on the running
asyncio loop (`call_later`). Both run their callback as a task on that loop
and keep a handle to it so callers can `await drain()`.

Debouncer — only the last value pushed within the quiet window is delivered.
Throttle  — delivers at most once per interval; the last value pushed during
            the interval is delivered when it ends.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


class Debouncer(Generic[T]):
    """
    Coalesces pushes. A push cancels the pending one and restarts the window.

    Must be used from inside a running event loop.
    """

    def __init__(self, delay: float, callback: Callable[[T], Awaitable[None]], name: str = "") -> None:
        self.delay = delay
        self.name = name
        self._callback = callback
        self._value: object = _MISSING
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._value is not _MISSING

    def peek(self) -> T | None:
        """The pending value, or None."""
        return None if self._value is _MISSING else self._value  # type: ignore[return-value]

    def push(self, value: T) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
            logger.debug("debounce[%s]: superseded pending value", self.name)
        self._value = value
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> bool:
        """Drop the pending value without delivering it. Returns True if one was pending."""
        had_pending = self.pending
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._value = _MISSING
        return had_pending

    async def flush(self) -> None:
        """Deliver the pending value now (if any) and wait for it."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._value is _MISSING:
            return
        value = self._value
        self._value = _MISSING
        await self._callback(value)  # type: ignore[arg-type]

    async def drain(self) -> None:
        """Wait for deliveries already started by the timer."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _fire(self) -> None:
        self._handle = None
        if self._value is _MISSING:
            return
        value = self._value
        self._value = _MISSING
        task = asyncio.get_running_loop().create_task(self._callback(value))  # type: ignore[arg-type]
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


class Throttle(Generic[T]):
    """
    Leading + trailing throttle.

    The first push in a quiet period is delivered immediately; pushes during
    the following interval are collapsed into one trailing delivery.
    """

    def __init__(self, interval: float, callback: Callable[[T], Awaitable[None]], name: str = "") -> None:
        self.interval = interval
        self.name = name
        self._callback = callback
        self._value: object = _MISSING
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._value is not _MISSING

    def push(self, value: T) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is None:
            self._deliver(loop, value)
            self._handle = loop.call_later(self.interval, self._window_closed)
        else:
            self._value = value

    def cancel(self) -> None:
        """Drop the trailing value and close the window."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._value = _MISSING

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _window_closed(self) -> None:
        self._handle = None
        if self._value is _MISSING:
            return
        value = self._value
        self._value = _MISSING
        loop = asyncio.get_running_loop()
        self._deliver(loop, value)  # type: ignore[arg-type]
        self._handle = loop.call_later(self.interval, self._window_closed)

    def _deliver(self, loop: asyncio.AbstractEventLoop, value: T) -> None:
        task = loop.create_task(self._callback(value))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
