"""Cancelable countdown timers for lobby starts and auction rounds.

A countdown ticks once per interval, decrementing ``remaining`` and calling
``on_tick``; reaching zero calls ``on_expire`` once. A cancelled countdown
never calls back again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

log = logging.getLogger(__name__)

TickCallback = Callable[[int], None]
ExpireCallback = Callable[[], None]


class CountdownHandle:
    def __init__(
        self,
        seconds: int,
        on_tick: TickCallback | None = None,
        on_expire: ExpireCallback | None = None,
    ) -> None:
        if seconds <= 0:
            raise ValueError("Countdown must be positive")
        self._remaining = seconds
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._cancelled = False
        self._expired = False

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def active(self) -> bool:
        return not self._cancelled and not self._expired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def extend(self, seconds: int) -> int:
        """Push the deadline out from the current remaining time."""
        if self.active and seconds > 0:
            self._remaining += seconds
        return self._remaining

    def tick(self) -> None:
        if not self.active:
            return
        self._remaining -= 1
        if self._remaining > 0:
            if self._on_tick is not None:
                self._on_tick(self._remaining)
            return
        self._remaining = 0
        self._expired = True
        if self._on_expire is not None:
            self._on_expire()


class Clock(Protocol):
    def start(
        self,
        seconds: int,
        *,
        on_tick: TickCallback | None = None,
        on_expire: ExpireCallback | None = None,
    ) -> CountdownHandle: ...


class ManualClock:
    """Clock advanced explicitly; used by tests and offline simulations."""

    def __init__(self) -> None:
        self._handles: list[CountdownHandle] = []

    def start(
        self,
        seconds: int,
        *,
        on_tick: TickCallback | None = None,
        on_expire: ExpireCallback | None = None,
    ) -> CountdownHandle:
        handle = CountdownHandle(seconds, on_tick, on_expire)
        self._handles.append(handle)
        return handle

    @property
    def active_handles(self) -> list[CountdownHandle]:
        return [handle for handle in self._handles if handle.active]

    def advance(self, seconds: int = 1) -> None:
        for _ in range(seconds):
            for handle in list(self._handles):
                handle.tick()
            self._handles = [handle for handle in self._handles if handle.active]


class AsyncioClock:
    """Real-time clock running one task per countdown on the event loop."""

    def __init__(self, interval: float = 1.0) -> None:
        self._interval = interval
        self._tasks: set[asyncio.Task[None]] = set()

    def start(
        self,
        seconds: int,
        *,
        on_tick: TickCallback | None = None,
        on_expire: ExpireCallback | None = None,
    ) -> CountdownHandle:
        handle = _AsyncioCountdown(seconds, on_tick, on_expire)
        task = asyncio.get_running_loop().create_task(self._run(handle))
        handle.attach(task)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return handle

    async def _run(self, handle: CountdownHandle) -> None:
        while handle.active:
            await asyncio.sleep(self._interval)
            try:
                handle.tick()
            except Exception:  # pylint: disable=broad-except
                log.exception("Countdown callback failed")
                handle.cancel()

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()


class _AsyncioCountdown(CountdownHandle):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._task: asyncio.Task[None] | None = None

    def attach(self, task: asyncio.Task[None]) -> None:
        self._task = task

    def cancel(self) -> None:
        super().cancel()
        if self._task is not None and not self._task.done():
            if self._task is not _current_task():
                self._task.cancel()


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


__all__ = [
    "CountdownHandle",
    "Clock",
    "ManualClock",
    "AsyncioClock",
]
