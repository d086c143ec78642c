"""Schedulers for the engine's pacing delays.

The engine never sleeps. When it needs to hold a transitional state for a
while, it asks a Scheduler to call it back later. The host picks the
scheduler: real asyncio timers, a virtual clock driven by tests, or
immediate execution for non-interactive use.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable


@runtime_checkable
class ScheduledCall(Protocol):
    """Handle for a pending callback."""

    def cancel(self) -> None:
        """Prevent the callback from running. No-op if it already ran."""
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Runs callbacks after a delay."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        """Arrange for ``callback`` to run after ``delay`` seconds."""
        ...


class _CompletedCall:
    """Handle returned for callbacks that already ran."""

    def cancel(self) -> None:
        pass


class ImmediateScheduler:
    """Runs every callback synchronously, ignoring the delay."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        callback()
        return _CompletedCall()


@dataclass(order=True)
class _ManualCall:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock for tests.

    Time only moves when ``advance`` or ``run_all`` is called. Callbacks due
    at the same instant run in the order they were scheduled.
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._queue: list[_ManualCall] = []
        self._counter = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        """Number of callbacks scheduled and not cancelled."""
        return sum(1 for call in self._queue if not call.cancelled)

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = _ManualCall(due=self._now + max(delay, 0.0), seq=next(self._counter), callback=callback)
        heapq.heappush(self._queue, call)
        return call

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every callback that becomes due.

        Returns:
            Number of callbacks run.
        """
        target = self._now + seconds
        ran = 0
        while self._queue and self._queue[0].due <= target:
            call = heapq.heappop(self._queue)
            if call.cancelled:
                continue
            self._now = call.due
            call.callback()
            ran += 1
        self._now = target
        return ran

    def run_all(self) -> int:
        """Run callbacks until none are left, moving the clock as needed."""
        ran = 0
        while self._queue:
            call = heapq.heappop(self._queue)
            if call.cancelled:
                continue
            self._now = max(self._now, call.due)
            call.callback()
            ran += 1
        return ran


class AsyncioScheduler:
    """Real timers on an asyncio event loop.

    Must be used from code running inside the loop, unless a loop is given
    explicitly.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)
