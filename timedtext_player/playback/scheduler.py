"""Cancellable scheduled tasks for the synthetic progress tick.

WHY: Native progress events are too coarse for word highlighting, so
the controller polls at tick_hz while playing. The tick is the only
thing scheduled ahead of time and must be cancellable synchronously
on pause, seek and teardown.

HOW: A scheduler returns a handle with cancel(). AsyncioScheduler wraps
loop.call_later() (asyncio.TimerHandle already has cancel()).
ManualScheduler is a virtual clock driven by advance(); hosts without
an event loop and the tests use it.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class ScheduledTask(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        ...


class AsyncioScheduler:
    """Schedules callbacks on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class ManualTask:
    """A task on the ManualScheduler's virtual clock."""

    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic virtual clock.

    RULES:
    - Nothing runs until advance() is called
    - Tasks run in due order; ties run in scheduling order
    - A task scheduled during advance() runs in the same advance() if due
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._queue = []  # type: List[Tuple[float, int, ManualTask]]
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTask:
        task = ManualTask(self.now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (task.when, next(self._seq), task))
        return task

    @property
    def pending(self) -> int:
        """Number of scheduled, not-yet-cancelled tasks."""
        return sum(1 for _, _, t in self._queue if not t.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every task that comes due.

        Returns:
            Number of callbacks run.
        """
        deadline = self.now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= deadline:
            when, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self.now = when
            task.callback()
            ran += 1
        self.now = deadline
        return ran
