"""
Timer abstraction used by the chat store.

Every delay in the widget (typing latency, agent connect, proactive prompts)
goes through a Scheduler so the same store can run on a real asyncio loop or
on a manual clock in tests.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Callable, List, Optional, Protocol, Tuple

log = logging.getLogger(__name__)

Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callback) -> TimerHandle: ...

    def time(self) -> float: ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop (must be called from the loop thread)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callback) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)

    def time(self) -> float:
        return self.loop.time()


class ManualTimer:
    def __init__(self, when: float, callback: Callback):
        self.when = when
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """
    Fake clock. Nothing runs until advance() moves time forward; timers fire in
    deadline order (ties in scheduling order), including timers scheduled by
    callbacks that fall inside the advanced window.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, ManualTimer]] = []

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callback) -> ManualTimer:
        timer = ManualTimer(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (timer.when, next(self._seq), timer))
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._queue if not t.cancelled())

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running due timers. Returns how many fired."""
        deadline = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= deadline:
            when, _, timer = heapq.heappop(self._queue)
            self._now = max(self._now, when)
            if timer.cancelled():
                continue
            timer.cancel()
            timer.callback()
            fired += 1
        self._now = deadline
        return fired

    def run_all(self, limit: int = 1000) -> int:
        """Fire everything pending, however far in the future."""
        fired = 0
        while self.pending and fired < limit:
            next_when = min(t.when for _, _, t in self._queue if not t.cancelled())
            fired += self.advance(next_when - self._now)
        return fired
