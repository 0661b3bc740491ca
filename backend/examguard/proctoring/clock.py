import asyncio
import heapq
import itertools
from datetime import datetime, timedelta
from typing import Any, Callable, Optional


class AsyncioClock:
    """Clock backed by the running event loop."""

    def now(self) -> datetime:
        return datetime.utcnow()

    def after(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, callback)

    def cancel(self, handle: Optional[asyncio.TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()


class ManualClock:
    """
    Deterministic clock for tests and offline replays.

    Callbacks run synchronously from ``advance`` in due-time order;
    callbacks scheduled while advancing fire in the same call when due.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 1, 9, 0, 0)
        self._elapsed = 0.0
        self._queue = []
        self._counter = itertools.count()
        self._cancelled = set()

    def now(self) -> datetime:
        return self._now + timedelta(seconds=self._elapsed)

    def after(self, delay: float, callback: Callable[[], Any]) -> int:
        handle = next(self._counter)
        heapq.heappush(self._queue, (self._elapsed + delay, handle, callback))
        return handle

    def cancel(self, handle: Optional[int]) -> None:
        if handle is not None:
            self._cancelled.add(handle)

    @property
    def pending(self) -> int:
        return sum(1 for _, handle, _ in self._queue if handle not in self._cancelled)

    def advance(self, seconds: float) -> None:
        target = self._elapsed + seconds
        while self._queue and self._queue[0][0] <= target:
            due, handle, callback = heapq.heappop(self._queue)
            if handle in self._cancelled:
                self._cancelled.discard(handle)
                continue
            self._elapsed = due
            callback()
        self._elapsed = target
