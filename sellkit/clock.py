from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Protocol, Tuple


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(ABC):
    """Wall time plus one-shot scheduling on the page's event loop."""

    @abstractmethod
    def now(self) -> float:
        """Seconds since the epoch."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""


class SystemClock(Clock):
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, float(delay)), callback)


class _ManualTimer:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock(Clock):
    """Deterministic clock; time moves only through ``advance``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._now = float(start)
        self._seq = itertools.count()
        self._timers: List[Tuple[float, int, _ManualTimer, Callable[[], None]]] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualTimer()
        due = self._now + max(0.0, float(delay))
        heapq.heappush(self._timers, (due, next(self._seq), handle, callback))
        return handle

    def advance(self, seconds: float) -> int:
        """Move time forward, firing due timers in order. Returns the number fired."""
        target = self._now + max(0.0, float(seconds))
        fired = 0
        while self._timers and self._timers[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._timers)
            self._now = due
            if handle.cancelled:
                continue
            callback()
            fired += 1
        self._now = target
        return fired

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._timers if not handle.cancelled)


__all__ = ["TimerHandle", "Clock", "SystemClock", "ManualClock"]
