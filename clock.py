# ABOUTME: Injectable scheduler for animation frames and timers
# ABOUTME: AsyncioScheduler drives real sessions; ManualScheduler steps frames/time in tests
from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, Protocol

from settings import FRAME_INTERVAL


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def now(self) -> float: ...
    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle: ...
    def request_frame(self, callback: Callable[[], None]) -> Handle: ...


class AsyncioScheduler:
    """Frames are approximated by a fixed-interval timer on the running loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None, frame_interval: float = FRAME_INTERVAL):
        self._loop = loop
        self.frame_interval = frame_interval

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)

    def request_frame(self, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(self.frame_interval, callback)


class _ManualHandle:
    __slots__ = ("when", "callback", "cancelled")

    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler: time only moves when advance()/step_frames() is called."""

    def __init__(self, start: float = 0.0, frame_interval: float = FRAME_INTERVAL):
        self._now = start
        self.frame_interval = frame_interval
        self._timers: list[tuple[float, int, _ManualHandle]] = []
        self._frames: list[_ManualHandle] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self._now + max(delay, 0.0), callback)
        heapq.heappush(self._timers, (handle.when, next(self._seq), handle))
        return handle

    def request_frame(self, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self._now, callback)
        self._frames.append(handle)
        return handle

    @property
    def pending_frames(self) -> int:
        return sum(1 for h in self._frames if not h.cancelled)

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, h in self._timers if not h.cancelled)

    def _run_timers(self):
        while self._timers and self._timers[0][0] <= self._now:
            _, _, handle = heapq.heappop(self._timers)
            if not handle.cancelled:
                handle.callback()

    def advance(self, seconds: float):
        """Move time forward, firing due timers in order (frames are not run)."""
        target = self._now + seconds
        while self._timers and self._timers[0][0] <= target:
            self._now = max(self._now, self._timers[0][0])
            self._run_timers()
        self._now = target

    def step_frames(self, n: int = 1):
        """Simulate n animation frames, each one frame interval apart."""
        for _ in range(n):
            self.advance(self.frame_interval)
            frames, self._frames = self._frames, []
            for handle in frames:
                if not handle.cancelled:
                    handle.callback()
