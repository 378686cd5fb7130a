"""
Shared fixtures: a virtual millisecond clock and a launcher that
records when each URI was opened on it.
"""

from __future__ import annotations

import heapq
import itertools
from typing import Any, Callable, List, Tuple

import pytest

from backend.app.sos.channels.launchers import Launcher
from backend.app.sos.timers import Scheduler


class VirtualHandle:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class VirtualClock(Scheduler):
    """Deterministic scheduler: time only moves on ``advance()``."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: List[Tuple[float, int, VirtualHandle]] = []
        self._seq = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[..., Any], *args: Any) -> VirtualHandle:
        handle = VirtualHandle(self.now + max(delay_ms, 0), callback, args)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    def now_ms(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        target = self.now + ms
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled():
                continue
            self.now = when
            handle.callback(*handle.args)
        self.now = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled())


class ClockedLauncher(Launcher):
    """Records ``(time_ms, url, new_context)``; optionally refuses some schemes."""

    name = "clocked"

    def __init__(self, clock: VirtualClock, fail_prefixes: Tuple[str, ...] = ()) -> None:
        self.clock = clock
        self.fail_prefixes = fail_prefixes
        self.opened: List[Tuple[float, str, bool]] = []

    def open(self, url: str, *, new_context: bool = False) -> None:
        if self.fail_prefixes and url.startswith(self.fail_prefixes):
            raise RuntimeError(f"no handler for {url.split(':', 1)[0]}")
        self.opened.append((self.clock.now, url, new_context))


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def launcher(clock: VirtualClock) -> ClockedLauncher:
    return ClockedLauncher(clock)
