"""
timers.py — Millisecond timer scheduling on the asyncio event loop.

Everything time-driven in the trigger flow (hold threshold, progress
ticks, success window, staggered channel invocations) goes through a
``Scheduler`` so the same code runs on the real loop and under a
virtual clock in tests.

    handle = scheduler.call_later(4000, fire, invocation)
    handle.cancel()
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional


class Scheduler:
    """Contract: ``call_later(delay_ms, callback, *args) -> handle``.

    Returned handles expose ``cancel()`` and ``cancelled()``.
    """

    def call_later(self, delay_ms: float, callback: Callable[..., Any], *args: Any):
        raise NotImplementedError

    def now_ms(self) -> float:
        raise NotImplementedError


class LoopScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_ms: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return self.loop.call_later(max(delay_ms, 0) / 1000.0, callback, *args)

    def now_ms(self) -> float:
        return self.loop.time() * 1000.0


class Repeater:
    """Fixed-interval repeating timer built on ``call_later`` rescheduling."""

    def __init__(self, scheduler: Scheduler, interval_ms: float, callback: Callable[[], Any]) -> None:
        self._scheduler = scheduler
        self._interval_ms = interval_ms
        self._callback = callback
        self._handle = None
        self._stopped = True

    @property
    def running(self) -> bool:
        return not self._stopped

    def start(self) -> None:
        self._stopped = False
        self._arm()

    def _arm(self) -> None:
        self._handle = self._scheduler.call_later(self._interval_ms, self._fire)

    def _fire(self) -> None:
        if self._stopped:
            return
        self._callback()
        if not self._stopped:
            self._arm()

    def cancel(self) -> None:
        self._stopped = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
