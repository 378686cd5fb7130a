"""
hold_gesture.py — Press-and-hold confirmation for the SOS button.

A raw press/release stream becomes a confirmed-intent signal only after
a continuous hold of ``hold_ms``. While holding, a tick every
``tick_ms`` advances ``progress_ratio`` by ``tick_ms / hold_ms`` (clamped
to 1.0) for live feedback.

Two timers run per hold:
    threshold  — one-shot at hold_ms → confirm
    ticker     — repeating at tick_ms → progress

Both are cleared on every exit path: release, confirmation, close().
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from backend.app.core.config import settings
from backend.app.sos.haptics import Haptics
from backend.app.sos.timers import Repeater, Scheduler

logger = logging.getLogger(__name__)

PRESS_PULSE_MS = 200


class HoldGesture:
    """
    Hold-to-confirm gesture.

    Parameters
    ----------
    scheduler : Scheduler
    on_confirmed : callable
        Fired exactly once per hold when the threshold is reached.
    is_blocked : callable, optional
        Returns True while presses must be ignored (dispatch in flight,
        success displayed).
    haptics : Haptics, optional
        Pulsed on press start when present.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_confirmed: Callable[[], None],
        *,
        hold_ms: Optional[int] = None,
        tick_ms: Optional[int] = None,
        is_blocked: Optional[Callable[[], bool]] = None,
        haptics: Optional[Haptics] = None,
    ) -> None:
        self._scheduler = scheduler
        self._on_confirmed = on_confirmed
        self.hold_ms = hold_ms or settings.HOLD_DURATION_MS
        self.tick_ms = tick_ms or settings.HOLD_TICK_MS
        self._is_blocked = is_blocked or (lambda: False)
        self._haptics = haptics

        self.progress_ratio = 0.0
        self._ticks = 0
        self._holding = False
        self._confirmed = False
        self._threshold_handle = None
        self._ticker: Optional[Repeater] = None
        self._progress_listeners: List[Callable[[float], None]] = []

    @property
    def holding(self) -> bool:
        return self._holding

    @property
    def confirmed(self) -> bool:
        return self._confirmed

    def add_progress_listener(self, listener: Callable[[float], None]) -> None:
        self._progress_listeners.append(listener)

    def on_press_start(self) -> bool:
        """Begin a hold. Returns False when the press is ignored."""
        if self._holding or self._confirmed or self._is_blocked():
            return False

        self._holding = True
        self._confirmed = False
        self._ticks = 0
        self._set_progress(0.0)

        self._ticker = Repeater(self._scheduler, self.tick_ms, self._tick)
        self._ticker.start()
        self._threshold_handle = self._scheduler.call_later(self.hold_ms, self._reach_threshold)

        if self._haptics is not None:
            self._haptics.vibrate([PRESS_PULSE_MS])

        logger.debug("Hold started (threshold=%dms, tick=%dms)", self.hold_ms, self.tick_ms)
        return True

    def on_press_end(self) -> bool:
        """Release. Cancels an unconfirmed hold; returns True if one was cancelled."""
        if not self._holding:
            return False
        self._clear_timers()
        self._holding = False
        self._set_progress(0.0)
        logger.debug("Hold released after %d ticks — cancelled", self._ticks)
        return True

    def reset(self) -> None:
        """Back to rest after a completed trigger."""
        self._clear_timers()
        self._holding = False
        self._confirmed = False
        self._ticks = 0
        self._set_progress(0.0)

    def close(self) -> None:
        """Unmount: no callback may fire after this."""
        self._clear_timers()
        self._holding = False

    # ── internals ──

    def _tick(self) -> None:
        self._ticks += 1
        self._set_progress(min(1.0, self._ticks * self.tick_ms / self.hold_ms))

    def _reach_threshold(self) -> None:
        self._threshold_handle = None
        if not self._holding or self._confirmed:
            return
        self._clear_timers()
        self._holding = False
        self._confirmed = True
        self._set_progress(1.0)
        logger.info("Hold threshold reached (%dms) — confirmed", self.hold_ms)
        self._on_confirmed()

    def _clear_timers(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        if self._threshold_handle is not None:
            self._threshold_handle.cancel()
            self._threshold_handle = None

    def _set_progress(self, value: float) -> None:
        self.progress_ratio = value
        for listener in self._progress_listeners:
            listener(value)

