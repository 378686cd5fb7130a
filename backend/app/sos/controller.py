"""
controller.py — SOS trigger state machine.

Orchestrates one owner's trigger protocol:

    ┌────────────┐  press   ┌────────────┐  3000 ms  ┌──────────────┐
    │    IDLE    │ ───────▶ │  HOLDING   │ ────────▶ │ DISPATCHING  │
    └────────────┘ ◀─────── └────────────┘           └──────┬───────┘
          ▲         release                                 │
          │                                   ┌─────────────┴─────────┐
          │  location / internal failure      │ 1. location.get_fix() │
          ├───────────────────────────────────│ 2. compose()          │
          │  (alert shown, no event written)  │ 3. event_log.append() │
          │                                   │ 4. dispatcher.dispatch│
          │                                   └─────────────┬─────────┘
          │          3000 ms                         ┌──────▼───────┐
          └──────────────────────────────────────────│   SUCCESS    │
                                                     └──────────────┘

    NO_CONTACTS is display-only: presses are ignored until a contact
    exists and refresh() is called.

Every failure inside DISPATCHING is caught here and turned into the
single user-facing alert FAILURE_MESSAGE. No retry is attempted and no
partial-success count is reported for a failed attempt.

Presses are ignored while DISPATCHING or SUCCESS, so only one trigger is
being prepared at a time. A fan-out outlives the SUCCESS window (five
contacts fire over 18 s); every unfinished run is kept so that
cancel_dispatch() reaches all of them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from backend.app.core.config import settings
from backend.app.core.errors import LocationError
from backend.app.sos.composer import compose
from backend.app.sos.contacts import ContactBook
from backend.app.sos.dispatcher import DispatchRun, DispatchScheduler
from backend.app.sos.event_log import EventLog
from backend.app.sos.haptics import TRIGGER_PATTERN, Haptics
from backend.app.sos.hold_gesture import HoldGesture
from backend.app.sos.location import LocationProvider
from backend.app.sos.models import (
    ChannelInvocation,
    Contact,
    SOSEvent,
    TriggerPhase,
    TriggerSession,
)
from backend.app.sos.profiles import DEFAULT_NAME, ProfileStore
from backend.app.sos.timers import Scheduler

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = (
    "Failed to send SOS. Please try again or call emergency services directly."
)

BUTTON_TEXT = {
    TriggerPhase.NO_CONTACTS: "No Emergency Contacts",
    TriggerPhase.IDLE:        "Hold to Send SOS",
    TriggerPhase.HOLDING:     "Keep Holding...",
    TriggerPhase.DISPATCHING: "Sending SOS...",
    TriggerPhase.SUCCESS:     "SOS Sent Successfully!",
}


@dataclass
class AlertNotice:
    """User-facing failure alert. ``reason`` is the location failure tag or "internal"."""
    message: str
    reason: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "reason": self.reason,
            "created_at": self.created_at.isoformat(),
        }


class SOSController:
    """
    One owner's SOS button.

    All collaborators are injected so tests can run on in-memory stores,
    a fake position source and a virtual clock.
    """

    def __init__(
        self,
        owner_id: str,
        *,
        contacts: ContactBook,
        profiles: ProfileStore,
        event_log: EventLog,
        location: LocationProvider,
        dispatcher: DispatchScheduler,
        scheduler: Scheduler,
        owner_email: Optional[str] = None,
        haptics: Optional[Haptics] = None,
        on_alert: Optional[Callable[[AlertNotice], None]] = None,
        hold_ms: Optional[int] = None,
        tick_ms: Optional[int] = None,
        success_ms: Optional[int] = None,
    ) -> None:
        self.owner_id = owner_id
        self.owner_email = owner_email
        self._contact_book = contacts
        self._profiles = profiles
        self._event_log = event_log
        self._location = location
        self._dispatcher = dispatcher
        self._scheduler = scheduler
        self._haptics = haptics
        self._on_alert = on_alert
        self.success_ms = settings.SUCCESS_DISPLAY_MS if success_ms is None else success_ms

        self.phase = TriggerPhase.NO_CONTACTS
        self.contacts: List[Contact] = []
        self.owner_name = DEFAULT_NAME
        self.session: Optional[TriggerSession] = None
        self.last_alert: Optional[AlertNotice] = None
        self.last_event: Optional[SOSEvent] = None
        self.active_run: Optional[DispatchRun] = None
        self._runs: List[DispatchRun] = []
        self.trigger_count = 0

        self._trigger_task: Optional[asyncio.Task] = None
        self._success_handle = None

        self._gesture = HoldGesture(
            scheduler,
            self._on_confirmed,
            hold_ms=hold_ms,
            tick_ms=tick_ms,
            is_blocked=self._presses_blocked,
            haptics=haptics,
        )
        self._gesture.add_progress_listener(self._on_progress)

    # ── state ──

    @property
    def progress_ratio(self) -> float:
        return self._gesture.progress_ratio

    @property
    def button_text(self) -> str:
        return BUTTON_TEXT[self.phase]

    @property
    def recipient_summary(self) -> str:
        n = len(self.contacts)
        return (
            f"Your location and emergency alert will be sent to "
            f"{n} contact{'' if n == 1 else 's'}."
        )

    def _set_phase(self, phase: TriggerPhase) -> None:
        if phase != self.phase:
            logger.debug(
                "Phase %s → %s", self.phase.value, phase.value,
                extra={"owner_id": self.owner_id, "phase": phase.value},
            )
        self.phase = phase
        if self.session is not None:
            self.session.phase = phase

    def _rest_phase(self) -> TriggerPhase:
        return TriggerPhase.IDLE if self.contacts else TriggerPhase.NO_CONTACTS

    def _presses_blocked(self) -> bool:
        return self.phase in (
            TriggerPhase.DISPATCHING, TriggerPhase.SUCCESS, TriggerPhase.NO_CONTACTS,
        )

    async def refresh(self) -> None:
        """Reload contacts and display name from the stores."""
        profile = await self._profiles.ensure(self.owner_id, self.owner_email)
        self.owner_name = profile.full_name
        self.contacts = await self._contact_book.list(self.owner_id)
        if self.phase == TriggerPhase.HOLDING and not self.contacts:
            # Nobody left to alert: drop the hold instead of letting it confirm
            self._gesture.on_press_end()
            self.session = None
            logger.info("Hold dropped: last contact removed", extra={"owner_id": self.owner_id})
            self._set_phase(TriggerPhase.NO_CONTACTS)
        elif self.phase in (TriggerPhase.IDLE, TriggerPhase.NO_CONTACTS):
            self._set_phase(self._rest_phase())

    # ── input ──

    def press_start(self) -> bool:
        """Button pressed. Returns False when the press is ignored."""
        if self.phase != TriggerPhase.IDLE:
            logger.debug("Press ignored in phase %s", self.phase.value)
            return False
        if not self._gesture.on_press_start():
            return False
        self.session = TriggerSession()
        self._set_phase(TriggerPhase.HOLDING)
        return True

    def press_end(self) -> bool:
        """Button released. Returns True if a hold was cancelled."""
        if self.phase != TriggerPhase.HOLDING:
            return False
        self._gesture.on_press_end()
        self.session = None
        self._set_phase(TriggerPhase.IDLE)
        logger.info("SOS hold cancelled before threshold", extra={"owner_id": self.owner_id})
        return True

    def cancel_dispatch(self) -> int:
        """Abort every invocation not yet fired, across all unfinished runs."""
        cancelled = sum(run.cancel() for run in self._runs)
        self._runs = []
        return cancelled

    @property
    def pending_runs(self) -> List[DispatchRun]:
        """Runs that still have invocations armed."""
        return [run for run in self._runs if not run.finished]

    def _on_progress(self, value: float) -> None:
        if self.session is not None:
            self.session.progress_ratio = value

    # ── trigger protocol ──

    def _on_confirmed(self) -> None:
        if self.phase != TriggerPhase.HOLDING:
            return
        if not self.contacts:
            logger.warning(
                "SOS confirmation dropped for %s: no contacts", self.owner_id,
                extra={"owner_id": self.owner_id},
            )
            self._return_to_rest()
            return
        self._set_phase(TriggerPhase.DISPATCHING)
        self.trigger_count += 1
        if self._haptics is not None:
            self._haptics.vibrate(TRIGGER_PATTERN)
        logger.warning(
            "SOS confirmed for %s — %d contact(s)", self.owner_id, len(self.contacts),
            extra={"owner_id": self.owner_id, "phase": self.phase.value},
        )
        self._trigger_task = asyncio.get_running_loop().create_task(self._run_trigger())

    async def _run_trigger(self) -> None:
        contacts = list(self.contacts)
        try:
            fix = await self._location.get_fix()
            alert = compose(self.owner_name, fix)
            event = SOSEvent(
                owner_id=self.owner_id,
                owner_name=self.owner_name,
                latitude=fix.latitude,
                longitude=fix.longitude,
                location_url=alert.location_url,
            )
            await self._event_log.append(event)
            run = self._dispatcher.dispatch(
                contacts,
                alert.encoded_message,
                alert.location_url,
                on_invocation=self._on_invocation,
            )
        except LocationError as exc:
            self._fail(exc.reason.value, exc)
            return
        except Exception as exc:
            logger.exception("SOS trigger failed for %s", self.owner_id)
            self._fail("internal", exc)
            return

        self.last_event = event
        self.active_run = run
        self._runs = self.pending_runs + [run]
        self._set_phase(TriggerPhase.SUCCESS)
        self._success_handle = self._scheduler.call_later(self.success_ms, self._finish_success)

    def _on_invocation(self, invocation: ChannelInvocation) -> None:
        run = next(
            (r for r in self._runs if any(inv is invocation for inv in r.invocations)),
            None,
        )
        if run is None or not run.finished:
            return
        self._runs.remove(run)
        logger.info(
            "SOS for %s: %s %s", self.owner_id, run.run_id, run.summary,
            extra={"owner_id": self.owner_id, "run_id": run.run_id},
        )

    def _fail(self, reason: str, exc: Exception) -> None:
        logger.error(
            "SOS attempt failed [%s]: %s", reason, exc,
            extra={"owner_id": self.owner_id, "phase": self.phase.value},
        )
        notice = AlertNotice(message=FAILURE_MESSAGE, reason=reason)
        self.last_alert = notice
        self._return_to_rest()
        if self._on_alert is not None:
            self._on_alert(notice)

    def _finish_success(self) -> None:
        self._success_handle = None
        self._return_to_rest()

    def _return_to_rest(self) -> None:
        self._gesture.reset()
        self.session = None
        self._trigger_task = None
        self._set_phase(self._rest_phase())

    async def settle(self) -> None:
        """Wait for an in-flight DISPATCHING step to reach SUCCESS or IDLE."""
        task = self._trigger_task
        if task is not None:
            await asyncio.shield(task)

    def close(self) -> None:
        """Unmount: clear every timer owned by the button.

        Armed dispatch invocations keep running; use cancel_dispatch().
        """
        self._gesture.close()
        if self._success_handle is not None:
            self._success_handle.cancel()
            self._success_handle = None
        if self._trigger_task is not None and not self._trigger_task.done():
            self._trigger_task.cancel()
        self._trigger_task = None
        self.session = None

    def snapshot(self) -> Dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "owner_name": self.owner_name,
            "phase": self.phase.value,
            "button_text": self.button_text,
            "progress_ratio": round(self.progress_ratio, 4),
            "contact_count": len(self.contacts),
            "recipient_summary": self.recipient_summary,
            "session": self.session.to_dict() if self.session else None,
            "last_alert": self.last_alert.to_dict() if self.last_alert else None,
            "dispatch": self.active_run.to_dict() if self.active_run else None,
        }
