"""
dispatcher.py — Staggered two-channel fan-out to trusted contacts.

═══════════════════════════════════════════════════════════════════════════
SCHEDULE
═══════════════════════════════════════════════════════════════════════════

For contact i (0-based) of n:

    t = i × 4000          call     tel:<digits>
    t = i × 4000 + 2000   message  https://wa.me/<digits>?text=<msg>

    Contact   Call      Message
    ───────   ──────    ───────
    0         0 ms      2000 ms
    1         4000 ms   6000 ms
    2         8000 ms   10000 ms
    ...

Exactly 2n invocations, issued in strictly increasing time order.
Opening a dialer or a messaging app moves the device to another app;
firing two of these back-to-back (or for several contacts at once)
makes the platform drop all but the last. The spacing gives each
hand-off time to finish.

═══════════════════════════════════════════════════════════════════════════
FIRE-AND-FORGET
═══════════════════════════════════════════════════════════════════════════

    • dispatch() returns immediately with a DispatchRun
    • invocations are never awaited and never retried
    • each invocation records whether *issuing* it worked
      (ISSUED / FAILED) — this is not a delivery receipt
    • DispatchRun.cancel() aborts invocations whose timer has not fired
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from backend.app.core.config import settings
from backend.app.sos.channels import call as call_channel
from backend.app.sos.channels import message as message_channel
from backend.app.sos.channels.launchers import Launcher
from backend.app.sos.models import (
    ChannelInvocation,
    ChannelKind,
    Contact,
    InvocationStatus,
)
from backend.app.sos.timers import Scheduler

logger = logging.getLogger(__name__)

InvocationCallback = Callable[[ChannelInvocation], None]


class DispatchRun:
    """Handles and outcomes of one fan-out."""

    def __init__(self, invocations: List[ChannelInvocation], location_url: str) -> None:
        self.run_id = f"RUN-{uuid.uuid4().hex[:10].upper()}"
        self.invocations = invocations
        self.location_url = location_url
        self.started_at = datetime.now(timezone.utc)
        self._handles: Dict[int, Any] = {}

    def _attach(self, index: int, handle: Any) -> None:
        self._handles[index] = handle

    def _release(self, index: int) -> None:
        self._handles.pop(index, None)

    def cancel(self) -> int:
        """Abort every invocation still pending. Returns how many were cancelled."""
        cancelled = 0
        for index, handle in list(self._handles.items()):
            handle.cancel()
            self.invocations[index].status = InvocationStatus.CANCELLED
            cancelled += 1
        self._handles.clear()
        if cancelled:
            logger.warning("Dispatch %s: cancelled %d pending invocation(s)", self.run_id, cancelled)
        return cancelled

    def _count(self, status: InvocationStatus) -> int:
        return sum(1 for inv in self.invocations if inv.status == status)

    @property
    def pending(self) -> int:
        return self._count(InvocationStatus.PENDING)

    @property
    def issued(self) -> int:
        return self._count(InvocationStatus.ISSUED)

    @property
    def failed(self) -> int:
        return self._count(InvocationStatus.FAILED)

    @property
    def finished(self) -> bool:
        return self.pending == 0

    @property
    def total_contacts(self) -> int:
        return len({inv.contact_id for inv in self.invocations})

    @property
    def contacts_notified(self) -> int:
        """Contacts with at least one channel issued."""
        return len({
            inv.contact_id for inv in self.invocations
            if inv.status == InvocationStatus.ISSUED
        })

    @property
    def summary(self) -> str:
        return f"{self.contacts_notified} of {self.total_contacts} contacts notified"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "location_url": self.location_url,
            "total_contacts": self.total_contacts,
            "contacts_notified": self.contacts_notified,
            "summary": self.summary,
            "pending": self.pending,
            "issued": self.issued,
            "failed": self.failed,
            "invocations": [inv.to_dict() for inv in self.invocations],
        }


class DispatchScheduler:
    """
    Schedules call + message invocations per contact.

    Parameters
    ----------
    scheduler : Scheduler
    launcher : Launcher
        Platform URI opener shared by both channels.
    stagger_ms, message_offset_ms : int, optional
        Defaults from settings (4000 / 2000).
    """

    def __init__(
        self,
        scheduler: Scheduler,
        launcher: Launcher,
        *,
        stagger_ms: Optional[int] = None,
        message_offset_ms: Optional[int] = None,
        messaging_base_url: Optional[str] = None,
    ) -> None:
        self._scheduler = scheduler
        self._launcher = launcher
        self.stagger_ms = settings.CONTACT_STAGGER_MS if stagger_ms is None else stagger_ms
        self.message_offset_ms = (
            settings.MESSAGE_OFFSET_MS if message_offset_ms is None else message_offset_ms
        )
        self._messaging_base_url = messaging_base_url

    def plan(self, contacts: Sequence[Contact], encoded_message: str) -> List[ChannelInvocation]:
        """Build the invocation list in firing order without scheduling anything."""
        invocations: List[ChannelInvocation] = []
        for i, contact in enumerate(contacts):
            digits = call_channel.normalize_phone(contact.phone)
            base = i * self.stagger_ms
            invocations.append(ChannelInvocation(
                contact_id=contact.id,
                contact_name=contact.name,
                channel=ChannelKind.CALL,
                phone_digits=digits,
                target=call_channel.build_url(digits),
                offset_ms=base,
            ))
            invocations.append(ChannelInvocation(
                contact_id=contact.id,
                contact_name=contact.name,
                channel=ChannelKind.MESSAGE,
                phone_digits=digits,
                target=message_channel.build_url(digits, encoded_message, self._messaging_base_url),
                offset_ms=base + self.message_offset_ms,
            ))
        return invocations

    def dispatch(
        self,
        contacts: Sequence[Contact],
        encoded_message: str,
        location_url: str,
        *,
        on_invocation: Optional[InvocationCallback] = None,
    ) -> DispatchRun:
        """
        Arm every invocation and return immediately.

        Parameters
        ----------
        contacts : sequence of Contact
            Firing order follows this order.
        encoded_message : str
            Percent-encoded alert text for the message channel.
        location_url : str
            Map link (kept on the run for reporting).
        on_invocation : callable, optional
            Called with each invocation once it is issued or failed.
        """
        run = DispatchRun(self.plan(contacts, encoded_message), location_url)

        for index, invocation in enumerate(run.invocations):
            handle = self._scheduler.call_later(
                invocation.offset_ms, self._fire, run, index, on_invocation,
            )
            run._attach(index, handle)

        logger.info(
            "Dispatch %s armed: %d contact(s), %d invocation(s) over %dms",
            run.run_id, len(contacts), len(run.invocations),
            run.invocations[-1].offset_ms if run.invocations else 0,
            extra={"run_id": run.run_id},
        )
        return run

    def _fire(self, run: DispatchRun, index: int, on_invocation: Optional[InvocationCallback]) -> None:
        run._release(index)
        invocation = run.invocations[index]
        if invocation.status != InvocationStatus.PENDING:
            return

        channel = call_channel if invocation.channel == ChannelKind.CALL else message_channel
        try:
            channel.invoke(self._launcher, invocation.target)
            invocation.status = InvocationStatus.ISSUED
            logger.info(
                "Dispatch %s: %s → %s (%s) at +%dms",
                run.run_id, invocation.channel.value, invocation.phone_digits,
                invocation.contact_name, invocation.offset_ms,
                extra={
                    "run_id": run.run_id,
                    "contact_id": invocation.contact_id,
                    "channel": invocation.channel.value,
                    "offset_ms": invocation.offset_ms,
                },
            )
        except Exception as exc:
            # Recorded for reporting only; the no-retry policy stands.
            invocation.status = InvocationStatus.FAILED
            invocation.error_message = str(exc)
            logger.error(
                "Dispatch %s: %s → %s failed: %s",
                run.run_id, invocation.channel.value, invocation.phone_digits, exc,
                extra={
                    "run_id": run.run_id,
                    "contact_id": invocation.contact_id,
                    "channel": invocation.channel.value,
                },
            )
        invocation.issued_at = datetime.now(timezone.utc)

        if run.finished:
            logger.info("Dispatch %s finished: %s", run.run_id, run.summary)

        if on_invocation is not None:
            on_invocation(invocation)
