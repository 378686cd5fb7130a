"""
models.py — Shared data structures for the SOS trigger and dispatch system.

Defines:
    • TriggerPhase     — controller state machine phases
    • SOSStatus        — lifecycle of a recorded SOS event
    • ChannelKind      — call / message
    • InvocationStatus — per-invocation issue state
    • Contact, Profile, LocationFix, SOSEvent, TriggerSession
    • ChannelInvocation — one scheduled channel action

═══════════════════════════════════════════════════════════════════════════
TRIGGER STATE MACHINE
═══════════════════════════════════════════════════════════════════════════

    NO_CONTACTS  (display only, no transitions until a contact exists)

    IDLE ──press──▶ HOLDING ──3000 ms──▶ DISPATCHING ──fix ok──▶ SUCCESS
      ▲                │                     │                      │
      └────release─────┘                     │                      │
      ▲                                      │                      │
      └──────────────location failure────────┘                      │
      ▲                                                             │
      └─────────────────────────3000 ms─────────────────────────────┘

Presses are ignored while DISPATCHING or SUCCESS.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class TriggerPhase(str, Enum):
    NO_CONTACTS = "no_contacts"
    IDLE        = "idle"
    HOLDING     = "holding"
    DISPATCHING = "dispatching"
    SUCCESS     = "success"


class SOSStatus(str, Enum):
    """Only ACTIVE is written by the trigger flow."""
    ACTIVE    = "active"
    RESOLVED  = "resolved"
    CANCELLED = "cancelled"


class ChannelKind(str, Enum):
    CALL    = "call"      # tel: URI
    MESSAGE = "message"   # messaging deep link


class InvocationStatus(str, Enum):
    PENDING   = "pending"     # timer armed
    ISSUED    = "issued"      # handed to the platform (not a delivery receipt)
    FAILED    = "failed"      # platform refused / raised
    CANCELLED = "cancelled"   # aborted before its timer fired


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _generate_contact_id() -> str:
    return f"local-{uuid.uuid4().hex[:12]}"


@dataclass
class Contact:
    """A trusted contact owned by exactly one user."""
    owner_id: str
    name: str
    phone: str
    id: str = field(default_factory=_generate_contact_id)
    created_at: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "phone": self.phone,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Contact":
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            name=data["name"],
            phone=data["phone"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass
class Profile:
    id: str
    full_name: str
    phone_number: Optional[str] = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        return cls(
            id=data["id"],
            full_name=data["full_name"],
            phone_number=data.get("phone_number"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


@dataclass(frozen=True)
class LocationFix:
    """A single geolocation fix, captured once per trigger."""
    latitude: float
    longitude: float
    accuracy_m: Optional[float] = None
    captured_at: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy_m": self.accuracy_m,
            "captured_at": self.captured_at.isoformat(),
        }


@dataclass
class SOSEvent:
    """One triggered SOS, as kept in the local history."""
    owner_id: str
    owner_name: str
    latitude: float
    longitude: float
    location_url: str
    timestamp: datetime = field(default_factory=_now)
    status: SOSStatus = SOSStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "owner_name": self.owner_name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "location_url": self.location_url,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SOSEvent":
        return cls(
            owner_id=data["owner_id"],
            owner_name=data["owner_name"],
            latitude=data["latitude"],
            longitude=data["longitude"],
            location_url=data["location_url"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            status=SOSStatus(data.get("status", "active")),
        )


@dataclass
class TriggerSession:
    """Ephemeral state of one hold-to-dispatch attempt."""
    hold_started_at: datetime = field(default_factory=_now)
    progress_ratio: float = 0.0
    phase: TriggerPhase = TriggerPhase.HOLDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hold_started_at": self.hold_started_at.isoformat(),
            "progress_ratio": round(self.progress_ratio, 4),
            "phase": self.phase.value,
        }


@dataclass
class ChannelInvocation:
    """A single scheduled channel action for one contact."""
    contact_id: str
    contact_name: str
    channel: ChannelKind
    phone_digits: str
    target: str                     # URI handed to the launcher
    offset_ms: int                  # delay from dispatch start
    status: InvocationStatus = InvocationStatus.PENDING
    issued_at: Optional[datetime] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contact_id": self.contact_id,
            "contact_name": self.contact_name,
            "channel": self.channel.value,
            "phone_digits": self.phone_digits,
            "offset_ms": self.offset_ms,
            "status": self.status.value,
            "issued_at": self.issued_at.isoformat() if self.issued_at else None,
            "error_message": self.error_message,
        }
