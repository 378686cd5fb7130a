"""
Pydantic schemas for the SOS API.

Separated from the route handlers so they are reusable across the
codebase (routers, tests).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Mom"])
    phone: str = Field(
        ..., min_length=1, max_length=32, examples=["+27 82 111 2222"],
        description="Include country code (e.g. +27 for South Africa)",
    )

    @field_validator("name", "phone")
    @classmethod
    def strip_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=32)


class LocationReport(BaseModel):
    """A fix reported by the client in answer to a pending request."""
    latitude: float = Field(..., ge=-90.0, le=90.0, examples=[-26.2041])
    longitude: float = Field(..., ge=-180.0, le=180.0, examples=[28.0473])
    accuracy_m: Optional[float] = Field(None, ge=0.0, examples=[12.5])


class LocationDenial(BaseModel):
    message: str = Field("User denied Geolocation", max_length=200)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class ContactOut(BaseModel):
    id: str
    owner_id: str
    name: str
    phone: str
    created_at: str


class ContactListOut(BaseModel):
    contacts: List[ContactOut]
    count: int
    max_contacts: int
    can_add: bool


class ProfileOut(BaseModel):
    id: str
    full_name: str
    phone_number: Optional[str] = None
    created_at: str
    updated_at: str


class SOSStateOut(BaseModel):
    owner_id: str
    owner_name: str
    phase: str
    button_text: str
    progress_ratio: float
    contact_count: int
    recipient_summary: str
    session: Optional[Dict[str, Any]] = None
    last_alert: Optional[Dict[str, Any]] = None
    dispatch: Optional[Dict[str, Any]] = None
    awaiting_location: bool = False


class PressResult(BaseModel):
    accepted: bool
    state: SOSStateOut


class CancelDispatchResult(BaseModel):
    cancelled: int
    state: SOSStateOut


class SOSEventOut(BaseModel):
    owner_id: str
    owner_name: str
    latitude: float
    longitude: float
    location_url: str
    timestamp: str
    status: str


class HistoryOut(BaseModel):
    events: List[SOSEventOut]
    count: int
