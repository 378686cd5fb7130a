"""
composer.py — Emergency message and map link for a location fix.

Pure and deterministic: the same owner name and fix always give the
same output (no timestamps are embedded).

    >>> alert = compose("Thandi", LocationFix(-26.2041, 28.0473))
    >>> alert.location_url
    'https://www.google.com/maps?q=-26.2041,28.0473'

Coordinates are rendered with Python's shortest round-trip float repr,
so every significant digit of the fix survives into the link. Values that
repr would write in exponent form are expanded to plain decimals.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from urllib.parse import quote

from backend.app.core.config import settings
from backend.app.sos.models import LocationFix

MESSAGE_TEMPLATE = (
    "🚨 EMERGENCY ALERT 🚨\n\n"
    "{owner_name} needs help urgently!\n\n"
    "Location: {location_url}\n\n"
    "This is an automated emergency message from {brand}."
)

# Characters JavaScript's encodeURIComponent leaves untouched besides alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass(frozen=True)
class ComposedAlert:
    location_url: str
    message: str           # human-readable text
    encoded_message: str   # percent-encoded for a message-channel URL

    def to_dict(self):
        return {
            "location_url": self.location_url,
            "message": self.message,
        }


def encode_uri_component(text: str) -> str:
    """Percent-encode UTF-8 text with encodeURIComponent semantics."""
    return quote(text, safe=_URI_COMPONENT_SAFE)


def format_coordinate(value: float) -> str:
    """Shortest round-trip decimal, never in exponent notation (1e-05 → 0.00001)."""
    text = repr(value)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    return text


def build_location_url(fix: LocationFix, base_url: Optional[str] = None) -> str:
    base = base_url or settings.MAP_BASE_URL
    return f"{base}?q={format_coordinate(fix.latitude)},{format_coordinate(fix.longitude)}"


def compose(
    owner_name: str,
    fix: LocationFix,
    *,
    map_base_url: Optional[str] = None,
    brand: Optional[str] = None,
) -> ComposedAlert:
    location_url = build_location_url(fix, map_base_url)
    message = MESSAGE_TEMPLATE.format(
        owner_name=owner_name,
        location_url=location_url,
        brand=brand or settings.APP_BRAND,
    )
    return ComposedAlert(
        location_url=location_url,
        message=message,
        encoded_message=encode_uri_component(message),
    )
