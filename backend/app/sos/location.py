"""
location.py — Single-shot, bounded geolocation for an SOS trigger.

═══════════════════════════════════════════════════════════════════════════
CONTRACT
═══════════════════════════════════════════════════════════════════════════

    fix = await provider.get_fix()

    • one attempt, high-accuracy requested
    • timeout LOCATION_TIMEOUT_MS (default 10 000 ms)
    • maximum fix age LOCATION_MAX_AGE_MS (default 0: a fix captured
      before the request started is stale and rejected)
    • no automatic retry

Failures are tagged (see core.errors.LocationFailureReason):

    LocationUnavailable   platform has no location capability
    LocationTimeout       no fix inside the timeout window
    LocationDenied        permission refused

═══════════════════════════════════════════════════════════════════════════
POSITION SOURCES
═══════════════════════════════════════════════════════════════════════════

    StaticPositionSource   fixed device coordinates (DEVICE_LATITUDE/LONGITUDE)
    ClientPositionSource   the controlling client pushes a fix on request
    NoPositionSource       no capability — always unavailable
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from backend.app.core.config import settings
from backend.app.core.errors import (
    LocationDenied,
    LocationError,
    LocationTimeout,
    LocationUnavailable,
)
from backend.app.sos.models import LocationFix

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Position Sources
# ═══════════════════════════════════════════════════════════════════════════

class PositionSource:
    """Produces one raw fix. May raise LocationError subclasses."""

    name = "abstract"

    async def current_position(self, *, high_accuracy: bool) -> LocationFix:
        raise NotImplementedError


class NoPositionSource(PositionSource):
    name = "none"

    async def current_position(self, *, high_accuracy: bool) -> LocationFix:
        raise LocationUnavailable("Geolocation is not supported")


class StaticPositionSource(PositionSource):
    """Returns a fresh fix at fixed coordinates."""

    name = "static"

    def __init__(self, latitude: float, longitude: float, accuracy_m: Optional[float] = None) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy_m = accuracy_m

    async def current_position(self, *, high_accuracy: bool) -> LocationFix:
        return LocationFix(self.latitude, self.longitude, self.accuracy_m)


class ClientPositionSource(PositionSource):
    """
    Waits for the controlling client to report its position.

    ``current_position`` opens a pending request; the client answers with
    ``submit()`` or ``deny()``. The provider's timeout bounds the wait.
    """

    name = "client"

    def __init__(self) -> None:
        self._pending: Optional[asyncio.Future] = None

    @property
    def awaiting(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def current_position(self, *, high_accuracy: bool) -> LocationFix:
        loop = asyncio.get_running_loop()
        self._pending = loop.create_future()
        logger.info("Requesting client position (high_accuracy=%s)", high_accuracy)
        try:
            return await self._pending
        finally:
            self._pending = None

    def submit(self, latitude: float, longitude: float, accuracy_m: Optional[float] = None) -> bool:
        """Answer the pending request. Returns False if none is open."""
        if not self.awaiting:
            return False
        self._pending.set_result(LocationFix(latitude, longitude, accuracy_m))
        return True

    def deny(self, message: str = "User denied Geolocation") -> bool:
        if not self.awaiting:
            return False
        self._pending.set_exception(LocationDenied(message))
        return True


def build_position_source(kind: Optional[str] = None) -> PositionSource:
    """Source selected by LOCATION_SOURCE."""
    kind = kind or settings.LOCATION_SOURCE
    if kind == "client":
        return ClientPositionSource()
    if kind == "static":
        if settings.DEVICE_LATITUDE is None or settings.DEVICE_LONGITUDE is None:
            raise ValueError("LOCATION_SOURCE=static requires DEVICE_LATITUDE and DEVICE_LONGITUDE")
        return StaticPositionSource(settings.DEVICE_LATITUDE, settings.DEVICE_LONGITUDE)
    if kind == "none":
        return NoPositionSource()
    raise ValueError(f"Unknown LOCATION_SOURCE: {kind}")


# ═══════════════════════════════════════════════════════════════════════════
# Provider
# ═══════════════════════════════════════════════════════════════════════════

class LocationProvider:
    """Bounded single-attempt wrapper around a PositionSource."""

    def __init__(
        self,
        source: Optional[PositionSource],
        *,
        timeout_ms: Optional[int] = None,
        max_age_ms: Optional[int] = None,
        high_accuracy: Optional[bool] = None,
    ) -> None:
        self.source = source
        self.timeout_ms = settings.LOCATION_TIMEOUT_MS if timeout_ms is None else timeout_ms
        self.max_age_ms = settings.LOCATION_MAX_AGE_MS if max_age_ms is None else max_age_ms
        self.high_accuracy = settings.LOCATION_HIGH_ACCURACY if high_accuracy is None else high_accuracy

    async def get_fix(self) -> LocationFix:
        """
        Obtain one fix.

        Raises
        ------
        LocationUnavailable, LocationTimeout, LocationDenied
        """
        if self.source is None:
            raise LocationUnavailable("Geolocation is not supported")

        requested_at = datetime.now(timezone.utc)
        try:
            fix = await asyncio.wait_for(
                self.source.current_position(high_accuracy=self.high_accuracy),
                timeout=self.timeout_ms / 1000.0,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("Location fix timed out after %dms", self.timeout_ms)
            raise LocationTimeout(
                f"Location request timed out after {self.timeout_ms}ms",
                timeout_ms=self.timeout_ms,
            ) from exc
        except LocationError as exc:
            logger.warning("Location fix failed [%s]: %s", exc.reason.value, exc.message)
            raise

        oldest_allowed = requested_at - timedelta(milliseconds=self.max_age_ms)
        if fix.captured_at < oldest_allowed:
            logger.warning("Rejected stale fix captured at %s", fix.captured_at.isoformat())
            raise LocationUnavailable(
                "Only a cached position was available",
                captured_at=fix.captured_at.isoformat(),
            )

        logger.info(
            "Location fix via %s: %s,%s",
            self.source.name, fix.latitude, fix.longitude,
        )
        return fix
