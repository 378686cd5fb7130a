"""
Health check aggregation — probe for the subsystems an SOS depends on.

Checks:
    • Key-value store (contacts, profiles, history)
    • Channel launcher configuration
    • Location source configuration

Returns a structured report suitable for liveness/readiness probes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from backend.app.core.config import settings
from backend.app.core.store import KeyValueStore

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # SOS still works, something is off
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus = HealthStatus.HEALTHY
    latency_ms: float = 0.0
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            d["message"] = self.message
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class HealthReport:
    status: HealthStatus = HealthStatus.HEALTHY
    version: str = settings.APP_VERSION
    environment: str = settings.ENVIRONMENT
    timestamp: str = ""
    uptime_seconds: float = 0.0
    components: List[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "version": self.version,
            "environment": self.environment,
            "timestamp": self.timestamp or datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(self.uptime_seconds, 1),
            "components": [c.to_dict() for c in self.components],
        }


_start_time = time.monotonic()


async def check_store(store: KeyValueStore) -> ComponentHealth:
    """Contacts and history are unreadable without the store."""
    comp = ComponentHealth(name=f"store:{store.backend}")
    start = time.monotonic()
    if await store.ping():
        comp.message = "Store reachable"
    else:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "Store unreachable"
    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


def check_channels() -> ComponentHealth:
    comp = ComponentHealth(name="channels")
    comp.details = {
        "provider": settings.CHANNEL_PROVIDER,
        "stagger_ms": settings.CONTACT_STAGGER_MS,
        "message_offset_ms": settings.MESSAGE_OFFSET_MS,
    }
    if settings.CHANNEL_PROVIDER == "simulation":
        comp.status = HealthStatus.DEGRADED
        comp.message = "Simulation launcher: channels are logged, not opened"
    return comp


def check_location() -> ComponentHealth:
    comp = ComponentHealth(name="location")
    comp.details = {
        "source": settings.LOCATION_SOURCE,
        "timeout_ms": settings.LOCATION_TIMEOUT_MS,
    }
    if settings.LOCATION_SOURCE == "none":
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "No location capability: every SOS attempt will fail"
    return comp


async def run_health_check(store: KeyValueStore) -> HealthReport:
    """Run all health checks and aggregate into a report."""
    report = HealthReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=time.monotonic() - _start_time,
    )

    report.components.append(await check_store(store))
    report.components.append(check_channels())
    report.components.append(check_location())

    statuses = [c.status for c in report.components]
    if HealthStatus.UNHEALTHY in statuses:
        report.status = HealthStatus.UNHEALTHY
    elif HealthStatus.DEGRADED in statuses:
        report.status = HealthStatus.DEGRADED
    else:
        report.status = HealthStatus.HEALTHY

    return report
