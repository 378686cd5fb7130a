"""
Centralised error handling — exception hierarchy + FastAPI handlers.

Provides:
    • Domain-specific exception classes
    • Tagged geolocation failures (unavailable / timeout / denied)
    • Consistent JSON error response format
    • Automatic logging of unhandled errors

Usage:
    from backend.app.core.errors import (
        SafeHiveError,
        CapacityExceeded,
        LocationTimeout,
        register_error_handlers,
    )

    raise CapacityExceeded(owner_id="u-1", limit=5)
"""

from __future__ import annotations

import logging
import traceback
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class SafeHiveError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class NotFoundError(SafeHiveError):
    """Resource not found (404)."""

    def __init__(self, resource: str, **identifiers: Any):
        details = {"resource": resource, **identifiers}
        super().__init__(
            message=f"{resource} not found",
            status_code=404,
            error_code="NOT_FOUND",
            details=details,
        )


class ValidationError(SafeHiveError):
    """Input validation failed (422)."""

    def __init__(self, message: str, *, field: Optional[str] = None, **details: Any):
        d = {**details}
        if field:
            d["field"] = field
        super().__init__(
            message=message,
            status_code=422,
            error_code="VALIDATION_ERROR",
            details=d,
        )


class CapacityExceeded(SafeHiveError):
    """Owner already holds the maximum number of contacts (409)."""

    def __init__(self, owner_id: str, limit: int):
        super().__init__(
            message=f"Maximum {limit} emergency contacts allowed",
            status_code=409,
            error_code="CAPACITY_EXCEEDED",
            details={"owner_id": owner_id, "limit": limit},
        )


class StorageError(SafeHiveError):
    """Key-value store read or write failed (503)."""

    def __init__(self, key: str, message: str = ""):
        super().__init__(
            message=f"Storage failure on '{key}': {message}",
            status_code=503,
            error_code="STORAGE_ERROR",
            details={"key": key},
        )


class ChannelInvocationFailure(SafeHiveError):
    """A call/message channel could not be issued (502)."""

    def __init__(self, channel: str, target: str, message: str = ""):
        super().__init__(
            message=f"Channel '{channel}' could not open {target}: {message}",
            status_code=502,
            error_code="CHANNEL_INVOCATION_FAILED",
            details={"channel": channel, "target": target},
        )


# ── Geolocation ──

class LocationFailureReason(str, Enum):
    """Why a location fix could not be obtained."""
    UNAVAILABLE = "unavailable"   # platform has no location capability
    TIMEOUT     = "timeout"       # no fix within the timeout window
    DENIED      = "denied"        # user/platform refused permission


class LocationError(SafeHiveError):
    """
    A single geolocation attempt failed.

    The ``reason`` tag lets callers tell a permission problem (prompt the
    user to enable location) apart from a timeout (suggest a retry).
    """

    reason: LocationFailureReason = LocationFailureReason.UNAVAILABLE
    _status_code = 503

    def __init__(self, message: str = "", **details: Any):
        super().__init__(
            message=message or f"Location {self.reason.value}",
            status_code=self._status_code,
            error_code=f"LOCATION_{self.reason.name}",
            details={"reason": self.reason.value, **details},
        )


class LocationUnavailable(LocationError):
    reason = LocationFailureReason.UNAVAILABLE
    _status_code = 503


class LocationTimeout(LocationError):
    reason = LocationFailureReason.TIMEOUT
    _status_code = 504


class LocationDenied(LocationError):
    reason = LocationFailureReason.DENIED
    _status_code = 403


# ═══════════════════════════════════════════════════════════════════════════
# Error Response Builder
# ═══════════════════════════════════════════════════════════════════════════

def _build_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: Dict[str, Any] = {
        "error": {
            "code": error_code,
            "message": message,
            "status": status_code,
        }
    }

    if details:
        body["error"]["details"] = details

    # Include request path in non-production
    if request and not settings.is_production:
        body["error"]["path"] = str(request.url.path)
        body["error"]["method"] = request.method

    return JSONResponse(status_code=status_code, content=body)


# ═══════════════════════════════════════════════════════════════════════════
# FastAPI Exception Handlers
# ═══════════════════════════════════════════════════════════════════════════

def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app."""

    @app.exception_handler(SafeHiveError)
    async def handle_safehive_error(request: Request, exc: SafeHiveError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "API Error [%s]: %s | details=%s",
            exc.error_code, exc.message, exc.details,
        )
        return _build_error_response(
            exc.status_code, exc.error_code, exc.message,
            exc.details, request,
        )

    @app.exception_handler(ValueError)
    async def handle_value_error(request: Request, exc: ValueError):
        logger.warning("ValueError: %s", exc)
        return _build_error_response(
            422, "VALIDATION_ERROR", str(exc), request=request,
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.critical(
            "Unhandled exception: %s\n%s",
            exc, traceback.format_exc(),
        )
        message = str(exc) if settings.DEBUG else "Internal server error"
        details = (
            {"traceback": traceback.format_exc().split("\n")}
            if settings.DEBUG else None
        )
        return _build_error_response(
            500, "INTERNAL_ERROR", message, details, request,
        )
