"""
Request middleware — logging, timing, correlation IDs.

Provides:
    • X-Request-ID header injection (correlation ID)
    • Request/response timing (X-Process-Time header)
    • Owner identity (X-User-Id) attached to the log context
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from backend.app.core.logging_config import set_request_context

logger = logging.getLogger(__name__)

# Polling endpoints that would otherwise flood the log at INFO
_QUIET_PREFIXES = ("/docs", "/redoc", "/openapi", "/favicon", "/health", "/api/v1/sos/state")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with timing, inject correlation ID."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex[:16])
        path = request.url.path

        set_request_context(
            request_id=request_id,
            owner_id=request.headers.get("X-User-Id"),
            endpoint=path,
            method=request.method,
        )

        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(
                "%s %s → 500 (%.1fms)",
                request.method, path, duration_ms,
                extra={"duration_ms": duration_ms, "status_code": 500},
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration_ms:.1f}ms"

        if response.status_code >= 400:
            log_level = logging.WARNING
        elif any(path.startswith(p) for p in _QUIET_PREFIXES):
            log_level = logging.DEBUG
        else:
            log_level = logging.INFO
        logger.log(
            log_level,
            "%s %s → %d (%.1fms)",
            request.method, path, response.status_code, duration_ms,
            extra={
                "duration_ms": duration_ms,
                "status_code": response.status_code,
                "endpoint": path,
            },
        )

        set_request_context()

        return response
