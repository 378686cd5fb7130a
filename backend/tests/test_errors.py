"""
test_errors.py — Error taxonomy, JSON error envelope and log formatters.

Run:
    pytest backend/tests/test_errors.py -v
"""

from __future__ import annotations

import json
import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.app.core.errors import (
    CapacityExceeded,
    ChannelInvocationFailure,
    LocationDenied,
    LocationError,
    LocationFailureReason,
    LocationTimeout,
    LocationUnavailable,
    SafeHiveError,
    register_error_handlers,
)
from backend.app.core.logging_config import (
    JSONFormatter,
    PrettyFormatter,
    get_request_context,
    set_request_context,
    update_request_context,
)


def _make_app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/capacity")
    async def capacity():
        raise CapacityExceeded("o1", 5)

    @app.get("/denied")
    async def denied():
        raise LocationDenied("User denied Geolocation")

    @app.get("/value")
    async def value():
        raise ValueError("bad coordinate")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaput")

    return app


def _make_record(msg="hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("safehive.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLocationErrors:

    @pytest.mark.parametrize("cls,reason,status", [
        (LocationUnavailable, LocationFailureReason.UNAVAILABLE, 503),
        (LocationTimeout, LocationFailureReason.TIMEOUT, 504),
        (LocationDenied, LocationFailureReason.DENIED, 403),
    ])
    def test_reason_tags(self, cls, reason, status):
        exc = cls()
        assert isinstance(exc, LocationError)
        assert isinstance(exc, SafeHiveError)
        assert exc.reason == reason
        assert exc.status_code == status
        assert exc.error_code == f"LOCATION_{reason.name}"
        assert exc.details["reason"] == reason.value

    def test_channel_failure(self):
        exc = ChannelInvocationFailure("call", "tel:1", "no handler")
        assert exc.status_code == 502
        assert exc.details == {"channel": "call", "target": "tel:1"}


class TestErrorHandlers:

    @pytest.fixture
    def client(self):
        return TestClient(_make_app(), raise_server_exceptions=False)

    def test_safehive_error_envelope(self, client):
        resp = client.get("/capacity")
        assert resp.status_code == 409
        error = resp.json()["error"]
        assert error["code"] == "CAPACITY_EXCEEDED"
        assert error["details"] == {"owner_id": "o1", "limit": 5}
        assert error["path"] == "/capacity"

    def test_location_error(self, client):
        resp = client.get("/denied")
        assert resp.status_code == 403
        assert resp.json()["error"]["details"]["reason"] == "denied"

    def test_value_error_is_422(self, client):
        resp = client.get("/value")
        assert resp.status_code == 422
        assert resp.json()["error"]["message"] == "bad coordinate"

    def test_unhandled_is_500(self, client):
        resp = client.get("/boom")
        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "INTERNAL_ERROR"


class TestLogging:

    def test_request_context_merge(self):
        set_request_context(request_id="abc123", endpoint="/x")
        update_request_context(owner_id="o1")
        assert get_request_context() == {
            "request_id": "abc123", "endpoint": "/x", "owner_id": "o1",
        }
        set_request_context()

    def test_json_formatter_extra_fields(self):
        set_request_context()
        line = JSONFormatter().format(_make_record(channel="message", offset_ms=2000, run_id="RUN-1"))
        entry = json.loads(line)
        assert entry["message"] == "hello"
        assert entry["channel"] == "message"
        assert entry["offset_ms"] == 2000
        assert entry["run_id"] == "RUN-1"
        assert "context" not in entry

    def test_pretty_formatter_tags(self):
        set_request_context(request_id="abcdef123456", owner_id="o1")
        line = PrettyFormatter().format(_make_record("SOS confirmed"))
        set_request_context()
        assert "[abcdef12 owner=o1]" in line
        assert "safehive.test: SOS confirmed" in line
