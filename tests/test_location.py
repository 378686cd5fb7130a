"""
test_location.py — Bounded single-shot geolocation.

Run with:
    pytest tests/test_location.py -v
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from backend.app.core.errors import (
    LocationDenied,
    LocationFailureReason,
    LocationTimeout,
    LocationUnavailable,
)
from backend.app.sos.location import (
    ClientPositionSource,
    LocationProvider,
    NoPositionSource,
    PositionSource,
    StaticPositionSource,
    build_position_source,
)
from backend.app.sos.models import LocationFix


class CachedSource(PositionSource):
    """Always answers with a fix captured a minute ago."""

    name = "cached"

    async def current_position(self, *, high_accuracy):
        return LocationFix(1.0, 2.0, captured_at=datetime.now(timezone.utc) - timedelta(minutes=1))


class RecordingSource(StaticPositionSource):
    def __init__(self):
        super().__init__(1.0, 2.0)
        self.calls = []

    async def current_position(self, *, high_accuracy):
        self.calls.append(high_accuracy)
        return await super().current_position(high_accuracy=high_accuracy)


def run(coro):
    return asyncio.run(coro)


class TestProvider:

    def test_static_fix(self):
        fix = run(LocationProvider(StaticPositionSource(-26.2041, 28.0473)).get_fix())
        assert (fix.latitude, fix.longitude) == (-26.2041, 28.0473)

    def test_requests_high_accuracy_once(self):
        source = RecordingSource()
        run(LocationProvider(source, high_accuracy=True).get_fix())
        assert source.calls == [True]

    def test_defaults(self):
        provider = LocationProvider(StaticPositionSource(1.0, 2.0))
        assert provider.timeout_ms == 10_000
        assert provider.max_age_ms == 0
        assert provider.high_accuracy is True

    def test_late_fix_inside_default_timeout_accepted(self):
        async def scenario():
            source = ClientPositionSource()
            task = asyncio.ensure_future(LocationProvider(source).get_fix())
            await asyncio.sleep(0.2)
            assert source.submit(-26.2041, 28.0473)
            return await task
        fix = run(scenario())
        assert (fix.latitude, fix.longitude) == (-26.2041, 28.0473)

    def test_no_source_is_unavailable(self):
        with pytest.raises(LocationUnavailable) as exc_info:
            run(LocationProvider(None).get_fix())
        assert exc_info.value.reason == LocationFailureReason.UNAVAILABLE

    def test_no_capability(self):
        with pytest.raises(LocationUnavailable):
            run(LocationProvider(NoPositionSource()).get_fix())

    def test_timeout(self):
        with pytest.raises(LocationTimeout) as exc_info:
            run(LocationProvider(ClientPositionSource(), timeout_ms=10).get_fix())
        assert exc_info.value.status_code == 504
        assert exc_info.value.details["reason"] == "timeout"

    def test_stale_fix_rejected(self):
        with pytest.raises(LocationUnavailable):
            run(LocationProvider(CachedSource(), max_age_ms=0).get_fix())

    def test_cached_fix_within_max_age(self):
        fix = run(LocationProvider(CachedSource(), max_age_ms=120_000).get_fix())
        assert fix.latitude == 1.0


class TestClientSource:

    def test_submit_answers_pending_request(self):
        async def scenario():
            source = ClientPositionSource()
            provider = LocationProvider(source, timeout_ms=1000)
            task = asyncio.ensure_future(provider.get_fix())
            await asyncio.sleep(0)
            assert source.awaiting
            assert source.submit(-26.2041, 28.0473, 12.5) is True
            fix = await task
            assert fix.accuracy_m == 12.5
            assert not source.awaiting
        run(scenario())

    def test_deny(self):
        async def scenario():
            source = ClientPositionSource()
            task = asyncio.ensure_future(LocationProvider(source, timeout_ms=1000).get_fix())
            await asyncio.sleep(0)
            assert source.deny() is True
            with pytest.raises(LocationDenied) as exc_info:
                await task
            assert exc_info.value.status_code == 403
        run(scenario())

    def test_nothing_pending(self):
        source = ClientPositionSource()
        assert source.submit(1.0, 2.0) is False
        assert source.deny() is False


class TestBuildSource:

    def test_kinds(self):
        assert isinstance(build_position_source("client"), ClientPositionSource)
        assert isinstance(build_position_source("none"), NoPositionSource)

    def test_unknown(self):
        with pytest.raises(ValueError):
            build_position_source("satellite")
