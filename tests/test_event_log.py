"""
test_event_log.py — Bounded newest-first SOS history.

Run with:
    pytest tests/test_event_log.py -v
"""

from __future__ import annotations

import asyncio

from backend.app.core.store import InMemoryStore
from backend.app.sos.event_log import EventLog
from backend.app.sos.models import SOSEvent, SOSStatus


def _make_event(i: int, owner_id: str = "owner-1") -> SOSEvent:
    return SOSEvent(
        owner_id=owner_id,
        owner_name="Thandi",
        latitude=float(i),
        longitude=0.0,
        location_url=f"https://www.google.com/maps?q={float(i)!r},0.0",
    )


def run(coro):
    return asyncio.run(coro)


class TestEventLog:

    def test_newest_first(self):
        async def scenario():
            log = EventLog(InMemoryStore())
            for i in range(3):
                await log.append(_make_event(i))
            return await log.list()
        events = run(scenario())
        assert [e.latitude for e in events] == [2.0, 1.0, 0.0]
        assert all(e.status == SOSStatus.ACTIVE for e in events)

    def test_capped_at_fifty(self):
        async def scenario():
            log = EventLog(InMemoryStore())
            for i in range(51):
                await log.append(_make_event(i))
            return await log.list()
        events = run(scenario())
        assert len(events) == 50
        assert events[0].latitude == 50.0
        # the very first event fell off the tail
        assert events[-1].latitude == 1.0

    def test_fixed_key(self):
        async def scenario():
            store = InMemoryStore()
            await EventLog(store).append(_make_event(0))
            return store.keys(), await store.get("sos_history")
        keys, raw = run(scenario())
        assert keys == ["sos_history"]
        assert raw[0]["status"] == "active"

    def test_filter_by_owner(self):
        async def scenario():
            log = EventLog(InMemoryStore())
            await log.append(_make_event(0, "a"))
            await log.append(_make_event(1, "b"))
            await log.append(_make_event(2, "a"))
            return await log.list("a"), await log.list("nobody")
        mine, none = run(scenario())
        assert [e.latitude for e in mine] == [2.0, 0.0]
        assert none == []

    def test_roundtrip_fields(self):
        async def scenario():
            log = EventLog(InMemoryStore())
            event = _make_event(7)
            await log.append(event)
            return event, (await log.list())[0]
        original, loaded = run(scenario())
        assert loaded == original

    def test_custom_limit(self):
        async def scenario():
            log = EventLog(InMemoryStore(), limit=2)
            for i in range(5):
                await log.append(_make_event(i))
            return await log.list()
        assert [e.latitude for e in run(scenario())] == [4.0, 3.0]
