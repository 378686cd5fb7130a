"""
test_store.py — Key-value store backends and the health probe built on them.

Run:
    pytest backend/tests/test_store.py -v
"""

from __future__ import annotations

import asyncio

import pytest

from backend.app.core.errors import StorageError
from backend.app.core.health import HealthStatus, check_store, run_health_check
from backend.app.core.store import InMemoryStore, RedisStore, get_store

# Nothing listens on port 1
UNREACHABLE_REDIS = "redis://127.0.0.1:1/0"


def run(coro):
    return asyncio.run(coro)


class TestInMemoryStore:

    def test_default_when_missing(self):
        assert run(InMemoryStore().get("nope", default=[])) == []

    def test_json_roundtrip(self):
        async def scenario():
            store = InMemoryStore()
            await store.set("k", {"a": [1, 2.5, "x"], "b": None})
            return await store.get("k")
        assert run(scenario()) == {"a": [1, 2.5, "x"], "b": None}

    def test_get_returns_a_copy(self):
        async def scenario():
            store = InMemoryStore()
            await store.set("k", [1])
            first = await store.get("k")
            first.append(2)
            return await store.get("k")
        assert run(scenario()) == [1]

    def test_delete(self):
        async def scenario():
            store = InMemoryStore()
            await store.set("k", 1)
            await store.delete("k")
            await store.delete("k")
            return await store.get("k")
        assert run(scenario()) is None


class TestRedisStore:

    def test_unreachable_raises_storage_error(self):
        store = RedisStore(UNREACHABLE_REDIS)
        with pytest.raises(StorageError) as exc_info:
            run(store.get("contacts_o1"))
        assert exc_info.value.status_code == 503
        assert exc_info.value.details == {"key": "contacts_o1"}

    def test_ping_false_when_unreachable(self):
        assert run(RedisStore(UNREACHABLE_REDIS).ping()) is False


class TestGetStore:

    def test_backends(self):
        assert isinstance(get_store("memory"), InMemoryStore)
        assert isinstance(get_store("redis"), RedisStore)

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_store("sqlite")


class TestHealth:

    def test_memory_store_healthy(self):
        comp = run(check_store(InMemoryStore()))
        assert comp.status == HealthStatus.HEALTHY
        assert comp.name == "store:memory"

    def test_unreachable_store_unhealthy(self):
        comp = run(check_store(RedisStore(UNREACHABLE_REDIS)))
        assert comp.status == HealthStatus.UNHEALTHY

    def test_simulation_channels_degrade_report(self, monkeypatch):
        from backend.app.core.config import settings

        monkeypatch.setattr(settings, "CHANNEL_PROVIDER", "simulation")
        monkeypatch.setattr(settings, "LOCATION_SOURCE", "client")
        report = run(run_health_check(InMemoryStore()))
        assert report.status == HealthStatus.DEGRADED
        assert [c["name"] for c in report.to_dict()["components"]] == [
            "store:memory", "channels", "location",
        ]

    def test_no_location_is_unhealthy(self, monkeypatch):
        from backend.app.core.config import settings

        monkeypatch.setattr(settings, "LOCATION_SOURCE", "none")
        report = run(run_health_check(InMemoryStore()))
        assert report.status == HealthStatus.UNHEALTHY
