"""
Key-value persistence — JSON documents under string keys.

Provides:
    • KeyValueStore  — async get/set/delete contract used by every store
    • InMemoryStore  — process-local dict (default, tests, offline device)
    • RedisStore     — async Redis client (redis.asyncio)
    • get_store()    — backend selected by settings.STORE_BACKEND

Values are JSON-serialised on write, so both backends round-trip the
same shapes. There is no locking: callers do read-modify-write and
rely on their own single-writer guarantees.

Usage:
    from backend.app.core.store import get_store

    store = get_store()
    await store.set("sos_history", [])
    history = await store.get("sos_history", default=[])
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from backend.app.core.config import settings
from backend.app.core.errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Base contract: async JSON document store keyed by string."""

    backend: str = "abstract"

    async def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    async def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class InMemoryStore(KeyValueStore):
    """Dict-backed store holding JSON strings."""

    backend = "memory"

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    async def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, default=str)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data)


class RedisStore(KeyValueStore):
    """Redis-backed store. Errors propagate as StorageError."""

    backend = "redis"

    def __init__(self, url: Optional[str] = None) -> None:
        self.url = url or settings.REDIS_URL
        self._client: Optional[aioredis.Redis] = None

    def _get_client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("Redis store connected: %s", self.url)
        return self._client

    async def get(self, key: str, default: Any = None) -> Any:
        try:
            raw = await self._get_client().get(key)
        except RedisError as exc:
            raise StorageError(key, str(exc)) from exc
        if raw is None:
            return default
        return json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        try:
            await self._get_client().set(key, json.dumps(value, default=str))
        except RedisError as exc:
            raise StorageError(key, str(exc)) from exc

    async def delete(self, key: str) -> None:
        try:
            await self._get_client().delete(key)
        except RedisError as exc:
            raise StorageError(key, str(exc)) from exc

    async def ping(self) -> bool:
        try:
            return bool(await self._get_client().ping())
        except RedisError as exc:
            logger.warning("Redis ping failed: %s", exc)
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("Redis store closed")


def get_store(backend: Optional[str] = None) -> KeyValueStore:
    """Build the store configured by STORE_BACKEND."""
    backend = backend or settings.STORE_BACKEND
    if backend == "memory":
        return InMemoryStore()
    if backend == "redis":
        return RedisStore()
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")
