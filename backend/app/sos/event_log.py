"""
event_log.py — Bounded local history of triggered SOS events.

Stored newest-first under one fixed key (EVENT_HISTORY_KEY) as a JSON
list. Each append is a read-modify-write: prepend, then keep only the
newest EVENT_HISTORY_LIMIT entries (oldest fall off the tail).
"""

from __future__ import annotations

import logging
from typing import List, Optional

from backend.app.core.config import settings
from backend.app.core.store import KeyValueStore
from backend.app.sos.models import SOSEvent

logger = logging.getLogger(__name__)


class EventLog:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        key: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> None:
        self._store = store
        self.key = key or settings.EVENT_HISTORY_KEY
        self.limit = limit or settings.EVENT_HISTORY_LIMIT

    async def append(self, event: SOSEvent) -> None:
        history = await self._store.get(self.key, default=[])
        history.insert(0, event.to_dict())
        dropped = len(history) - self.limit
        await self._store.set(self.key, history[: self.limit])
        logger.info(
            "SOS event recorded for %s (%d kept%s)",
            event.owner_id, min(len(history), self.limit),
            f", {dropped} evicted" if dropped > 0 else "",
            extra={"owner_id": event.owner_id},
        )

    async def list(self, owner_id: Optional[str] = None) -> List[SOSEvent]:
        """Newest first, optionally only one owner's events."""
        history = await self._store.get(self.key, default=[])
        events = [SOSEvent.from_dict(item) for item in history]
        if owner_id is not None:
            events = [e for e in events if e.owner_id == owner_id]
        return events
