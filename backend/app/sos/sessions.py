"""
sessions.py — One SOSController per signed-in owner.

The registry owns the shared collaborators (store, scheduler, launcher)
and builds each owner's controller with its own position source, so a
client-reported fix can only ever answer that owner's request.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from backend.app.core.store import KeyValueStore
from backend.app.sos.channels.launchers import Launcher
from backend.app.sos.contacts import ContactBook
from backend.app.sos.controller import SOSController
from backend.app.sos.dispatcher import DispatchScheduler
from backend.app.sos.event_log import EventLog
from backend.app.sos.haptics import Haptics
from backend.app.sos.location import (
    ClientPositionSource,
    LocationProvider,
    PositionSource,
    build_position_source,
)
from backend.app.sos.profiles import ProfileStore
from backend.app.sos.timers import Scheduler

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(
        self,
        store: KeyValueStore,
        scheduler: Scheduler,
        launcher: Launcher,
        *,
        location_source: Optional[str] = None,
        haptics: Optional[Haptics] = None,
    ) -> None:
        self.store = store
        self.scheduler = scheduler
        self.launcher = launcher
        self.location_source = location_source
        self.haptics = haptics

        self.contacts = ContactBook(store)
        self.profiles = ProfileStore(store)
        self.event_log = EventLog(store)
        self.dispatcher = DispatchScheduler(scheduler, launcher)

        self._controllers: Dict[str, SOSController] = {}
        self._sources: Dict[str, PositionSource] = {}

    def __len__(self) -> int:
        return len(self._controllers)

    def position_source(self, owner_id: str) -> PositionSource:
        if owner_id not in self._sources:
            self._sources[owner_id] = build_position_source(self.location_source)
        return self._sources[owner_id]

    def client_source(self, owner_id: str) -> Optional[ClientPositionSource]:
        source = self.position_source(owner_id)
        return source if isinstance(source, ClientPositionSource) else None

    async def controller_for(self, owner_id: str, email: Optional[str] = None) -> SOSController:
        """Existing controller (refreshed) or a new one."""
        controller = self._controllers.get(owner_id)
        if controller is None:
            controller = SOSController(
                owner_id,
                owner_email=email,
                contacts=self.contacts,
                profiles=self.profiles,
                event_log=self.event_log,
                location=LocationProvider(self.position_source(owner_id)),
                dispatcher=self.dispatcher,
                scheduler=self.scheduler,
                haptics=self.haptics,
            )
            self._controllers[owner_id] = controller
            logger.info("SOS session opened for %s", owner_id, extra={"owner_id": owner_id})
        await controller.refresh()
        return controller

    def close(self) -> None:
        for controller in self._controllers.values():
            controller.close()
        self._controllers.clear()
        self._sources.clear()
