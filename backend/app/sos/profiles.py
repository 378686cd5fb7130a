"""
profiles.py — Owner display profile.

The display name embedded in alerts comes from the profile. A missing
profile is created on first access with the local part of the owner's
email (``thandi@example.com`` → ``thandi``).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.core.store import KeyValueStore
from backend.app.sos.models import Profile

logger = logging.getLogger(__name__)

DEFAULT_NAME = "User"


def _key(owner_id: str) -> str:
    return f"profile_{owner_id}"


def default_display_name(email: Optional[str]) -> str:
    if not email:
        return DEFAULT_NAME
    local_part = email.split("@", 1)[0].strip()
    return local_part or DEFAULT_NAME


class ProfileStore:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def get(self, owner_id: str) -> Optional[Profile]:
        raw = await self._store.get(_key(owner_id))
        return Profile.from_dict(raw) if raw else None

    async def ensure(self, owner_id: str, email: Optional[str] = None) -> Profile:
        """Return the profile, creating the default one if absent."""
        profile = await self.get(owner_id)
        if profile is not None:
            return profile
        profile = Profile(id=owner_id, full_name=default_display_name(email))
        await self._store.set(_key(owner_id), profile.to_dict())
        logger.info("Default profile created for %s", owner_id, extra={"owner_id": owner_id})
        return profile

    async def update(
        self,
        owner_id: str,
        *,
        full_name: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> Profile:
        profile = await self.get(owner_id)
        if profile is None:
            raise NotFoundError("Profile", id=owner_id)
        if full_name is not None:
            full_name = full_name.strip()
            if not full_name:
                raise ValidationError("Full name cannot be empty", field="full_name")
            profile.full_name = full_name
        if phone_number is not None:
            profile.phone_number = phone_number.strip() or None
        profile.updated_at = datetime.now(timezone.utc)
        await self._store.set(_key(owner_id), profile.to_dict())
        return profile
