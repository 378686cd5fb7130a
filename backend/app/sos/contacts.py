"""
contacts.py — Per-owner trusted contact book.

Each owner's contacts live under ``contacts_<owner_id>`` as a JSON list
in insertion order, which is also the dispatch order. An owner holds at
most MAX_CONTACTS (5).
"""

from __future__ import annotations

import logging
from typing import List, Optional

from backend.app.core.config import settings
from backend.app.core.errors import CapacityExceeded, NotFoundError, ValidationError
from backend.app.core.store import KeyValueStore
from backend.app.sos.models import Contact

logger = logging.getLogger(__name__)


def _key(owner_id: str) -> str:
    return f"contacts_{owner_id}"


class ContactBook:
    def __init__(self, store: KeyValueStore, *, max_contacts: Optional[int] = None) -> None:
        self._store = store
        self.max_contacts = max_contacts or settings.MAX_CONTACTS

    async def list(self, owner_id: str) -> List[Contact]:
        raw = await self._store.get(_key(owner_id), default=[])
        return [Contact.from_dict(item) for item in raw]

    async def add(self, owner_id: str, name: str, phone: str) -> Contact:
        """
        Add a contact.

        Raises
        ------
        ValidationError
            Name or phone empty after trimming.
        CapacityExceeded
            Owner already has ``max_contacts`` contacts.
        """
        name = (name or "").strip()
        phone = (phone or "").strip()
        if not name:
            raise ValidationError("Contact name is required", field="name")
        if not phone:
            raise ValidationError("Contact phone is required", field="phone")
        if not any(ch.isdigit() for ch in phone):
            raise ValidationError("Contact phone must contain digits", field="phone")

        raw = await self._store.get(_key(owner_id), default=[])
        if len(raw) >= self.max_contacts:
            logger.warning(
                "Contact add rejected for %s: %d/%d",
                owner_id, len(raw), self.max_contacts,
                extra={"owner_id": owner_id},
            )
            raise CapacityExceeded(owner_id, self.max_contacts)

        contact = Contact(owner_id=owner_id, name=name, phone=phone)
        raw.append(contact.to_dict())
        await self._store.set(_key(owner_id), raw)
        logger.info(
            "Contact %s added for %s (%d/%d)",
            contact.id, owner_id, len(raw), self.max_contacts,
            extra={"owner_id": owner_id, "contact_id": contact.id},
        )
        return contact

    async def remove(self, owner_id: str, contact_id: str) -> None:
        raw = await self._store.get(_key(owner_id), default=[])
        remaining = [item for item in raw if item["id"] != contact_id]
        if len(remaining) == len(raw):
            raise NotFoundError("Contact", id=contact_id)
        await self._store.set(_key(owner_id), remaining)
        logger.info(
            "Contact %s removed for %s", contact_id, owner_id,
            extra={"owner_id": owner_id, "contact_id": contact_id},
        )
