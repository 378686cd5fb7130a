"""
FastAPI routes: trusted contact book and owner profile.

    GET    /api/v1/contacts          — list (dispatch order)
    POST   /api/v1/contacts          — add (max 5 → 409)
    DELETE /api/v1/contacts/{id}     — remove
    GET    /api/v1/profile           — profile (created on first access)
    PUT    /api/v1/profile           — update display name / phone
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from backend.app.api.deps import Owner, get_owner, get_registry
from backend.app.api.schemas import (
    ContactCreate,
    ContactListOut,
    ContactOut,
    ProfileOut,
    ProfileUpdate,
)
from backend.app.sos.sessions import SessionRegistry

router = APIRouter(prefix="/api/v1", tags=["contacts"])


async def _contact_list(registry: SessionRegistry, owner: Owner) -> ContactListOut:
    contacts = await registry.contacts.list(owner.id)
    limit = registry.contacts.max_contacts
    return ContactListOut(
        contacts=[ContactOut(**c.to_dict()) for c in contacts],
        count=len(contacts),
        max_contacts=limit,
        can_add=len(contacts) < limit,
    )


@router.get("/contacts", response_model=ContactListOut, summary="List emergency contacts")
async def list_contacts(
    owner: Owner = Depends(get_owner),
    registry: SessionRegistry = Depends(get_registry),
):
    return await _contact_list(registry, owner)


@router.post(
    "/contacts",
    response_model=ContactOut,
    status_code=status.HTTP_201_CREATED,
    summary="Add an emergency contact",
    description="Rejected with 409 CAPACITY_EXCEEDED once the owner holds 5 contacts.",
)
async def add_contact(
    body: ContactCreate,
    owner: Owner = Depends(get_owner),
    registry: SessionRegistry = Depends(get_registry),
):
    contact = await registry.contacts.add(owner.id, body.name, body.phone)
    await registry.controller_for(owner.id, owner.email)
    return ContactOut(**contact.to_dict())


@router.delete(
    "/contacts/{contact_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove an emergency contact",
)
async def delete_contact(
    contact_id: str,
    owner: Owner = Depends(get_owner),
    registry: SessionRegistry = Depends(get_registry),
):
    await registry.contacts.remove(owner.id, contact_id)
    await registry.controller_for(owner.id, owner.email)


@router.get("/profile", response_model=ProfileOut, summary="Get owner profile")
async def get_profile(
    owner: Owner = Depends(get_owner),
    registry: SessionRegistry = Depends(get_registry),
):
    profile = await registry.profiles.ensure(owner.id, owner.email)
    return ProfileOut(**profile.to_dict())


@router.put("/profile", response_model=ProfileOut, summary="Update owner profile")
async def update_profile(
    body: ProfileUpdate,
    owner: Owner = Depends(get_owner),
    registry: SessionRegistry = Depends(get_registry),
):
    await registry.profiles.ensure(owner.id, owner.email)
    profile = await registry.profiles.update(
        owner.id, full_name=body.full_name, phone_number=body.phone_number,
    )
    await registry.controller_for(owner.id, owner.email)
    return ProfileOut(**profile.to_dict())
