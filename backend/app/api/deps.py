"""
Shared FastAPI dependencies.

Authentication is handled upstream; the auth layer forwards the
signed-in identity as ``X-User-Id`` (required) and ``X-User-Email``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, Request

from backend.app.core.errors import ValidationError
from backend.app.core.logging_config import update_request_context
from backend.app.sos.sessions import SessionRegistry


@dataclass(frozen=True)
class Owner:
    id: str
    email: Optional[str] = None


async def get_owner(
    x_user_id: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
) -> Owner:
    if not x_user_id or not x_user_id.strip():
        raise ValidationError("Missing X-User-Id header", field="X-User-Id")
    owner = Owner(id=x_user_id.strip(), email=x_user_email)
    update_request_context(owner_id=owner.id)
    return owner


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry
