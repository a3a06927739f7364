"""
FastAPI Dependencies
Caller identity and role checks
Source: https://fastapi.tiangolo.com/tutorial/dependencies/
Verified: 2026-10-18

Authentication is performed upstream; the gateway forwards the verified
user id and role in the ``X-User-Id`` and ``X-User-Role`` headers.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header

from careledger.core.actor import Actor
from careledger.core.enums import UserRole
from careledger.utils.errors import AuthenticationError, PermissionDenied


async def get_current_actor(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Actor:
    """
    Build the caller identity from the forwarded headers.

    Raises:
        AuthenticationError: If a header is missing or malformed
    """
    if not x_user_id or not x_user_role:
        raise AuthenticationError("Missing caller identity headers")

    try:
        user_id = UUID(x_user_id)
    except ValueError as err:
        raise AuthenticationError("Invalid user ID header") from err

    try:
        role = UserRole(x_user_role)
    except ValueError as err:
        raise AuthenticationError(f"Unknown role: {x_user_role}") from err

    return Actor(id=user_id, role=role)


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Allow super-admins only."""
    if not actor.is_admin:
        raise PermissionDenied("Super-admin role required")
    return actor
