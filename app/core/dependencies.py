"""
FastAPI dependencies for the application.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from app.core.permissions import Roles, raise_if_not_roles
from app.db.session import get_db

__all__ = ["Actor", "get_actor", "get_db", "require_roles"]


@dataclass(frozen=True)
class Actor:
    """Caller identity as resolved by the upstream auth layer."""

    actor_id: Optional[str]
    role: str


async def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Actor:
    """
    Read the caller identity from X-Actor-ID / X-Actor-Role headers.

    Raises 401 if no role is supplied and 400 for an unknown role.
    """
    if not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Role header is required",
        )
    if x_actor_role not in Roles.ALL:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown role: {x_actor_role}",
        )
    return Actor(actor_id=x_actor_id or None, role=x_actor_role)


def require_roles(*allowed_roles: str):
    """
    Dependency factory to require specific roles.

    Usage:
        @router.post("/", dependencies=[Depends(require_roles("admin", "recruiter"))])
        async def create_something(...):
            ...
    """
    async def check_role(actor: Actor = Depends(get_actor)) -> Actor:
        raise_if_not_roles(actor.role, list(allowed_roles))
        return actor

    return check_role
