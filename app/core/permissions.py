"""
Role-based permission helpers for the recruiting API.

Authentication happens upstream; requests arrive with an opaque actor id and
role. These helpers only decide whether that role may perform an action.
"""

from typing import List

from fastapi import HTTPException, status


class Roles:
    """Standard roles in the recruiting system."""
    ADMIN = "admin"
    RECRUITER = "recruiter"
    VIEWER = "viewer"

    # All roles list for validation
    ALL = [ADMIN, RECRUITER, VIEWER]

    # admin: Full access, including maintenance endpoints
    # recruiter: Move applications through the pipeline
    # viewer: Read-only access
    PIPELINE_WRITERS = [ADMIN, RECRUITER]


def check_role_permission(user_role: str, allowed_roles: List[str]) -> bool:
    """
    Check if the caller's role is in the list of allowed roles.

    Args:
        user_role: The caller's role
        allowed_roles: List of roles that are permitted

    Returns:
        True if the role has permission, False otherwise
    """
    if not user_role or not allowed_roles:
        return False
    return user_role in allowed_roles


def raise_if_not_roles(user_role: str, allowed_roles: List[str], action: str = "perform this action") -> None:
    """
    Raise 403 error if the caller doesn't have one of the allowed roles.

    Raises:
        HTTPException: 403 if the role is not permitted
    """
    if not check_role_permission(user_role, allowed_roles):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions to {action}. Required: {', '.join(allowed_roles)}"
        )
