"""
Ownership and role checks shared by the project and townhall routes.
"""

from __future__ import annotations

from fastapi import HTTPException, status

from civic.db import UserRecord
from civic.types import ELEVATED_ROLES

INSUFFICIENT_PERMISSIONS = "Insufficient permissions"


def is_elevated(user: UserRecord) -> bool:
    return user.role in ELEVATED_ROLES


def can_modify(user: UserRecord, owner_id: int) -> bool:
    """A resource may be changed by its creator or by an elevated role."""
    return user.id == owner_id or is_elevated(user)


def ensure_can_modify(user: UserRecord, owner_id: int) -> None:
    """
    Raise 403 unless ``user`` may mutate a resource owned by ``owner_id``.

    Callers must look the resource up first so that a missing id reports
    404 regardless of who is asking.
    """
    if not can_modify(user, owner_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=INSUFFICIENT_PERMISSIONS,
        )
