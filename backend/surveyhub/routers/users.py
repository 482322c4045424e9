"""User listing and administration router."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from surveyhub.database import get_db
from surveyhub.schemas.user import Principal, UserSummary, UserAdminResponse, UserFlagsUpdate
from surveyhub.services.auth import get_current_principal, require_admin
from surveyhub.services.user_admin import UserAdminService

router = APIRouter()


@router.get("", response_model=List[UserSummary])
async def list_users(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Users available for template permissions."""
    return UserAdminService(db).list_users()


@router.get("/admin", response_model=List[UserAdminResponse])
async def list_users_admin(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin)
):
    """Full user records, including flags and version (admin only)."""
    return UserAdminService(db).list_users_admin(principal)


@router.put("/{user_id}/flags", response_model=UserAdminResponse)
async def set_user_flags(
    user_id: int,
    flags: UserFlagsUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin)
):
    """
    Change a user's admin and blocked flags (admin only).

    ``version`` must be the version last read; a stale version returns 409.
    """
    return UserAdminService(db).set_flags(
        principal, user_id, flags.is_admin, flags.is_blocked, flags.version
    )
