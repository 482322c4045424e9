"""Administrative user management with optimistic concurrency."""

import logging
from typing import Optional, List

from sqlalchemy import update
from sqlalchemy.orm import Session

from surveyhub.errors import AccessDenied, Conflict, NotFound
from surveyhub.models.user import User
from surveyhub.schemas.user import Principal


class UserAdminService:
    """Service for listing users and changing their admin/blocked flags."""

    def __init__(self, db: Session, logger: Optional[logging.Logger] = None):
        self.db = db
        self.log = logger or logging.getLogger(__name__)

    def set_flags(
        self,
        principal: Principal,
        target_user_id: int,
        is_admin: bool,
        is_blocked: bool,
        expected_version: int,
    ) -> User:
        """
        Set both flags if the row is still at ``expected_version``.

        The version check and the write are one conditional UPDATE, so of two
        admins racing from the same version exactly one succeeds.
        """
        if not principal.is_admin:
            raise AccessDenied("Only admins can change user flags")

        try:
            result = self.db.execute(
                update(User)
                .where(User.id == target_user_id, User.version == expected_version)
                .values(is_admin=is_admin, is_blocked=is_blocked, version=User.version + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                exists = self.db.query(User.id).filter(User.id == target_user_id).first()
                self.db.rollback()
                if exists is None:
                    raise NotFound("User not found")
                self.log.info(
                    "Stale user update rejected: user_id=%s expected_version=%s admin_id=%s",
                    target_user_id, expected_version, principal.id,
                )
                raise Conflict("User modified by another user. Please reload.")
            self.db.commit()
        except (NotFound, Conflict):
            raise
        except Exception:
            self.db.rollback()
            raise

        self.log.info(
            "User flags updated: user_id=%s is_admin=%s is_blocked=%s admin_id=%s",
            target_user_id, is_admin, is_blocked, principal.id,
        )
        user = self.db.get(User, target_user_id)
        self.db.refresh(user)
        return user

    def list_users(self) -> List[User]:
        """All users, for the template permission picker."""
        return self.db.query(User).order_by(User.name, User.id).all()

    def list_users_admin(self, principal: Principal) -> List[User]:
        if not principal.is_admin:
            raise AccessDenied("Only admins can access this endpoint")
        return self.db.query(User).order_by(User.id).all()
