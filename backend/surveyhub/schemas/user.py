"""User-related Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr


class Principal(BaseModel):
    """Authenticated identity handed to the services; ``id`` is None when anonymous."""
    id: Optional[int] = None
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.id is not None


class UserFlagsUpdate(BaseModel):
    """Administrative flag change, guarded by the version the admin last saw."""
    is_admin: bool
    is_blocked: bool
    version: int


class UserSummary(BaseModel):
    """Schema for the user picker used by template permissions."""
    id: int
    name: str
    email: EmailStr

    class Config:
        from_attributes = True


class UserAdminResponse(BaseModel):
    """Schema for user records in the admin panel."""
    id: int
    name: str
    email: EmailStr
    is_admin: bool
    is_blocked: bool
    version: int
    created_at: datetime

    class Config:
        from_attributes = True
