"""Principal resolution from bearer tokens.

Credentials are verified elsewhere; this module only decodes the signed
token, loads the user it names, and hands ``Principal(id, is_admin)`` to the
services.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from surveyhub.config import get_settings
from surveyhub.database import get_db
from surveyhub.models.user import User
from surveyhub.schemas.user import Principal

settings = get_settings()
logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthService:
    """Token helpers."""

    @staticmethod
    def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.utcnow() + (
            expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
        )
        return jwt.encode(
            {"sub": str(user_id), "exp": expire},
            settings.secret_key,
            algorithm=settings.algorithm,
        )

    @staticmethod
    def decode_user_id(token: str) -> Optional[int]:
        try:
            data = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
            return int(data["sub"])
        except (jwt.PyJWTError, KeyError, ValueError):
            return None

    @staticmethod
    def resolve_principal(db: Session, token: str) -> Principal:
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
        user_id = AuthService.decode_user_id(token)
        if user_id is None:
            raise credentials_exception

        user = db.get(User, user_id)
        if user is None:
            raise credentials_exception
        if user.is_blocked:
            logger.info("Blocked user rejected: user_id=%s", user_id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="User is blocked"
            )
        return Principal(id=user.id, is_admin=user.is_admin)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Principal:
    """Dependency for routes that require an authenticated user."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return AuthService.resolve_principal(db, credentials.credentials)


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Principal:
    """Dependency for routes that also serve anonymous visitors."""
    if credentials is None:
        return Principal()
    return AuthService.resolve_principal(db, credentials.credentials)


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can access this endpoint"
        )
    return principal
