"""Domain error taxonomy shared by the service layer.

Services raise these; the HTTP layer maps them onto status codes in one
exception handler registered by ``surveyhub.main``.
"""

from typing import Any, Dict, List, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse


class ServiceError(Exception):
    """Base class for errors the service layer classifies itself."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(detail)
        self.detail = detail
        self.errors = errors or []


class ValidationError(ServiceError):
    """Malformed input; raised before any write or causes a full rollback."""
    status_code = status.HTTP_400_BAD_REQUEST


class AccessDenied(ServiceError):
    """Principal lacks read, write or results permission."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ServiceError):
    """Referenced template, topic, form or user does not exist."""
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ServiceError):
    """Optimistic version check failed; the caller must reload and retry."""
    status_code = status.HTTP_409_CONFLICT


async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "detail": exc.detail}
    if exc.errors:
        body["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=body)
