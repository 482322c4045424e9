"""Likes and comments router, mounted under /api/templates, plus the live comment feed."""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from surveyhub.database import get_db
from surveyhub.errors import AccessDenied, ServiceError
from surveyhub.schemas.social import CommentCreate, CommentResponse, LikeStatus
from surveyhub.schemas.user import Principal
from surveyhub.services.auth import AuthService, get_current_principal, get_optional_principal
from surveyhub.services.notifications import Broadcaster, get_broadcaster
from surveyhub.services.social import SocialService

logger = logging.getLogger(__name__)

router = APIRouter()
ws_router = APIRouter()


@router.get("/{template_id}/likes", response_model=LikeStatus)
async def like_status(
    template_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_optional_principal)
):
    return SocialService(db).like_status(principal, template_id)


@router.post("/{template_id}/likes", response_model=LikeStatus)
async def toggle_like(
    template_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Like a template, or undo the caller's like."""
    return SocialService(db).toggle_like(principal, template_id)


@router.get("/{template_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    template_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_optional_principal)
):
    return SocialService(db).list_comments(principal, template_id)


@router.post(
    "/{template_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    template_id: int,
    comment_data: CommentCreate,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    principal: Principal = Depends(get_current_principal)
):
    """Post a comment; live viewers receive it as a ``comment`` event."""
    return SocialService(db, broadcaster=broadcaster).add_comment(
        principal, template_id, comment_data.content
    )


def _bearer_token(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    # Browsers cannot set headers on a websocket, so a query token is accepted too
    if token:
        return token
    scheme, _, credentials = websocket.headers.get("authorization", "").partition(" ")
    return credentials if scheme.lower() == "bearer" and credentials else None


@ws_router.websocket("/ws/templates/{template_id}")
async def comment_feed(
    websocket: WebSocket,
    template_id: int,
    token: Optional[str] = None,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster)
):
    """
    Stream new comments on a template as ``{"event": "comment", "data": ...}``.

    The viewer must be able to read the template; otherwise the socket is
    closed with a policy-violation code before it is accepted.
    """
    try:
        bearer = _bearer_token(websocket, token)
        if bearer is None:
            raise AccessDenied("Not authenticated")
        principal = AuthService.resolve_principal(db, bearer)
        room = SocialService(db).comment_feed_room(principal, template_id)
    except (HTTPException, ServiceError) as exc:
        logger.info("Comment feed refused: template_id=%s reason=%s", template_id, exc.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    finally:
        db.close()

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def forward(event, payload):
        # Publishers may run on another thread
        loop.call_soon_threadsafe(queue.put_nowait, {"event": event, "data": payload})

    async def send_events():
        while True:
            await websocket.send_json(await queue.get())

    broadcaster.subscribe(room, forward)
    sender = None
    try:
        await websocket.accept()
        sender = asyncio.create_task(send_events())
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Comment feed closed: template_id=%s user_id=%s", template_id, principal.id)
    finally:
        broadcaster.unsubscribe(room, forward)
        if sender is not None:
            sender.cancel()
