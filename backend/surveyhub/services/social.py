"""Likes and comments on templates."""

import logging
from typing import Optional, List

from sqlalchemy.orm import Session, joinedload, selectinload

from surveyhub.errors import AccessDenied, NotFound
from surveyhub.models.social import Comment, Like
from surveyhub.models.template import Template
from surveyhub.schemas.social import CommentResponse, LikeStatus
from surveyhub.schemas.user import Principal
from surveyhub.services import access
from surveyhub.services.notifications import Broadcaster, InMemoryBroadcaster

COMMENT_EVENT = "comment"


def comment_room(template_id: int) -> str:
    return f"template_{template_id}"


def comment_response(comment: Comment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        template_id=comment.template_id,
        author_id=comment.author_id,
        author_name=comment.author.name,
        content=comment.content,
        created_at=comment.created_at,
    )


class SocialService:
    """Service for template likes and the comment thread."""

    def __init__(
        self,
        db: Session,
        broadcaster: Optional[Broadcaster] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.db = db
        self.broadcaster = broadcaster or InMemoryBroadcaster()
        self.log = logger or logging.getLogger(__name__)

    def _readable_template(self, template_id: int, principal: Principal) -> Template:
        template = self.db.query(Template).options(
            selectinload(Template.permissions)
        ).filter(Template.id == template_id).first()
        if template is None:
            raise NotFound("Template not found")
        if not access.can_read(principal, template):
            raise AccessDenied("Access denied")
        return template

    def _like_count(self, template_id: int) -> int:
        return self.db.query(Like).filter(Like.template_id == template_id).count()

    def toggle_like(self, principal: Principal, template_id: int) -> LikeStatus:
        """Like the template, or remove the caller's existing like."""
        if not principal.is_authenticated:
            raise AccessDenied("User not authenticated")
        self._readable_template(template_id, principal)

        try:
            existing = self.db.query(Like).filter(
                Like.template_id == template_id,
                Like.user_id == principal.id,
            ).first()
            if existing is not None:
                self.db.delete(existing)
                liked = False
            else:
                self.db.add(Like(template_id=template_id, user_id=principal.id))
                liked = True
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.log.info("Like toggled: template_id=%s user_id=%s liked=%s", template_id, principal.id, liked)
        return LikeStatus(liked=liked, like_count=self._like_count(template_id))

    def like_status(self, principal: Principal, template_id: int) -> LikeStatus:
        self._readable_template(template_id, principal)
        liked = principal.is_authenticated and self.db.query(Like).filter(
            Like.template_id == template_id,
            Like.user_id == principal.id,
        ).first() is not None
        return LikeStatus(liked=liked, like_count=self._like_count(template_id))

    def add_comment(self, principal: Principal, template_id: int, content: str) -> CommentResponse:
        """Store a comment, then push it to live viewers of the template."""
        if not principal.is_authenticated:
            raise AccessDenied("User not authenticated")
        self._readable_template(template_id, principal)

        try:
            comment = Comment(template_id=template_id, author_id=principal.id, content=content)
            self.db.add(comment)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        comment = self.db.query(Comment).options(
            joinedload(Comment.author)
        ).filter(Comment.id == comment.id).one()
        response = comment_response(comment)
        self.log.info("Comment added: comment_id=%s template_id=%s user_id=%s", comment.id, template_id, principal.id)

        try:
            self.broadcaster.publish(comment_room(template_id), COMMENT_EVENT, response.model_dump(mode="json"))
        except Exception:
            self.log.exception("Failed to broadcast comment: comment_id=%s", comment.id)
        return response

    def comment_feed_room(self, principal: Principal, template_id: int) -> str:
        """Room a live viewer joins; the viewer must be able to read the template."""
        self._readable_template(template_id, principal)
        self.log.info("Comment feed joined: template_id=%s user_id=%s", template_id, principal.id)
        return comment_room(template_id)

    def list_comments(self, principal: Principal, template_id: int) -> List[CommentResponse]:
        self._readable_template(template_id, principal)
        comments = self.db.query(Comment).options(
            joinedload(Comment.author)
        ).filter(
            Comment.template_id == template_id
        ).order_by(Comment.created_at.desc(), Comment.id.desc()).all()
        return [comment_response(c) for c in comments]
