"""Topic catalogue."""

import logging
from typing import Optional, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from surveyhub.errors import AccessDenied, ValidationError
from surveyhub.models.topic import Topic
from surveyhub.schemas.user import Principal


class TopicService:
    def __init__(self, db: Session, logger: Optional[logging.Logger] = None):
        self.db = db
        self.log = logger or logging.getLogger(__name__)

    def list_topics(self) -> List[Topic]:
        return self.db.query(Topic).order_by(Topic.name).all()

    def create_topic(self, principal: Principal, name: str) -> Topic:
        """Admins only; names are unique."""
        if not principal.is_admin:
            raise AccessDenied("Only admins can create topics")
        name = (name or "").strip()
        if not name:
            raise ValidationError("Topic name is required")

        topic = Topic(name=name)
        self.db.add(topic)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ValidationError(f"Topic '{name}' already exists") from exc
        self.db.refresh(topic)
        self.log.info("Topic created: id=%s name=%r admin_id=%s", topic.id, name, principal.id)
        return topic
