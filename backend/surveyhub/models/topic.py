"""Topic model: the fixed category every template belongs to."""

from datetime import datetime
from typing import List

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from surveyhub.database import Base


class Topic(Base):
    """Template topic. Deletion is restricted while templates reference it."""

    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    templates: Mapped[List["Template"]] = relationship("Template", back_populates="topic")

    def __repr__(self) -> str:
        return f"<Topic(id={self.id}, name='{self.name}')>"
