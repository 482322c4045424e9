"""Tag model and the template/tag association table."""

from datetime import datetime
from typing import List

from sqlalchemy import Column, String, DateTime, ForeignKey, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from surveyhub.database import Base


template_tags = Table(
    "template_tags",
    Base.metadata,
    Column("template_id", ForeignKey("templates.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Tag(Base):
    """Process-wide tag vocabulary. Names are unique."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    templates: Mapped[List["Template"]] = relationship(
        "Template",
        secondary=template_tags,
        back_populates="tags"
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name='{self.name}')>"
