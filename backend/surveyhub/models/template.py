"""Template, question and permission models."""

from datetime import datetime
from typing import Optional, List
from enum import Enum as PyEnum

from sqlalchemy import (
    String, Text, DateTime, Boolean, JSON, Integer, Enum, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from surveyhub.database import Base
from surveyhub.models.tag import template_tags


class QuestionKind(str, PyEnum):
    """Discriminant of a template question."""
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    CHECKBOX = "checkbox"
    SELECT = "select"
    MULTIPLE_CHOICE = "multiple_choice"
    DROPDOWN = "dropdown"
    LINEAR_SCALE = "linear_scale"
    DATE = "date"
    TIME = "time"

    def __str__(self) -> str:
        return self.value


CHOICE_KINDS = frozenset({QuestionKind.SELECT, QuestionKind.MULTIPLE_CHOICE, QuestionKind.DROPDOWN})
NUMERIC_KINDS = frozenset({QuestionKind.INTEGER, QuestionKind.LINEAR_SCALE})
TEXT_KINDS = frozenset({QuestionKind.STRING, QuestionKind.TEXT})


class Template(Base):
    """
    Template model representing a survey or quiz definition.

    The question list, tag set and permission set are always replaced
    together by ``TemplateService`` inside one transaction.
    """

    __tablename__ = "templates"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    topic_id: Mapped[int] = mapped_column(
        ForeignKey("topics.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Bumped on every update
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Normalised "title description" used by the text-search predicate
    search_text: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=datetime.utcnow,
        nullable=True
    )

    # Relationships
    owner: Mapped["User"] = relationship("User", back_populates="templates")
    topic: Mapped["Topic"] = relationship("Topic", back_populates="templates")
    question_rows: Mapped[List["TemplateQuestion"]] = relationship(
        "TemplateQuestion",
        back_populates="template",
        order_by="TemplateQuestion.order",
        passive_deletes=True
    )
    tags: Mapped[List["Tag"]] = relationship(
        "Tag",
        secondary=template_tags,
        back_populates="templates",
        order_by="Tag.name"
    )
    permissions: Mapped[List["TemplatePermission"]] = relationship(
        "TemplatePermission",
        back_populates="template",
        passive_deletes=True
    )
    forms: Mapped[List["Form"]] = relationship(
        "Form",
        back_populates="template",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Template(id={self.id}, title='{self.title}', version={self.version})>"

    @property
    def questions(self) -> List["TemplateQuestion"]:
        """Live question schema, in display order."""
        return [q for q in self.question_rows if not q.is_retired]

    @property
    def permitted_user_ids(self) -> List[int]:
        return [p.user_id for p in self.permissions]

    @property
    def tag_names(self) -> List[str]:
        return [t.name for t in self.tags]


class TemplateQuestion(Base):
    """
    One question of a template.

    ``options`` is set only for choice kinds, ``min``/``max`` and the labels
    only for the linear scale. Retired rows belong to a replaced schema and
    are kept only because submitted answers still point at them.
    """

    __tablename__ = "template_questions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    template_id: Mapped[int] = mapped_column(
        ForeignKey("templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    type: Mapped[QuestionKind] = mapped_column(
        Enum(QuestionKind, values_callable=lambda x: [e.value for e in x], name="questionkind"),
        nullable=False
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_visible_in_results: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    attachment_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    # Kind-specific payload
    options: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    min_label: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    max_label: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    is_retired: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    template: Mapped["Template"] = relationship("Template", back_populates="question_rows")

    def __repr__(self) -> str:
        return f"<TemplateQuestion(id={self.id}, template_id={self.template_id}, type='{self.type}')>"


class TemplatePermission(Base):
    """Grants a user read/fill access to a private template."""

    __tablename__ = "template_permissions"
    __table_args__ = (
        UniqueConstraint("template_id", "user_id", name="uq_template_permission"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    template_id: Mapped[int] = mapped_column(
        ForeignKey("templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    template: Mapped["Template"] = relationship("Template", back_populates="permissions")
    user: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        return f"<TemplatePermission(template_id={self.template_id}, user_id={self.user_id})>"
