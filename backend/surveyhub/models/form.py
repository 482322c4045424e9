"""Form submission and answer models."""

from datetime import datetime
from typing import List

from sqlalchemy import Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from surveyhub.database import Base


class Form(Base):
    """
    Form represents one filled-out submission against a template.

    Forms are write-once: there is no update path, and they disappear only
    through the cascade from their template (or submitting user).
    """

    __tablename__ = "forms"

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

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    template: Mapped["Template"] = relationship("Template", back_populates="forms")
    user: Mapped["User"] = relationship("User", back_populates="forms")
    answers: Mapped[List["FormAnswer"]] = relationship(
        "FormAnswer",
        back_populates="form",
        order_by="FormAnswer.id",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Form(id={self.id}, template_id={self.template_id}, user_id={self.user_id})>"


class FormAnswer(Base):
    """
    FormAnswer stores the canonical text value of one answered question.

    ``question_id`` pins the answer to the question row that was live when
    the form was submitted; it is never repointed after a schema update.
    """

    __tablename__ = "form_answers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    form_id: Mapped[int] = mapped_column(
        ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    question_id: Mapped[int] = mapped_column(
        ForeignKey("template_questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    value: Mapped[str] = mapped_column(Text, nullable=False)

    form: Mapped["Form"] = relationship("Form", back_populates="answers")
    question: Mapped["TemplateQuestion"] = relationship("TemplateQuestion")

    def __repr__(self) -> str:
        return f"<FormAnswer(form_id={self.form_id}, question_id={self.question_id})>"
