"""Form submission service: validate answers, store them, optionally email a copy."""

import logging
from typing import Optional, List

from sqlalchemy.orm import Session, joinedload, selectinload

from surveyhub.errors import AccessDenied, NotFound
from surveyhub.models.form import Form, FormAnswer
from surveyhub.models.template import Template
from surveyhub.models.user import User
from surveyhub.schemas.form import (
    FormSubmit, FormResponse, FormAnswerResponse, UserFormResponse, FormTemplateSummary,
)
from surveyhub.schemas.user import Principal
from surveyhub.services import access
from surveyhub.services.answers import AnswerValidator, ValidatedAnswer
from surveyhub.services.notifications import EmailSender, LogEmailSender


def answer_views(form: Form, visible_only: bool = False) -> List[FormAnswerResponse]:
    """Answers joined to their question metadata, in question order."""
    answers = sorted(form.answers, key=lambda a: (a.question.order, a.id))
    return [
        FormAnswerResponse(
            question_id=a.question_id,
            question_title=a.question.title,
            question_type=str(a.question.type),
            value=a.value,
        )
        for a in answers
        if not visible_only or a.question.is_visible_in_results
    ]


def form_response(form: Form) -> FormResponse:
    return FormResponse(
        id=form.id,
        template_id=form.template_id,
        user_id=form.user_id,
        created_at=form.created_at,
        answers=answer_views(form),
    )


def email_summary(template: Template, answers: List[ValidatedAnswer]) -> str:
    lines = [f"{a.question.title}: {a.value}" for a in answers]
    return f"Thank you for filling out \"{template.title}\".\n\n" + "\n".join(lines)


class FormService:
    """Service for form submissions."""

    def __init__(
        self,
        db: Session,
        email_sender: Optional[EmailSender] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.db = db
        self.email_sender = email_sender or LogEmailSender()
        self.log = logger or logging.getLogger(__name__)
        self.validator = AnswerValidator()

    def _load_form(self, form_id: int) -> Optional[Form]:
        return self.db.query(Form).options(
            joinedload(Form.template),
            selectinload(Form.answers).joinedload(FormAnswer.question),
        ).filter(Form.id == form_id).first()

    def submit_form(self, principal: Principal, form_data: FormSubmit) -> Form:
        """
        Store one submission.

        The form and its answers are written in a single transaction. The
        email copy, if requested, goes out only after commit and never fails
        the submission.
        """
        template = self.db.query(Template).options(
            selectinload(Template.question_rows),
            selectinload(Template.permissions),
        ).filter(Template.id == form_data.template_id).first()
        if template is None:
            raise NotFound("Template not found")
        if not principal.is_authenticated or not access.can_read(principal, template):
            self.log.info(
                "Submission denied: template_id=%s user_id=%s",
                form_data.template_id, principal.id,
            )
            raise AccessDenied("Access denied")

        validated = self.validator.validate(template, form_data.answers)

        try:
            db_form = Form(template_id=template.id, user_id=principal.id)
            self.db.add(db_form)
            self.db.flush()
            self.db.add_all(
                FormAnswer(form_id=db_form.id, question_id=a.question.id, value=a.value)
                for a in validated
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.log.info(
            "Form submitted: form_id=%s template_id=%s user_id=%s answers=%s",
            db_form.id, template.id, principal.id, len(validated),
        )

        if form_data.email_copy:
            self._send_copy(principal.id, template, validated)

        return self._load_form(db_form.id)

    def _send_copy(self, user_id: int, template: Template, answers: List[ValidatedAnswer]) -> None:
        try:
            user = self.db.get(User, user_id)
            self.email_sender.send(
                user.email,
                f"Form Submission Copy: {template.title}",
                email_summary(template, answers),
            )
        except Exception:
            self.log.exception("Failed to send form copy: template_id=%s user_id=%s", template.id, user_id)

    def get_form(self, form_id: int, principal: Principal) -> Form:
        """One submission, readable by its submitter, the template owner and admins."""
        db_form = self._load_form(form_id)
        if db_form is None:
            raise NotFound("Form not found")
        if not principal.is_authenticated:
            raise AccessDenied("Access denied")
        if not (
            principal.is_admin
            or db_form.user_id == principal.id
            or db_form.template.owner_id == principal.id
        ):
            raise AccessDenied("Access denied")
        return db_form

    def get_user_forms(self, principal: Principal) -> List[UserFormResponse]:
        """The caller's own submissions, newest first, with answers to visible questions."""
        if not principal.is_authenticated:
            raise AccessDenied("User not authenticated")
        forms = self.db.query(Form).options(
            joinedload(Form.template),
            selectinload(Form.answers).joinedload(FormAnswer.question),
        ).filter(
            Form.user_id == principal.id
        ).order_by(Form.created_at.desc(), Form.id.desc()).all()

        return [
            UserFormResponse(
                id=f.id,
                template_id=f.template_id,
                user_id=f.user_id,
                created_at=f.created_at,
                answers=answer_views(f, visible_only=True),
                template=FormTemplateSummary(
                    id=f.template.id,
                    title=f.template.title,
                    is_public=f.template.is_public,
                ),
            )
            for f in forms
        ]
