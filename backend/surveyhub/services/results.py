"""Results aggregation for template owners and admins."""

import logging
from collections import Counter, defaultdict
from typing import Optional, List, Dict

from sqlalchemy.orm import Session, joinedload, selectinload

from surveyhub.errors import AccessDenied, NotFound
from surveyhub.models.form import Form, FormAnswer
from surveyhub.models.template import (
    Template, TemplateQuestion, QuestionKind, CHOICE_KINDS, NUMERIC_KINDS, TEXT_KINDS,
)
from surveyhub.schemas.form import TemplateResults, SubmissionView, AggregateView, QuestionSummary
from surveyhub.schemas.user import Principal
from surveyhub.services import access
from surveyhub.services.form import answer_views

POPULAR_ANSWER_COUNT = 3


def numeric_value(value: str) -> float:
    """Numeric reading of a stored value; anything unparseable counts as 0."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def blind_average(values: List[str]) -> Optional[float]:
    if not values:
        return None
    return sum(numeric_value(v) for v in values) / len(values)


def summarise_question(question: TemplateQuestion, values: List[str]) -> QuestionSummary:
    """Statistics appropriate to the question's kind."""
    kind = QuestionKind(question.type)
    summary = QuestionSummary(
        question_id=question.id,
        text=question.title,
        type=kind.value,
        answer_count=len(values),
    )
    if kind in NUMERIC_KINDS:
        numbers = []
        for value in values:
            try:
                numbers.append(int(value))
            except ValueError:
                continue
        if numbers:
            summary.average = round(sum(numbers) / len(numbers), 2)
            summary.min = min(numbers)
            summary.max = max(numbers)
    elif kind in TEXT_KINDS:
        summary.popular_answers = [
            answer for answer, _ in Counter(values).most_common(POPULAR_ANSWER_COUNT)
        ]
    elif kind in CHOICE_KINDS:
        counts = {option: 0 for option in (question.options or [])}
        for value in values:
            counts[value] = counts.get(value, 0) + 1
        summary.option_counts = counts
    elif kind == QuestionKind.CHECKBOX:
        counts = Counter(values)
        summary.option_counts = {"true": counts.get("true", 0), "false": counts.get("false", 0)}
    return summary


class ResultsService:
    """Read-only view of the submissions made against a template."""

    def __init__(self, db: Session, logger: Optional[logging.Logger] = None):
        self.db = db
        self.log = logger or logging.getLogger(__name__)

    def _load_template(self, template_id: int) -> Optional[Template]:
        return self.db.query(Template).options(
            joinedload(Template.owner),
            joinedload(Template.topic),
            selectinload(Template.question_rows),
        ).filter(Template.id == template_id).first()

    def _values_by_question(self, template_id: int) -> Dict[int, List[str]]:
        rows = self.db.query(FormAnswer.question_id, FormAnswer.value).join(
            Form, Form.id == FormAnswer.form_id
        ).filter(Form.template_id == template_id).order_by(FormAnswer.id).all()
        values = defaultdict(list)
        for question_id, value in rows:
            values[question_id].append(value)
        return values

    def get_template_results(self, template_id: int, principal: Principal) -> TemplateResults:
        """
        Submissions, blind averages and per-question summaries.

        Only questions marked visible in results are reported. Answers to
        retired questions still appear with their original question text.
        """
        template = self._load_template(template_id)
        if template is None:
            raise NotFound("Template not found")
        if not access.can_view_results(principal, template):
            self.log.info("Results denied: template_id=%s user_id=%s", template_id, principal.id)
            raise AccessDenied("Access denied")

        forms = self.db.query(Form).options(
            joinedload(Form.user),
            selectinload(Form.answers).joinedload(FormAnswer.question),
        ).filter(
            Form.template_id == template_id
        ).order_by(Form.created_at.desc(), Form.id.desc()).all()

        submissions = [
            SubmissionView(
                form_id=f.id,
                user_id=f.user_id,
                user_name=f.user.name if f.user else None,
                created_at=f.created_at,
                answers=answer_views(f, visible_only=True),
            )
            for f in forms
        ]

        values = self._values_by_question(template_id)
        aggregates = [
            AggregateView(question_id=q.id, average=blind_average(values[q.id]))
            for q in template.question_rows
            if q.is_visible_in_results and values.get(q.id)
        ]
        return TemplateResults(
            template_id=template.id,
            title=template.title,
            author=template.owner.name,
            topic_name=template.topic.name,
            submissions=submissions,
            aggregates=aggregates,
            questions=self._summaries(template, values),
        )

    @staticmethod
    def _summaries(template: Template, values: Dict[int, List[str]]) -> List[QuestionSummary]:
        return [
            summarise_question(q, values.get(q.id, []))
            for q in template.questions
            if q.is_visible_in_results
        ]

    def get_owned_results(self, principal: Principal) -> List[TemplateResults]:
        """Per-question summaries for every template the caller owns."""
        if not principal.is_authenticated:
            raise AccessDenied("User not authenticated")
        templates = self.db.query(Template).options(
            joinedload(Template.owner),
            joinedload(Template.topic),
            selectinload(Template.question_rows),
        ).filter(
            Template.owner_id == principal.id
        ).order_by(Template.created_at.desc(), Template.id.desc()).all()

        return [
            TemplateResults(
                template_id=t.id,
                title=t.title,
                author=t.owner.name,
                topic_name=t.topic.name,
                questions=self._summaries(t, self._values_by_question(t.id)),
            )
            for t in templates
        ]
