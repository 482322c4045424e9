"""Validation of submitted answers against a template's live question schema."""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Union

from surveyhub.errors import ValidationError
from surveyhub.models.template import Template, TemplateQuestion
from surveyhub.schemas.form import AnswerInput
from surveyhub.services.questions import (
    AnswerRuleError, is_blank, satisfies_required, to_canonical,
)


@dataclass
class ValidatedAnswer:
    question: TemplateQuestion
    value: str


class AnswerValidator:
    """
    Checks a list of raw answers and returns them in canonical form.

    Every problem is collected; a single ValidationError carrying all of them
    is raised at the end. Blank answers to optional questions are dropped,
    except for checkboxes where a blank means ``false``.
    """

    def validate(
        self,
        template: Template,
        answers: Iterable[Union[AnswerInput, Dict[str, Any]]],
    ) -> List[ValidatedAnswer]:
        questions = {q.id: q for q in template.questions}
        errors: List[Dict[str, Any]] = []
        raw_by_question: Dict[int, Any] = {}

        for index, answer in enumerate(answers):
            if isinstance(answer, dict):
                answer = AnswerInput.model_validate(answer)
            if answer.question_id not in questions:
                errors.append({
                    "loc": ["answers", str(index), "question_id"],
                    "msg": f"Question ID {answer.question_id} does not belong to this template",
                })
                continue
            if answer.question_id in raw_by_question:
                errors.append({
                    "loc": ["answers", str(index), "question_id"],
                    "msg": f"Duplicate answer for question ID {answer.question_id}",
                })
                continue
            raw_by_question[answer.question_id] = answer.value

        validated: List[ValidatedAnswer] = []
        for question in template.questions:
            raw = raw_by_question.get(question.id)
            if question.is_required and not satisfies_required(question, raw):
                errors.append({
                    "loc": ["questions", str(question.id)],
                    "msg": f"Question '{question.title}' is required",
                })
                continue
            if question.id not in raw_by_question:
                continue
            if is_blank(raw) and question.type != "checkbox":
                continue
            try:
                validated.append(ValidatedAnswer(question, to_canonical(question, raw)))
            except AnswerRuleError as exc:
                errors.append({
                    "loc": ["questions", str(question.id)],
                    "msg": f"Answer to '{question.title}' {exc}",
                })

        if errors:
            raise ValidationError(errors[0]["msg"], errors=errors)
        return validated
