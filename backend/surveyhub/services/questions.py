"""Question-kind rules: template input parsing, row building and answer coercion."""

import re
from typing import Any, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from surveyhub.errors import ValidationError
from surveyhub.models.template import (
    TemplateQuestion, QuestionKind, CHOICE_KINDS, TEXT_KINDS,
)
from surveyhub.schemas.template import (
    QuestionInput, ChoiceQuestion, ScaleQuestion, TemplateCreate, validation_errors,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
_TRUTHY = {"true", "1", "on", "yes", "checked"}


class AnswerRuleError(ValueError):
    """Raised when a raw answer does not satisfy its question kind."""


def parse_input(data: Union[ModelT, dict], model: Type[ModelT] = TemplateCreate) -> ModelT:
    """
    Validate a raw template definition into its typed request model.

    Pydantic errors are re-raised as a domain ValidationError whose
    ``errors`` name the offending location, e.g. ``questions.1.linear_scale``.
    """
    if isinstance(data, model):
        return data
    try:
        if isinstance(data, BaseModel):
            return model.model_validate(data.model_dump(by_alias=False))
        if isinstance(data, (str, bytes)):
            return model.model_validate_json(data)
        return model.model_validate(data)
    except PydanticValidationError as exc:
        errors = validation_errors(exc)
        first = errors[0]
        raise ValidationError(
            f"{'.'.join(first['loc'])}: {first['msg']}",
            errors=errors,
        ) from exc


def build_question_row(
    template_id: int,
    index: int,
    question: QuestionInput,
    attachment_url: Optional[str] = None,
) -> TemplateQuestion:
    """Map one validated question onto a row, setting only its kind's payload."""
    kind = QuestionKind(question.type)
    row = TemplateQuestion(
        template_id=template_id,
        type=kind,
        title=question.title,
        description=question.description,
        order=index,
        is_required=question.is_required,
        is_visible_in_results=question.is_visible_in_results,
        attachment_url=attachment_url,
    )
    if isinstance(question, ChoiceQuestion):
        row.options = list(question.options)
    elif isinstance(question, ScaleQuestion):
        row.min = question.min
        row.max = question.max
        row.min_label = question.min_label or None
        row.max_label = question.max_label or None
    return row


def is_blank(raw: Any) -> bool:
    if raw is None:
        return True
    return isinstance(raw, str) and not raw.strip()


def _parse_integer(raw: Any) -> int:
    if isinstance(raw, bool):
        raise AnswerRuleError("must be an integer")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if raw.is_integer():
            return int(raw)
        raise AnswerRuleError("must be an integer")
    text = str(raw).strip()
    if not _INTEGER_PATTERN.match(text):
        raise AnswerRuleError("must be an integer")
    return int(text)


def _as_text(raw: Any) -> str:
    if isinstance(raw, bool):
        return "true" if raw else "false"
    return str(raw)


def to_canonical(question: TemplateQuestion, raw: Any) -> str:
    """
    Check ``raw`` against the question's kind and return its stored encoding.

    Blank values are not handled here; callers decide whether a blank answer
    is missing (required) or simply omitted.
    """
    kind = QuestionKind(question.type)

    if kind == QuestionKind.CHECKBOX:
        if isinstance(raw, (bool, int, float)):
            return "true" if raw else "false"
        return "true" if raw is not None and str(raw).strip().lower() in _TRUTHY else "false"

    if kind == QuestionKind.INTEGER:
        return str(_parse_integer(raw))

    if kind == QuestionKind.LINEAR_SCALE:
        value = _parse_integer(raw)
        if question.min is not None and value < question.min:
            raise AnswerRuleError(f"must be between {question.min} and {question.max}")
        if question.max is not None and value > question.max:
            raise AnswerRuleError(f"must be between {question.min} and {question.max}")
        return str(value)

    if kind in CHOICE_KINDS:
        value = _as_text(raw)
        if value not in (question.options or []):
            raise AnswerRuleError("must be one of the question's options")
        return value

    if kind in TEXT_KINDS:
        return _as_text(raw)

    # date / time are stored as given
    return _as_text(raw).strip()


def satisfies_required(question: TemplateQuestion, raw: Any) -> bool:
    """Checkboxes are always answered: absence means false."""
    if QuestionKind(question.type) == QuestionKind.CHECKBOX:
        return True
    return not is_blank(raw)
