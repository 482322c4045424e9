"""Form submission and results Pydantic schemas."""

from datetime import datetime
from typing import Optional, Any, List, Dict, Union

from pydantic import BaseModel, Field


class AnswerInput(BaseModel):
    """One raw answer as sent by the form filler."""
    question_id: int
    value: Union[bool, int, float, str, None] = None


class FormSubmit(BaseModel):
    """Schema for submitting a filled-out form."""
    template_id: int
    answers: List[AnswerInput] = Field(..., min_length=1)
    email_copy: bool = False


class FormAnswerResponse(BaseModel):
    """An answer joined to the question it was given for."""
    question_id: int
    question_title: str
    question_type: str
    value: str


class FormResponse(BaseModel):
    """Schema for a stored submission."""
    id: int
    template_id: int
    user_id: int
    created_at: datetime
    answers: List[FormAnswerResponse] = []


class FormTemplateSummary(BaseModel):
    id: int
    title: str
    is_public: bool


class UserFormResponse(FormResponse):
    """A submission listed on the filler's own profile."""
    template: FormTemplateSummary


class SubmissionView(BaseModel):
    """One submission as seen by the template owner."""
    form_id: int
    user_id: int
    user_name: Optional[str] = None
    created_at: datetime
    answers: List[FormAnswerResponse] = []


class AggregateView(BaseModel):
    """Blind per-question mean over all stored values."""
    question_id: int
    average: Optional[float]


class QuestionSummary(BaseModel):
    """Kind-aware statistics for one visible question."""
    question_id: int
    text: str
    type: str
    answer_count: int
    average: Optional[float] = None
    min: Optional[int] = None
    max: Optional[int] = None
    popular_answers: Optional[List[str]] = None
    option_counts: Optional[Dict[str, int]] = None


class TemplateResults(BaseModel):
    """Schema for the results of one template."""
    template_id: int
    title: str
    author: str
    topic_name: str
    submissions: List[SubmissionView] = []
    aggregates: List[AggregateView] = []
    questions: List[QuestionSummary] = []
