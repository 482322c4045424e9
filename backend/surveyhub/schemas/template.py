"""Template-related Pydantic schemas."""

from datetime import datetime
from typing import Optional, List, Literal, Union, Any, Dict, Annotated

from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator, model_validator


# Kind-specific payload keys; a question may only carry the ones its kind declares
PAYLOAD_KEYS = ("options", "min", "max", "min_label", "max_label", "minLabel", "maxLabel")

# Client-side bookkeeping keys that are accepted and discarded
IGNORED_KEYS = ("id", "select_type")


class QuestionBase(BaseModel):
    """Fields shared by every question kind."""
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=512)
    description: Optional[str] = None
    is_required: bool = Field(False, validation_alias=AliasChoices("is_required", "required"))
    is_visible_in_results: bool = True
    attachment_index: Optional[int] = Field(None, ge=0, description="Index into the uploaded attachment list")
    attachment_url: Optional[str] = Field(None, description="Keep an attachment already stored on this template")
    order: Optional[int] = Field(None, description="Ignored; display order is the list position")

    @model_validator(mode="before")
    @classmethod
    def _normalise_raw(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in IGNORED_KEYS:
            data.pop(key, None)
        # Legacy tri-state: 'not_present' | 'optional' | 'required'
        state = data.pop("state", None)
        if state is not None and "is_required" not in data and "required" not in data:
            data["is_required"] = state == "required"
        # Blank payload keys for another kind count as absent
        accepted = set()
        for name, field in cls.model_fields.items():
            accepted.add(name)
            if isinstance(field.validation_alias, AliasChoices):
                accepted.update(a for a in field.validation_alias.choices if isinstance(a, str))
        for key in PAYLOAD_KEYS:
            if key in data and key not in accepted and data[key] in (None, "", []):
                del data[key]
        return data

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Question title is required")
        return value


class TextQuestion(QuestionBase):
    type: Literal["string", "text"]


class IntegerQuestion(QuestionBase):
    type: Literal["integer"]


class CheckboxQuestion(QuestionBase):
    type: Literal["checkbox"]


class DateTimeQuestion(QuestionBase):
    type: Literal["date", "time"]


class ChoiceQuestion(QuestionBase):
    """Single-select, multiple-choice or dropdown question."""
    type: Literal["select", "multiple_choice", "dropdown"]
    options: List[str]

    @field_validator("options")
    @classmethod
    def _at_least_two_options(cls, value: List[str]) -> List[str]:
        cleaned = [opt.strip() for opt in value]
        if any(not opt for opt in cleaned):
            raise ValueError("Options must be non-empty strings")
        if len(cleaned) < 2:
            raise ValueError("Select, multiple_choice, or dropdown questions must have at least two options")
        return cleaned


class ScaleQuestion(QuestionBase):
    """Bounded integer scale, e.g. 1 to 5."""
    type: Literal["linear_scale"]
    min: int
    max: int
    min_label: Optional[str] = Field(None, validation_alias=AliasChoices("min_label", "minLabel"))
    max_label: Optional[str] = Field(None, validation_alias=AliasChoices("max_label", "maxLabel"))

    @model_validator(mode="after")
    def _min_below_max(self) -> "ScaleQuestion":
        if self.min >= self.max:
            raise ValueError("Linear scale questions must have min less than max")
        return self


QuestionInput = Annotated[
    Union[TextQuestion, IntegerQuestion, CheckboxQuestion, DateTimeQuestion, ChoiceQuestion, ScaleQuestion],
    Field(discriminator="type"),
]


class TemplateCreate(BaseModel):
    """Complete desired state of a template, as submitted by its author."""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    topic_id: int = Field(..., gt=0)
    is_public: bool = False
    questions: List[QuestionInput] = []
    tags: List[str] = []
    permissions: List[int] = Field([], description="User IDs allowed to read/fill a private template")

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @field_validator("description")
    @classmethod
    def _strip_description(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else None

    @field_validator("tags")
    @classmethod
    def _tags_not_blank(cls, value: List[str]) -> List[str]:
        if any(not tag.strip() for tag in value):
            raise ValueError("Tags must be an array of non-empty strings")
        return [tag.strip() for tag in value]


class TemplateUpdate(TemplateCreate):
    """Updates always carry the complete desired state (replace-on-write)."""
    pass


class TopicCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class TopicResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class TagResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class TagCount(BaseModel):
    name: str
    count: int


class OwnerSummary(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class QuestionResponse(BaseModel):
    """Schema for question responses."""
    id: int
    type: str
    title: str
    description: Optional[str]
    order: int
    is_required: bool
    is_visible_in_results: bool
    attachment_url: Optional[str]
    options: Optional[List[str]] = None
    min: Optional[int] = None
    max: Optional[int] = None
    min_label: Optional[str] = None
    max_label: Optional[str] = None

    class Config:
        from_attributes = True

    @field_validator("type", mode="before")
    @classmethod
    def _kind_value(cls, value: Any) -> Any:
        return getattr(value, "value", value)


class TemplateResponse(BaseModel):
    """Schema for template responses."""
    id: int
    owner_id: int
    owner: OwnerSummary
    topic: TopicResponse
    title: str
    description: Optional[str]
    image_url: Optional[str]
    is_public: bool
    version: int
    questions: List[QuestionResponse]
    tags: List[TagResponse]
    permitted_user_ids: List[int]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class TemplateListItem(BaseModel):
    """Schema for template list entries."""
    id: int
    title: str
    description: Optional[str]
    image_url: Optional[str]
    is_public: bool
    owner: OwnerSummary
    topic: TopicResponse
    tags: List[TagResponse]
    form_count: int = 0
    like_count: int = 0
    created_at: datetime


class TemplatePage(BaseModel):
    items: List[TemplateListItem]
    total: int
    page: int
    limit: int


def validation_errors(exc: Any) -> List[Dict[str, Any]]:
    """Flatten a pydantic ValidationError into ``{"loc", "msg"}`` entries."""
    return [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
        for err in exc.errors()
    ]
