"""Pydantic schemas for request/response validation."""

from surveyhub.schemas.user import (
    Principal,
    UserFlagsUpdate,
    UserSummary,
    UserAdminResponse,
)
from surveyhub.schemas.template import (
    QuestionInput,
    TemplateCreate,
    TemplateUpdate,
    TemplateResponse,
    TemplateListItem,
    TemplatePage,
    QuestionResponse,
    TopicCreate,
    TopicResponse,
    TagResponse,
    TagCount,
)
from surveyhub.schemas.form import (
    AnswerInput,
    FormSubmit,
    FormResponse,
    UserFormResponse,
    TemplateResults,
)
from surveyhub.schemas.social import (
    CommentCreate,
    CommentResponse,
    LikeStatus,
)

__all__ = [
    # User
    "Principal",
    "UserFlagsUpdate",
    "UserSummary",
    "UserAdminResponse",
    # Template
    "QuestionInput",
    "TemplateCreate",
    "TemplateUpdate",
    "TemplateResponse",
    "TemplateListItem",
    "TemplatePage",
    "QuestionResponse",
    "TopicCreate",
    "TopicResponse",
    "TagResponse",
    "TagCount",
    # Form
    "AnswerInput",
    "FormSubmit",
    "FormResponse",
    "UserFormResponse",
    "TemplateResults",
    # Social
    "CommentCreate",
    "CommentResponse",
    "LikeStatus",
]
