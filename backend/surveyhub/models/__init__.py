"""SQLAlchemy models for the SurveyHub backend."""

from surveyhub.models.user import User
from surveyhub.models.topic import Topic
from surveyhub.models.tag import Tag, template_tags
from surveyhub.models.template import Template, TemplateQuestion, TemplatePermission, QuestionKind
from surveyhub.models.form import Form, FormAnswer
from surveyhub.models.social import Like, Comment

__all__ = [
    "User",
    "Topic",
    "Tag",
    "template_tags",
    "Template",
    "TemplateQuestion",
    "TemplatePermission",
    "QuestionKind",
    "Form",
    "FormAnswer",
    "Like",
    "Comment",
]
