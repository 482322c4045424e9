"""Service layer for business logic."""

from surveyhub.services.auth import AuthService
from surveyhub.services.template import TemplateService
from surveyhub.services.answers import AnswerValidator
from surveyhub.services.form import FormService
from surveyhub.services.results import ResultsService
from surveyhub.services.user_admin import UserAdminService
from surveyhub.services.tags import TagResolver
from surveyhub.services.topics import TopicService
from surveyhub.services.social import SocialService

__all__ = [
    "AuthService",
    "TemplateService",
    "AnswerValidator",
    "FormService",
    "ResultsService",
    "UserAdminService",
    "TagResolver",
    "TopicService",
    "SocialService",
]
