"""Access-control rules for templates.

Every check is a pure function of the principal and a freshly loaded
template; results are never cached across requests.
"""

from sqlalchemy import or_, true
from sqlalchemy.sql.elements import ColumnElement

from surveyhub.models.template import Template, TemplatePermission
from surveyhub.schemas.user import Principal


def is_owner(principal: Principal, template: Template) -> bool:
    return principal.id is not None and template.owner_id == principal.id


def can_read(principal: Principal, template: Template) -> bool:
    """Public, owner, admin, or listed in the template's permission set."""
    if template.is_public:
        return True
    if principal.id is None:
        return False
    if principal.is_admin or is_owner(principal, template):
        return True
    return principal.id in template.permitted_user_ids


def can_write(principal: Principal, template: Template) -> bool:
    """Only the owner or an admin may update or delete."""
    return principal.is_admin or is_owner(principal, template)


def can_view_results(principal: Principal, template: Template) -> bool:
    """Fillers never see other people's answers; same rule as writing."""
    return can_write(principal, template)


def readable_filter(principal: Principal) -> ColumnElement:
    """SQL predicate equivalent to ``can_read`` for list and search queries."""
    if principal.is_admin:
        return true()
    if principal.id is None:
        return Template.is_public.is_(True)
    return or_(
        Template.is_public.is_(True),
        Template.owner_id == principal.id,
        Template.permissions.any(TemplatePermission.user_id == principal.id),
    )
