"""Access-control rules and their SQL counterpart."""

from sqlalchemy import select

from surveyhub.models.template import Template, TemplatePermission
from surveyhub.schemas.user import Principal
from surveyhub.services import access


def _template(owner_id=1, is_public=False, permitted=()):
    template = Template(id=10, owner_id=owner_id, topic_id=1, title="T", is_public=is_public)
    template.permissions = [TemplatePermission(user_id=user_id) for user_id in permitted]
    return template


def test_public_template_is_readable_by_anyone():
    template = _template(is_public=True)
    assert access.can_read(Principal(), template)
    assert access.can_read(Principal(id=99), template)


def test_private_template_read_rules():
    template = _template(owner_id=1, permitted=[2])

    assert access.can_read(Principal(id=1), template)
    assert access.can_read(Principal(id=2), template)
    assert access.can_read(Principal(id=3, is_admin=True), template)
    assert not access.can_read(Principal(id=3), template)
    assert not access.can_read(Principal(), template)


def test_write_and_results_are_owner_or_admin_only():
    template = _template(owner_id=1, is_public=True, permitted=[2])

    for check in (access.can_write, access.can_view_results):
        assert check(Principal(id=1), template)
        assert check(Principal(id=5, is_admin=True), template)
        assert not check(Principal(id=2), template)
        assert not check(Principal(), template)


def test_readable_filter_matches_can_read(db, make_user, topic):
    owner, permitted, stranger = make_user(), make_user(), make_user()
    public = Template(owner_id=owner.id, topic_id=topic.id, title="public", is_public=True)
    private = Template(owner_id=owner.id, topic_id=topic.id, title="private", is_public=False)
    db.add_all([public, private])
    db.flush()
    db.add(TemplatePermission(template_id=private.id, user_id=permitted.id))
    db.commit()

    def visible(principal):
        stmt = select(Template.title).where(access.readable_filter(principal)).order_by(Template.title)
        return list(db.scalars(stmt))

    assert visible(Principal()) == ["public"]
    assert visible(Principal(id=stranger.id)) == ["public"]
    assert visible(Principal(id=permitted.id)) == ["private", "public"]
    assert visible(Principal(id=owner.id)) == ["private", "public"]
    assert visible(Principal(id=stranger.id, is_admin=True)) == ["private", "public"]
