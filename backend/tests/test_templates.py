"""Template lifecycle: create, replace-on-update, delete, list and search."""

import io

import pytest
from sqlalchemy import func, select

from surveyhub.errors import AccessDenied, NotFound, ValidationError
from surveyhub.models.form import Form, FormAnswer
from surveyhub.models.tag import Tag, template_tags
from surveyhub.models.template import Template, TemplateQuestion, TemplatePermission
from surveyhub.schemas.form import FormSubmit
from surveyhub.schemas.user import Principal
from surveyhub.services.form import FormService
from surveyhub.services.storage import UploadedFile
from surveyhub.services.template import TemplateService, build_search_text

from conftest import principal_for, template_payload


def _upload(name, content_type, size=10):
    return UploadedFile(filename=name, content_type=content_type, size=size, file=io.BytesIO(b"x" * size))


def _count(db, model):
    return db.scalar(select(func.count()).select_from(model))


@pytest.fixture
def service(db, storage):
    return TemplateService(db, storage=storage)


def test_create_template_persists_everything(service, make_user, topic):
    owner = make_user()
    template = service.create_template(principal_for(owner), template_payload(topic.id))

    assert template.version == 0
    assert template.owner.id == owner.id
    assert template.topic.name == "Education"
    assert [q.order for q in template.questions] == [0, 1, 2, 3, 4]
    assert [q.title for q in template.questions] == ["Name", "Rating", "Colour", "Recommend", "Age"]
    assert template.tag_names == ["course", "feedback"]
    assert template.permitted_user_ids == []
    assert template.search_text == "course feedback end of term survey"


def test_search_text_is_normalised():
    assert build_search_text("  Big   Quiz ", "About\nSpace") == "big quiz about space"
    assert build_search_text("Quiz", None) == "quiz"


def test_unknown_topic_is_not_found(service, make_user):
    with pytest.raises(NotFound):
        service.create_template(principal_for(make_user()), template_payload(999))


def test_invalid_question_names_its_index(service, db, make_user, topic):
    payload = template_payload(topic.id, questions=[
        {"type": "string", "title": "ok"},
        {"type": "linear_scale", "title": "bad", "min": 3, "max": 1},
    ])
    with pytest.raises(ValidationError) as exc_info:
        service.create_template(principal_for(make_user()), payload)

    assert exc_info.value.errors[0]["loc"][:2] == ["questions", "1"]
    assert _count(db, Template) == 0


def test_invalid_permission_rolls_back_everything(service, db, make_user, topic):
    owner = make_user()
    payload = template_payload(topic.id, is_public=False, permissions=[12345], tags=["brand-new"])

    with pytest.raises(ValidationError) as exc_info:
        service.create_template(principal_for(owner), payload)

    assert exc_info.value.detail == "Invalid user IDs in permissions"
    assert "12345" in exc_info.value.errors[0]["msg"]
    assert _count(db, Template) == 0
    assert _count(db, TemplateQuestion) == 0
    assert _count(db, Tag) == 0


def test_private_permissions_are_deduplicated_and_exclude_owner(service, make_user, topic):
    owner, reader = make_user(), make_user()
    payload = template_payload(
        topic.id, is_public=False, permissions=[reader.id, reader.id, owner.id]
    )
    template = service.create_template(principal_for(owner), payload)

    assert template.permitted_user_ids == [reader.id]


def test_public_template_stores_no_permissions(service, db, make_user, topic):
    owner, reader = make_user(), make_user()
    service.create_template(principal_for(owner), template_payload(topic.id, permissions=[reader.id]))

    assert _count(db, TemplatePermission) == 0


def test_uploads_are_validated_before_storage(service, storage, make_user, topic):
    owner = make_user()
    payload = template_payload(topic.id, questions=[
        {"type": "string", "title": "See attached", "attachment_index": 0},
    ])

    with pytest.raises(ValidationError):
        service.create_template(
            principal_for(owner), payload,
            image=_upload("cover.png", "image/png"),
            attachments=[_upload("virus.exe", "application/x-msdownload")],
        )
    assert storage.uploaded == []

    with pytest.raises(ValidationError):
        service.create_template(
            principal_for(owner), payload,
            image=_upload("huge.png", "image/png", size=6 * 1024 * 1024),
        )
    assert storage.uploaded == []


def test_attachment_index_out_of_range(service, make_user, topic):
    payload = template_payload(topic.id, questions=[
        {"type": "string", "title": "See attached", "attachment_index": 2},
    ])
    with pytest.raises(ValidationError):
        service.create_template(
            principal_for(make_user()), payload,
            attachments=[_upload("a.pdf", "application/pdf")],
        )


def test_image_and_attachment_urls_are_stored(service, make_user, topic):
    payload = template_payload(topic.id, questions=[
        {"type": "string", "title": "Read this", "attachment_index": 0},
        {"type": "string", "title": "No attachment"},
    ])
    template = service.create_template(
        principal_for(make_user()), payload,
        image=_upload("cover.png", "image/png"),
        attachments=[_upload("notes.pdf", "application/pdf")],
    )

    assert template.image_url == "https://files.test/1/cover.png"
    assert template.questions[0].attachment_url == "https://files.test/2/notes.pdf"
    assert template.questions[1].attachment_url is None


def test_update_replaces_children_and_bumps_version(service, db, make_user, topic):
    owner, reader = make_user(), make_user()
    created = service.create_template(principal_for(owner), template_payload(topic.id))

    payload = template_payload(
        topic.id,
        title="Renamed",
        is_public=False,
        tags=["feedback", "new"],
        permissions=[reader.id],
        questions=[{"type": "text", "title": "Only question"}],
    )
    updated = service.update_template(created.id, principal_for(owner), payload)

    assert updated.version == 1
    assert updated.title == "Renamed"
    assert [q.title for q in updated.questions] == ["Only question"]
    assert updated.tag_names == ["feedback", "new"]
    assert updated.permitted_user_ids == [reader.id]
    # Unanswered old questions are gone, not retired
    assert _count(db, TemplateQuestion) == 1
    assert db.scalar(select(func.count()).select_from(template_tags)) == 2


def test_update_from_empty_to_questions(service, make_user, topic):
    owner = make_user()
    created = service.create_template(principal_for(owner), template_payload(topic.id, questions=[]))
    assert created.questions == []

    updated = service.update_template(created.id, principal_for(owner), template_payload(topic.id))

    assert len(updated.questions) == 5


def test_update_retires_answered_questions(service, db, email_sender, make_user, topic):
    owner, filler = make_user(), make_user()
    created = service.create_template(principal_for(owner), template_payload(topic.id))
    name_question = created.questions[0]
    rating_question = created.questions[1]

    FormService(db, email_sender=email_sender).submit_form(
        principal_for(filler),
        FormSubmit(template_id=created.id, answers=[
            {"question_id": name_question.id, "value": "Ann"},
            {"question_id": rating_question.id, "value": 4},
        ]),
    )

    updated = service.update_template(
        created.id, principal_for(owner),
        template_payload(topic.id, questions=[{"type": "string", "title": "Nickname"}]),
    )

    assert [q.title for q in updated.questions] == ["Nickname"]
    retired = db.scalars(
        select(TemplateQuestion).where(TemplateQuestion.is_retired.is_(True)).order_by(TemplateQuestion.id)
    ).all()
    assert [q.id for q in retired] == [name_question.id, rating_question.id]
    assert _count(db, FormAnswer) == 2


def test_update_keeps_image_unless_replaced(service, make_user, topic):
    owner = make_user()
    created = service.create_template(
        principal_for(owner), template_payload(topic.id), image=_upload("a.png", "image/png")
    )
    updated = service.update_template(created.id, principal_for(owner), template_payload(topic.id))
    assert updated.image_url == created.image_url

    replaced = service.update_template(
        created.id, principal_for(owner), template_payload(topic.id), image=_upload("b.gif", "image/gif")
    )
    assert replaced.image_url.endswith("/b.gif")


def test_update_can_keep_existing_attachment_url(service, make_user, topic):
    owner = make_user()
    created = service.create_template(
        principal_for(owner),
        template_payload(topic.id, questions=[{"type": "string", "title": "Doc", "attachment_index": 0}]),
        attachments=[_upload("doc.pdf", "application/pdf")],
    )
    kept_url = created.questions[0].attachment_url

    updated = service.update_template(
        created.id, principal_for(owner),
        template_payload(topic.id, questions=[{"type": "string", "title": "Doc v2", "attachment_url": kept_url}]),
    )
    assert updated.questions[0].attachment_url == kept_url

    with pytest.raises(ValidationError):
        service.update_template(
            created.id, principal_for(owner),
            template_payload(topic.id, questions=[
                {"type": "string", "title": "Doc", "attachment_url": "https://evil.test/x.pdf"},
            ]),
        )


def test_failed_update_leaves_template_untouched(service, db, make_user, topic):
    owner = make_user()
    created = service.create_template(principal_for(owner), template_payload(topic.id))

    with pytest.raises(ValidationError):
        service.update_template(
            created.id, principal_for(owner),
            template_payload(topic.id, title="Changed", is_public=False, permissions=[999],
                             questions=[{"type": "text", "title": "New"}]),
        )

    reloaded = service.load_template(created.id)
    assert reloaded.title == "Course Feedback"
    assert reloaded.version == 0
    assert len(reloaded.questions) == 5
    assert reloaded.tag_names == ["course", "feedback"]


def test_failed_update_keeps_existing_permissions(service, make_user, topic):
    owner, reader = make_user(), make_user()
    created = service.create_template(
        principal_for(owner), template_payload(topic.id, is_public=False, permissions=[reader.id])
    )

    with pytest.raises(ValidationError):
        service.update_template(
            created.id, principal_for(owner),
            template_payload(topic.id, is_public=False, permissions=[reader.id, 999]),
        )

    reloaded = service.load_template(created.id)
    assert reloaded.permitted_user_ids == [reader.id]
    assert reloaded.is_public is False
    assert reloaded.version == 0


def test_invalid_question_leaves_template_untouched(service, make_user, topic):
    owner = make_user()
    created = service.create_template(principal_for(owner), template_payload(topic.id))
    before = [(q.id, q.title) for q in created.questions]

    with pytest.raises(ValidationError):
        service.update_template(
            created.id, principal_for(owner),
            template_payload(topic.id, title="Changed", tags=["other"], questions=[
                {"type": "linear_scale", "title": "Broken", "min": 5, "max": 5},
            ]),
        )

    reloaded = service.load_template(created.id)
    assert (reloaded.title, reloaded.version) == ("Course Feedback", 0)
    assert [(q.id, q.title) for q in reloaded.questions] == before
    assert reloaded.tag_names == ["course", "feedback"]


def test_bad_permissions_store_no_files(service, storage, make_user, topic):
    owner = make_user()

    with pytest.raises(ValidationError):
        service.create_template(
            principal_for(owner),
            template_payload(topic.id, is_public=False, permissions=[999]),
            image=_upload("cover.png", "image/png"),
        )

    assert storage.uploaded == []


def test_update_requires_owner_or_admin(service, make_user, topic):
    owner, other, admin = make_user(), make_user(), make_user(is_admin=True)
    created = service.create_template(principal_for(owner), template_payload(topic.id))

    with pytest.raises(AccessDenied):
        service.update_template(created.id, principal_for(other), template_payload(topic.id))
    with pytest.raises(NotFound):
        service.update_template(9999, principal_for(owner), template_payload(topic.id))

    updated = service.update_template(created.id, principal_for(admin), template_payload(topic.id, title="By admin"))
    assert updated.title == "By admin"


def test_delete_cascades(service, db, email_sender, make_user, topic):
    owner, filler = make_user(), make_user()
    created = service.create_template(
        principal_for(owner), template_payload(topic.id, is_public=False, permissions=[filler.id])
    )
    FormService(db, email_sender=email_sender).submit_form(
        principal_for(filler),
        FormSubmit(template_id=created.id, answers=[
            {"question_id": created.questions[0].id, "value": "Ann"},
            {"question_id": created.questions[1].id, "value": 2},
        ]),
    )

    with pytest.raises(AccessDenied):
        service.delete_template(created.id, principal_for(filler))

    service.delete_template(created.id, principal_for(owner))

    for model in (Template, TemplateQuestion, TemplatePermission, Form, FormAnswer):
        assert _count(db, model) == 0
    assert db.scalar(select(func.count()).select_from(template_tags)) == 0
    # Tags themselves outlive their templates
    assert _count(db, Tag) == 2


def test_get_template_access(service, make_user, topic):
    owner, reader, stranger = make_user(), make_user(), make_user()
    created = service.create_template(
        principal_for(owner), template_payload(topic.id, is_public=False, permissions=[reader.id])
    )

    assert service.get_template(created.id, principal_for(reader)).id == created.id
    with pytest.raises(AccessDenied):
        service.get_template(created.id, principal_for(stranger))
    with pytest.raises(AccessDenied):
        service.get_template(created.id, Principal())
    with pytest.raises(NotFound):
        service.get_template(created.id + 100, principal_for(owner))


def test_list_views(service, db, email_sender, make_user, topic):
    owner, other = make_user(), make_user()
    first = service.create_template(principal_for(owner), template_payload(topic.id, title="First"))
    service.create_template(principal_for(owner), template_payload(topic.id, title="Hidden", is_public=False))
    third = service.create_template(principal_for(other), template_payload(topic.id, title="Third"))

    FormService(db, email_sender=email_sender).submit_form(
        principal_for(other),
        FormSubmit(template_id=first.id, answers=[
            {"question_id": first.questions[0].id, "value": "x"},
            {"question_id": first.questions[1].id, "value": 1},
        ]),
    )

    public = service.list_templates(Principal(), "public")
    assert public.total == 2
    assert {item.title for item in public.items} == {"First", "Third"}

    mine = service.list_templates(principal_for(owner), "mine")
    assert {item.title for item in mine.items} == {"First", "Hidden"}

    top = service.list_templates(Principal(), "top")
    assert top.items[0].id == first.id
    assert top.items[0].form_count == 1
    assert top.items[1].id == third.id

    with pytest.raises(AccessDenied):
        service.list_templates(Principal(), "mine")
    with pytest.raises(ValidationError):
        service.list_templates(Principal(), "weird")


def test_latest_is_capped(service, make_user, topic):
    owner = make_user()
    for n in range(8):
        service.create_template(principal_for(owner), template_payload(topic.id, title=f"T{n}"))

    latest = service.list_templates(Principal(), "latest", page=3, limit=50)

    assert len(latest.items) == 6
    assert latest.total == 8


def test_search_respects_access(service, make_user, topic):
    owner, reader, stranger = make_user(), make_user(), make_user()
    service.create_template(principal_for(owner), template_payload(topic.id, title="Space quiz"))
    service.create_template(
        principal_for(owner),
        template_payload(topic.id, title="Secret space quiz", is_public=False, permissions=[reader.id]),
    )
    service.create_template(principal_for(owner), template_payload(topic.id, title="Cooking survey"))

    def titles(principal, query):
        return sorted(item.title for item in service.search_templates(principal, query).items)

    assert titles(principal_for(stranger), "SPACE quiz") == ["Space quiz"]
    assert titles(principal_for(reader), "space quiz") == ["Secret space quiz", "Space quiz"]
    assert titles(principal_for(owner), "cook") == ["Cooking survey"]
    assert titles(Principal(), "100%") == []

    with pytest.raises(ValidationError):
        service.search_templates(principal_for(owner), "   ")
