"""Template service: the transactional lifecycle of a template.

A template's row, question list, tag set, permission set and upload
references are written together inside one transaction. Updates replace all
children rather than diffing them; any failure rolls everything back.
"""

import logging
from typing import Optional, List, Sequence, Union, Tuple

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session, joinedload, selectinload

from surveyhub.errors import AccessDenied, NotFound, ValidationError
from surveyhub.models.form import Form, FormAnswer
from surveyhub.models.social import Like
from surveyhub.models.template import Template, TemplatePermission
from surveyhub.models.topic import Topic
from surveyhub.models.user import User
from surveyhub.schemas.template import (
    TemplateCreate, TemplateUpdate, TemplateListItem, TemplatePage,
    OwnerSummary, TopicResponse, TagResponse,
)
from surveyhub.schemas.user import Principal
from surveyhub.services import access
from surveyhub.services.questions import parse_input, build_question_row
from surveyhub.services.storage import (
    FileStorage, LocalFileStorage, UploadedFile, validate_image, validate_attachment,
)
from surveyhub.services.tags import TagResolver

LIST_VIEWS = ("public", "mine", "latest", "top")
LATEST_LIMIT = 6


def build_search_text(title: str, description: Optional[str]) -> str:
    """Lowercased, whitespace-normalised "title description" for text search."""
    return " ".join(f"{title} {description or ''}".lower().split())


class TemplateService:
    """Service for template creation, mutation, lookup and listing."""

    def __init__(
        self,
        db: Session,
        storage: Optional[FileStorage] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.db = db
        self.storage = storage or LocalFileStorage()
        self.log = logger or logging.getLogger(__name__)
        self.tags = TagResolver(db, self.log)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def load_template(self, template_id: int) -> Optional[Template]:
        """Load a template with every association, bypassing stale session state."""
        stmt = (
            select(Template)
            .where(Template.id == template_id)
            .options(
                joinedload(Template.owner),
                joinedload(Template.topic),
                selectinload(Template.question_rows),
                selectinload(Template.tags),
                selectinload(Template.permissions),
            )
            .execution_options(populate_existing=True)
        )
        return self.db.scalars(stmt).first()

    def get_template(self, template_id: int, principal: Principal) -> Template:
        """Return a template the principal may read.

        A private template the principal may not read is reported as
        AccessDenied, not NotFound: its existence is not hidden.
        """
        template = self.load_template(template_id)
        if template is None:
            self.log.info("Template not found: template_id=%s user_id=%s", template_id, principal.id)
            raise NotFound("Template not found")
        if not access.can_read(principal, template):
            self.log.info("Access denied: template_id=%s user_id=%s", template_id, principal.id)
            raise AccessDenied("Access denied")
        return template

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def create_template(
        self,
        owner: Principal,
        template_data: Union[TemplateCreate, dict],
        image: Optional[UploadedFile] = None,
        attachments: Sequence[UploadedFile] = (),
    ) -> Template:
        """Create a template with its questions, tags and permissions atomically."""
        if not owner.is_authenticated:
            raise AccessDenied("User not authenticated")

        try:
            data = parse_input(template_data, TemplateCreate)
            if self.db.get(User, owner.id) is None:
                raise NotFound(f"User ID {owner.id} does not exist")
            self._check_topic(data.topic_id)
            permitted = self._check_permissions(owner.id, data)
            image_url, attachment_urls = self._store_uploads(data, image, attachments, kept_urls=set())

            db_template = Template(
                owner_id=owner.id,
                title=data.title,
                description=data.description,
                image_url=image_url,
                topic_id=data.topic_id,
                is_public=data.is_public,
                version=0,
                search_text=build_search_text(data.title, data.description),
            )
            self.db.add(db_template)
            self.db.flush()

            self._write_children(db_template, data, attachment_urls, permitted)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.log.info(
            "Template created: template_id=%s owner_id=%s questions=%s",
            db_template.id, owner.id, len(data.questions),
        )
        return self.load_template(db_template.id)

    def update_template(
        self,
        template_id: int,
        principal: Principal,
        template_data: Union[TemplateUpdate, dict],
        image: Optional[UploadedFile] = None,
        attachments: Sequence[UploadedFile] = (),
    ) -> Template:
        """Replace a template's whole definition; owner or admin only."""
        try:
            db_template = self.load_template(template_id)
            if db_template is None:
                raise NotFound("Template not found")
            if not access.can_write(principal, db_template):
                self.log.info("Update denied: template_id=%s user_id=%s", template_id, principal.id)
                raise AccessDenied("Unauthorized")

            data = parse_input(template_data, TemplateUpdate)
            self._check_topic(data.topic_id)
            kept_urls = {q.attachment_url for q in db_template.questions if q.attachment_url}
            permitted = self._check_permissions(db_template.owner_id, data)
            image_url, attachment_urls = self._store_uploads(data, image, attachments, kept_urls)

            db_template.title = data.title
            db_template.description = data.description
            db_template.topic_id = data.topic_id
            db_template.is_public = data.is_public
            db_template.search_text = build_search_text(data.title, data.description)
            db_template.version = db_template.version + 1
            if image_url is not None:
                db_template.image_url = image_url

            self._retire_questions(db_template)
            self._clear_permissions(db_template)
            self._write_children(db_template, data, attachment_urls, permitted)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.log.info(
            "Template updated: template_id=%s user_id=%s version=%s",
            template_id, principal.id, db_template.version,
        )
        return self.load_template(template_id)

    def delete_template(self, template_id: int, principal: Principal) -> None:
        """Delete a template; the database cascades to every child row."""
        try:
            db_template = self.load_template(template_id)
            if db_template is None:
                raise NotFound("Template not found")
            if not access.can_write(principal, db_template):
                self.log.info("Delete denied: template_id=%s user_id=%s", template_id, principal.id)
                raise AccessDenied("Unauthorized")
            title = db_template.title
            self.db.execute(delete(Template).where(Template.id == template_id))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.log.info("Template deleted: template_id=%s title=%r user_id=%s", template_id, title, principal.id)

    def _check_topic(self, topic_id: int) -> None:
        if self.db.get(Topic, topic_id) is None:
            raise NotFound(f"Topic ID {topic_id} does not exist")

    def _check_permissions(self, owner_id: int, data: TemplateCreate) -> List[int]:
        """Deduplicated grantees of a private template, excluding its owner; all must exist."""
        if data.is_public:
            return []
        requested = []
        for user_id in data.permissions:
            if user_id != owner_id and user_id not in requested:
                requested.append(user_id)
        if not requested:
            return []
        found = set(self.db.scalars(select(User.id).where(User.id.in_(requested))))
        if len(found) != len(requested):
            invalid = [user_id for user_id in requested if user_id not in found]
            self.log.info("Invalid permission user IDs: owner_id=%s invalid=%s", owner_id, invalid)
            raise ValidationError(
                "Invalid user IDs in permissions",
                errors=[{"loc": ["permissions"], "msg": f"unknown user IDs: {invalid}"}],
            )
        return requested

    def _store_uploads(
        self,
        data: TemplateCreate,
        image: Optional[UploadedFile],
        attachments: Sequence[UploadedFile],
        kept_urls: set,
    ) -> Tuple[Optional[str], List[Optional[str]]]:
        """Validate every upload first, then store the image and referenced attachments."""
        if image is not None:
            validate_image(image)
        for index, attachment in enumerate(attachments):
            validate_attachment(attachment, index)

        for index, question in enumerate(data.questions):
            if question.attachment_index is not None and question.attachment_index >= len(attachments):
                raise ValidationError(
                    f"questions.{index}: attachment_index out of range",
                    errors=[{"loc": ["questions", str(index), "attachment_index"], "msg": "out of range"}],
                )
            if question.attachment_index is None and question.attachment_url and question.attachment_url not in kept_urls:
                raise ValidationError(
                    f"questions.{index}: unknown attachment_url",
                    errors=[{"loc": ["questions", str(index), "attachment_url"], "msg": "not an attachment of this template"}],
                )

        image_url = self.storage.upload(image) if image is not None else None

        stored = {}
        urls: List[Optional[str]] = []
        for question in data.questions:
            if question.attachment_index is not None:
                if question.attachment_index not in stored:
                    stored[question.attachment_index] = self.storage.upload(attachments[question.attachment_index])
                urls.append(stored[question.attachment_index])
            else:
                urls.append(question.attachment_url)
        return image_url, urls

    def _retire_questions(self, db_template: Template) -> None:
        """
        Remove the live question rows before the new set is inserted.

        Rows that already have answers stay in the table, flagged retired, so
        old submissions keep pointing at the schema they were made against.
        """
        live = db_template.questions
        if not live:
            return
        answered = set(self.db.scalars(
            select(FormAnswer.question_id)
            .where(FormAnswer.question_id.in_([q.id for q in live]))
            .distinct()
        ))
        for question in live:
            if question.id in answered:
                question.is_retired = True
            else:
                self.db.delete(question)
        self.db.flush()
        self.db.expire(db_template, ["question_rows"])

    def _clear_permissions(self, db_template: Template) -> None:
        for permission in list(db_template.permissions):
            self.db.delete(permission)
        self.db.flush()
        self.db.expire(db_template, ["permissions"])

    def _write_children(
        self,
        db_template: Template,
        data: TemplateCreate,
        attachment_urls: List[Optional[str]],
        permitted: List[int],
    ) -> None:
        """Insert questions, associate tags and grant permissions."""
        # Client-supplied order is ignored; position in the list wins
        rows = [
            build_question_row(db_template.id, index, question, attachment_urls[index])
            for index, question in enumerate(data.questions)
        ]
        self.db.add_all(rows)

        db_template.tags = self.tags.resolve(data.tags)

        self.db.add_all(
            TemplatePermission(template_id=db_template.id, user_id=user_id)
            for user_id in permitted
        )
        self.db.flush()

    # ------------------------------------------------------------------
    # Listing and search
    # ------------------------------------------------------------------

    def list_templates(
        self,
        principal: Principal,
        view: str = "public",
        page: int = 1,
        limit: int = 10,
    ) -> TemplatePage:
        """
        List templates.

        - ``public``: public templates, newest first
        - ``mine``: the caller's own templates, newest first
        - ``latest``: the six newest public templates
        - ``top``: public templates by number of submissions
        """
        if view not in LIST_VIEWS:
            raise ValidationError(f"Unknown view '{view}'; expected one of {', '.join(LIST_VIEWS)}")
        if view == "mine":
            if not principal.is_authenticated:
                raise AccessDenied("User not authenticated")
            condition = Template.owner_id == principal.id
        else:
            condition = Template.is_public.is_(True)

        if view == "latest":
            page, limit = 1, LATEST_LIMIT
        return self._page(condition, page, limit, by_form_count=(view == "top"))

    def search_templates(
        self,
        principal: Principal,
        query: str,
        page: int = 1,
        limit: int = 10,
    ) -> TemplatePage:
        """Full-text search restricted to templates the principal may read."""
        terms = [term.lower() for term in (query or "").split()]
        if not terms:
            raise ValidationError("Query parameter is required")
        condition = and_(
            *[Template.search_text.contains(term, autoescape=True) for term in terms],
            access.readable_filter(principal),
        )
        result = self._page(condition, page, limit)
        self.log.info("Searched templates: user_id=%s query=%r total=%s", principal.id, query, result.total)
        return result

    def _page(self, condition, page: int, limit: int, by_form_count: bool = False) -> TemplatePage:
        page = max(page, 1)
        limit = max(min(limit, 100), 1)

        form_count = (
            select(func.count(Form.id))
            .where(Form.template_id == Template.id)
            .correlate(Template)
            .scalar_subquery()
        )
        like_count = (
            select(func.count(Like.id))
            .where(Like.template_id == Template.id)
            .correlate(Template)
            .scalar_subquery()
        )

        stmt = (
            select(Template, form_count.label("form_count"), like_count.label("like_count"))
            .where(condition)
            .options(joinedload(Template.owner), joinedload(Template.topic), selectinload(Template.tags))
        )
        if by_form_count:
            stmt = stmt.order_by(form_count.desc(), Template.created_at.desc(), Template.id.desc())
        else:
            stmt = stmt.order_by(Template.created_at.desc(), Template.id.desc())
        stmt = stmt.offset((page - 1) * limit).limit(limit)

        rows = self.db.execute(stmt).unique().all()
        total = self.db.scalar(select(func.count()).select_from(Template).where(condition))

        return TemplatePage(
            items=[self._list_item(t, forms, likes) for t, forms, likes in rows],
            total=total or 0,
            page=page,
            limit=limit,
        )

    @staticmethod
    def _list_item(db_template: Template, forms: int, likes: int) -> TemplateListItem:
        return TemplateListItem(
            id=db_template.id,
            title=db_template.title,
            description=db_template.description,
            image_url=db_template.image_url,
            is_public=db_template.is_public,
            owner=OwnerSummary.model_validate(db_template.owner),
            topic=TopicResponse.model_validate(db_template.topic),
            tags=[TagResponse.model_validate(tag) for tag in db_template.tags],
            form_count=forms or 0,
            like_count=likes or 0,
            created_at=db_template.created_at,
        )
