"""Tag resolution: free-text names to persistent tag rows."""

import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from surveyhub.errors import ValidationError
from surveyhub.models.tag import Tag, template_tags


class TagResolver:
    """
    Maps tag names to Tag rows inside the caller's transaction.

    Missing tags are inserted under a SAVEPOINT so that a concurrent insert
    of the same name (unique violation) only undoes that one insert; the
    existing row is then re-fetched instead of failing the whole request.
    """

    def __init__(self, db: Session, logger: Optional[logging.Logger] = None):
        self.db = db
        self.log = logger or logging.getLogger(__name__)

    @staticmethod
    def normalise(names: Iterable[str]) -> List[str]:
        """Trim, reject blanks, and de-duplicate keeping first-seen order."""
        seen = []
        for raw in names:
            name = (raw or "").strip()
            if not name:
                raise ValidationError("Tags must be an array of non-empty strings")
            if name not in seen:
                seen.append(name)
        return seen

    def resolve(self, names: Iterable[str]) -> List[Tag]:
        """Return one Tag per distinct name, creating the missing ones."""
        wanted = self.normalise(names)
        if not wanted:
            return []

        existing = {
            tag.name: tag
            for tag in self.db.scalars(select(Tag).where(Tag.name.in_(wanted)))
        }
        for name in wanted:
            if name not in existing:
                existing[name] = self._create_or_fetch(name)

        return [existing[name] for name in wanted]

    def _create_or_fetch(self, name: str) -> Tag:
        try:
            with self.db.begin_nested():
                tag = Tag(name=name)
                self.db.add(tag)
                self.db.flush()
            self.log.info("Tag created: id=%s name=%r", tag.id, name)
            return tag
        except IntegrityError:
            self.log.info("Tag %r created concurrently; re-fetching", name)
            tag = self.db.scalars(select(Tag).where(Tag.name == name)).first()
            if tag is None:
                raise
            return tag

    def list_tags(self) -> List[Tag]:
        return list(self.db.scalars(select(Tag).order_by(Tag.name)))

    def tag_counts(self) -> List[Tuple[str, int]]:
        """Tag cloud: each tag with the number of templates carrying it."""
        rows = self.db.execute(
            select(Tag.name, func.count(template_tags.c.template_id))
            .join(template_tags, template_tags.c.tag_id == Tag.id, isouter=True)
            .group_by(Tag.id, Tag.name)
            .order_by(Tag.name)
        ).all()
        return [(name, count) for name, count in rows]
