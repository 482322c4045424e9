"""Shared fixtures: an in-memory SQLite database, services and an HTTP client.

Environment overrides are applied before any ``surveyhub`` import so the
application's settings (upload directory, database URL) point at scratch
locations.
"""

import os
import tempfile

_UPLOAD_DIR = tempfile.mkdtemp(prefix="surveyhub-uploads-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = _UPLOAD_DIR
os.environ["RESEND_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from surveyhub.database import Base, configure_sqlite, get_db
from surveyhub.models.topic import Topic
from surveyhub.models.user import User
from surveyhub.schemas.user import Principal
from surveyhub.services.auth import AuthService
from surveyhub.services.notifications import LogEmailSender, InMemoryBroadcaster


class RecordingStorage:
    """File store that keeps uploads in memory."""

    def __init__(self):
        self.uploaded = []

    def upload(self, file):
        self.uploaded.append(file.filename)
        return f"https://files.test/{len(self.uploaded)}/{file.filename}"


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage():
    return RecordingStorage()


@pytest.fixture
def email_sender():
    return LogEmailSender()


@pytest.fixture
def broadcaster():
    return InMemoryBroadcaster()


def _detached(session, obj):
    """
    Load, detach and end the read transaction.

    Every session shares one in-memory connection, so fixtures must not
    leave a transaction open while the code under test runs.
    """
    session.refresh(obj)
    session.expunge(obj)
    session.rollback()
    return obj


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(name=None, is_admin=False, is_blocked=False):
        counter["n"] += 1
        user = User(
            email=f"user{counter['n']}@example.com",
            name=name or f"User {counter['n']}",
            is_admin=is_admin,
            is_blocked=is_blocked,
        )
        db.add(user)
        db.commit()
        return _detached(db, user)

    return _make


@pytest.fixture
def topic(db):
    db_topic = Topic(name="Education")
    db.add(db_topic)
    db.commit()
    return _detached(db, db_topic)


def principal_for(user):
    return Principal(id=user.id, is_admin=user.is_admin)


@pytest.fixture
def client(session_factory, storage, email_sender, broadcaster):
    from surveyhub.main import app
    from surveyhub.services.notifications import get_broadcaster, get_email_sender
    from surveyhub.services.storage import get_storage

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user):
    return {"Authorization": f"Bearer {AuthService.create_access_token(user.id)}"}


def template_payload(topic_id, **overrides):
    """A valid public template definition with one question of most kinds."""
    payload = {
        "title": "Course Feedback",
        "description": "End of term survey",
        "topic_id": topic_id,
        "is_public": True,
        "tags": ["feedback", "course"],
        "questions": [
            {"type": "string", "title": "Name", "is_required": True},
            {"type": "linear_scale", "title": "Rating", "min": 1, "max": 5, "is_required": True},
            {"type": "dropdown", "title": "Colour", "options": ["red", "green"]},
            {"type": "checkbox", "title": "Recommend"},
            {"type": "integer", "title": "Age"},
        ],
        "permissions": [],
    }
    payload.update(overrides)
    return payload
