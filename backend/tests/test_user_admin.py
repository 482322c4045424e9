"""Administrative user flags with optimistic concurrency."""

import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from surveyhub.database import Base, configure_sqlite
from surveyhub.errors import AccessDenied, Conflict, NotFound
from surveyhub.models.user import User
from surveyhub.schemas.user import Principal
from surveyhub.services.user_admin import UserAdminService

from conftest import principal_for


def test_set_flags_bumps_version(db, make_user):
    admin, target = make_user(is_admin=True), make_user()

    updated = UserAdminService(db).set_flags(principal_for(admin), target.id, True, True, 1)

    assert (updated.is_admin, updated.is_blocked, updated.version) == (True, True, 2)


def test_racing_admins_one_wins(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False},
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    with Session() as setup:
        target = User(email="target@example.com", name="Target", version=3)
        setup.add(target)
        setup.commit()
        target_id = target.id

    barrier = threading.Barrier(2)
    outcomes = []

    def admin(admin_id, is_blocked):
        with Session() as session:
            barrier.wait()
            try:
                UserAdminService(session).set_flags(
                    Principal(id=admin_id, is_admin=True), target_id, False, is_blocked, 3
                )
                outcomes.append("ok")
            except Conflict:
                outcomes.append("conflict")

    threads = [threading.Thread(target=admin, args=(n, n == 1)) for n in (1, 2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    with Session() as check:
        assert check.get(User, target_id).version == 4
    engine.dispose()
    assert sorted(outcomes) == ["conflict", "ok"]


def test_stale_version_is_rejected(db, make_user):
    admin, target = make_user(is_admin=True), make_user()
    service = UserAdminService(db)
    service.set_flags(principal_for(admin), target.id, False, True, 1)
    db.rollback()

    with pytest.raises(Conflict) as exc_info:
        service.set_flags(principal_for(admin), target.id, True, False, 1)

    assert exc_info.value.detail == "User modified by another user. Please reload."
    stored = db.get(User, target.id)
    assert (stored.is_admin, stored.is_blocked, stored.version) == (False, True, 2)


def test_set_flags_unknown_user(db, make_user):
    admin = make_user(is_admin=True)
    with pytest.raises(NotFound):
        UserAdminService(db).set_flags(principal_for(admin), 4040, False, False, 1)


def test_set_flags_requires_admin(db, make_user):
    user, target = make_user(), make_user()
    with pytest.raises(AccessDenied):
        UserAdminService(db).set_flags(principal_for(user), target.id, True, False, 1)
    assert db.get(User, target.id).version == 1


def test_list_users(db, make_user):
    admin = make_user(name="Zed", is_admin=True)
    make_user(name="Amy")

    assert [u.name for u in UserAdminService(db).list_users()] == ["Amy", "Zed"]
    assert len(UserAdminService(db).list_users_admin(principal_for(admin))) == 2
    with pytest.raises(AccessDenied):
        UserAdminService(db).list_users_admin(principal_for(make_user()))
