from __future__ import annotations

import pytest
from sqlalchemy import func, select

from identity_service.models.user import User
from identity_service.uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork
from tests.factories.user import UserFactory


def _count(session) -> int:
    return session.scalar(select(func.count()).select_from(User))


def test_rw_commits_on_clean_exit(session):
    with SQLAlchemyUnitOfWork() as uow:
        uow.users.create(email="kept@example.com", password_hash="h", nickname="k")

    session.expire_all()
    assert session.scalar(select(User).where(User.email == "kept@example.com")) is not None


def test_rw_rolls_back_on_error(session):
    before = _count(session)

    with pytest.raises(RuntimeError), SQLAlchemyUnitOfWork() as uow:
        uow.users.create(email="lost@example.com", password_hash="h", nickname="l")
        raise RuntimeError("boom")

    assert _count(session) == before


def test_ro_blocks_pending_writes(session):
    user = UserFactory()

    with pytest.raises(RuntimeError, match="Read-only"), SQLAlchemyReadOnlyUnitOfWork() as uow:
        loaded = uow.users.get(user.id)
        loaded.nickname = "changed"
        uow.session.flush()


def test_ro_reads_and_never_commits(session):
    user = UserFactory()

    with SQLAlchemyReadOnlyUnitOfWork() as uow:
        assert uow.users.get_by_email(user.email).id == user.id
        with pytest.raises(RuntimeError):
            uow.commit()


def test_ro_guard_is_removed_after_exit(session):
    with SQLAlchemyReadOnlyUnitOfWork():
        pass

    with SQLAlchemyUnitOfWork() as uow:
        uow.users.create(email="after@example.com", password_hash="h", nickname="a")
