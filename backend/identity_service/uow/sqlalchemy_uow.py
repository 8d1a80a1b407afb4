"""
SQLAlchemy implementations of :class:`UnitOfWork` for Flask.
"""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import Session

from identity_service.core.extensions import db
from identity_service.repositories import UserRepository
from identity_service.uow.base import UnitOfWork


class SQLAlchemyRepositoryContainer:
    """Repositories sharing one SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-write UoW on the Flask-scoped session.

    Commits when the block exits cleanly, rolls back otherwise. A failing
    commit is rolled back before the error propagates.
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # The session begins lazily on first use.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
            return
        try:
            self.commit()
        except Exception:
            self.rollback()
            raise

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only UoW on the Flask-scoped session.

    While the block runs, any flush carrying new, dirty or deleted objects
    raises :class:`RuntimeError`. When the UoW started the transaction itself
    it rolls it back on exit; when it joined an outer transaction it leaves
    that transaction untouched. :meth:`commit` is never allowed.
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)
        self._owns_transaction = False
        self._target: Session | None = None

    @staticmethod
    def _block_writes(session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError("Read-only UnitOfWork: flush with pending writes blocked.")

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        # Resolve the scoped proxy so the guard is bound to this session only.
        target = self.session() if callable(self.session) else self.session
        self._target = target
        self._owns_transaction = not target.in_transaction()
        event.listen(target, "before_flush", self._block_writes)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        target = self._target
        self._target = None
        if target is None:
            return
        event.remove(target, "before_flush", self._block_writes)
        if self._owns_transaction:
            target.rollback()

    def commit(self) -> None:
        """
        :raises RuntimeError: Always; read-only scopes never commit.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()
