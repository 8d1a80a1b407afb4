"""Generic repository base for SQLAlchemy 2.x.

Repositories stay persistence-only:

- they never commit or roll back (the Unit of Work owns transactions),
- they never implement use cases,
- they only assign whitelisted fields on update,
- they surface duplicate-key failures as :class:`UniqueViolation` so callers
  can classify them without inspecting driver messages.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from identity_service.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type

# SQLSTATE for unique_violation (PostgreSQL) and SQLite extended result names.
_PG_UNIQUE_VIOLATION = "23505"
_SQLITE_UNIQUE_ERRORS = frozenset({"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"})


class UniqueViolation(Exception):
    """Raised when an insert or update collides with a unique constraint.

    :param table: Table whose constraint rejected the row.
    :param constraint: Constraint name when the driver reports it.
    """

    def __init__(self, table: str, constraint: str | None = None) -> None:
        self.table = table
        self.constraint = constraint
        super().__init__(f"unique violation on {table}" + (f" ({constraint})" if constraint else ""))


def is_unique_violation(exc: IntegrityError) -> bool:
    """Return ``True`` when ``exc`` wraps a driver-level unique violation.

    Classification relies on the structured codes drivers expose
    (``sqlstate``/``pgcode`` for psycopg, ``sqlite_errorname`` for sqlite3),
    never on the text of the error message.
    """
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == _PG_UNIQUE_VIOLATION:
        return True
    return getattr(orig, "sqlite_errorname", None) in _SQLITE_UNIQUE_ERRORS


def _constraint_name(exc: IntegrityError) -> str | None:
    diag = getattr(exc.orig, "diag", None)
    return getattr(diag, "constraint_name", None)


class BaseRepository(Generic[E]):
    """Persistence-only repository for a single mapped class.

    Subclasses MUST define ``model`` and MAY override ``_updatable_fields``.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """
        :param session: Session shared across the Unit of Work scope. Falls
            back to the Flask-scoped ``db.session`` when omitted.
        """
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    def _updatable_fields(self) -> set[str]:
        """Whitelist of keys accepted by :meth:`assign_updates` (fail-closed)."""
        return set()

    def add(self, instance: E) -> E:
        """Insert ``instance`` inside a SAVEPOINT and materialize its PK.

        The SAVEPOINT keeps the outer transaction usable after a failed insert.

        :param instance: New entity instance.
        :returns: The same instance after flush.
        :raises UniqueViolation: If a unique constraint rejects the row.
        :raises sqlalchemy.exc.IntegrityError: For any other integrity failure.
        """
        table = getattr(self.model, "__tablename__", self.model.__name__)
        try:
            with self.session.begin_nested():
                self.session.add(instance)
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise UniqueViolation(table, _constraint_name(exc)) from exc
            raise
        return instance

    def get(self, entity_id: Any) -> E | None:
        """Retrieve a single entity by primary key, or ``None``."""
        stmt = select(self.model).where(self.model.id == entity_id)  # type: ignore[attr-defined]
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def flush(self) -> None:
        self.session.flush()

    def assign_updates(self, instance: E, fields: Mapping[str, Any], *, flush: bool = True) -> E:
        """Assign whitelisted keys via ``setattr`` so ``@validates`` hooks run.

        :param instance: Entity to mutate.
        :param fields: Public mapping of fields to assign.
        :param flush: Call ``session.flush()`` after assignment.
        :returns: The mutated instance.
        :raises ValueError: If a key is not whitelisted.
        """
        allowed = self._updatable_fields()
        unknown = sorted(k for k in fields if k not in allowed)
        if unknown:
            raise ValueError(f"Unknown or non-updatable fields: {unknown}")
        for key, value in fields.items():
            setattr(instance, key, value)
        if flush:
            self.flush()
        return instance
