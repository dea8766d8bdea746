"""SQLAlchemy engine factory, session factory and transaction scope.

The relational store is the single point of truth and the only place that
needs transactional discipline. :func:`transaction` is the boundary every
write sequence runs inside: it commits on success, rolls back on any
exception, and converts driver errors into :class:`StorageError` so callers
only ever see the closed error kinds.

This module provides:

* ``create_factspine_engine`` -- Create a SA engine from a URL.
* ``FactSpineSession``        -- Session with ``expire_on_commit=False``.
* ``factspine_session_factory`` -- ``sessionmaker`` producing the above.
* ``transaction``             -- all-or-nothing unit of work.
* ``init_schema``             -- create every table on an engine.

Tags:
    factspine, orm, sqlalchemy, session, engine, transaction

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event, make_url
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from factspine.core.errors import StorageError
from factspine.core.orm.base import FactSpineBase


def create_factspine_engine(
    url: str = "sqlite:///data/factspine.db",
    *,
    echo: bool = False,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…``, ``postgresql://…``, etc.)
    echo:
        If ``True``, log all SQL.
    **kwargs:
        Extra arguments forwarded to ``sqlalchemy.create_engine``.
    """
    if not url.startswith("sqlite"):
        return _sa_create_engine(url, echo=echo, **kwargs)

    kwargs.setdefault("connect_args", {"check_same_thread": False})
    database = make_url(url).database
    if database and database != ":memory:" and not database.startswith("file:"):
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    # One shared connection, otherwise every checkout sees a fresh empty db
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs.setdefault("poolclass", StaticPool)

    engine = _sa_create_engine(url, echo=echo, **kwargs)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _rec: Any) -> None:
        # Foreign keys are off by default in SQLite
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


class FactSpineSession(Session):
    """Pre-configured session with ``expire_on_commit=False``.

    Prevents lazy-load surprises when rows are read after the unit of work
    has committed.
    """

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def factspine_session_factory(engine: Engine) -> sessionmaker[FactSpineSession]:
    """Return a ``sessionmaker`` bound to *engine* that produces ``FactSpineSession`` instances."""
    return sessionmaker(bind=engine, class_=FactSpineSession)


@contextmanager
def transaction(factory: sessionmaker[FactSpineSession]) -> Iterator[FactSpineSession]:
    """Run a unit of work atomically.

    Commits when the block exits normally. Any exception rolls back the
    whole unit; SQLAlchemy errors are re-raised as :class:`StorageError`,
    factspine errors propagate unchanged.

    Example::

        with transaction(factory) as session:
            session.add(snapshot)
            session.add_all(facts)
    """
    session = factory()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError(f"Relational store error: {e}", cause=e) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_schema(engine: Engine) -> None:
    """Create every factspine table that does not exist yet."""
    from factspine.core.orm import tables  # noqa: F401  (registers mappers)

    try:
        FactSpineBase.metadata.create_all(engine)
    except SQLAlchemyError as e:
        raise StorageError(f"Failed to create schema: {e}", cause=e) from e


__all__ = [
    "FactSpineSession",
    "create_factspine_engine",
    "factspine_session_factory",
    "init_schema",
    "transaction",
]
