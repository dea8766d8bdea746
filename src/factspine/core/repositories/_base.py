"""Shared base for ORM-backed repositories.

Tags:
    factspine, repository, helpers
"""

from __future__ import annotations

import uuid

from sqlalchemy.orm import Session


def new_id() -> str:
    """Surrogate identifier for every factspine row (UUID4 text)."""
    return str(uuid.uuid4())


class BaseRepository:
    """Pairs a SQLAlchemy ``Session`` with table-specific helpers.

    Repositories never commit: the caller owns the unit of work (see
    :func:`factspine.core.orm.session.transaction`), so a repository call
    participates in whatever transaction is open on *session*.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def flush(self) -> None:
        """Push pending inserts so constraint violations surface now."""
        self.session.flush()
