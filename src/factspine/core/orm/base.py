"""Declarative base and type-map for all factspine ORM models.

Uses SQLAlchemy 2.0 ``DeclarativeBase`` with a ``type_annotation_map``
that maps Python built-in types to portable SA column types, so the same
models run on SQLite (tests, single-machine) and PostgreSQL.
"""

from __future__ import annotations

import datetime

from sqlalchemy import JSON, Date, DateTime, Float, Integer, Text
from sqlalchemy.orm import DeclarativeBase


class FactSpineBase(DeclarativeBase):
    """Shared declarative base for every factspine table.

    * ``str``   → ``Text``
    * ``int``   → ``Integer``
    * ``float`` → ``Float``
    * ``datetime.datetime`` → ``DateTime``
    * ``datetime.date`` → ``Date``
    * ``dict``  → ``JSON``    (stored as TEXT in SQLite, native JSON elsewhere)
    """

    type_annotation_map = {
        str: Text,
        int: Integer,
        float: Float,
        datetime.datetime: DateTime,
        datetime.date: Date,
        dict: JSON,
    }


def utcnow() -> datetime.datetime:
    """Timezone-aware UTC timestamp used for every ``*_at`` column."""
    return datetime.datetime.now(datetime.timezone.utc)
