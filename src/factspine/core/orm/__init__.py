"""SQLAlchemy 2.0 ORM layer: the relational store schema the core requires.

Modules
-------
base        FactSpineBase (declarative base) + utcnow
session     Engine factory, FactSpineSession, transaction scope, init_schema
tables      artifacts, job_runs, entities, metrics, snapshots, facts, provenance

Tags:
    factspine, orm, sqlalchemy, declarative
"""

from __future__ import annotations

from factspine.core.orm.base import FactSpineBase, utcnow
from factspine.core.orm.session import (
    FactSpineSession,
    create_factspine_engine,
    factspine_session_factory,
    init_schema,
    transaction,
)
from factspine.core.orm.tables import *  # noqa: F401,F403

__all__ = [
    "FactSpineBase",
    "FactSpineSession",
    "create_factspine_engine",
    "factspine_session_factory",
    "init_schema",
    "transaction",
    "utcnow",
]
