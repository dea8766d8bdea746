"""Canonical table definitions: artifacts, job runs, identities, snapshots, facts, provenance.

Constraints the core relies on:

* ``artifacts.content_digest`` is unique (dedup key).
* ``entities.natural_key`` and ``metrics.natural_key`` are unique, so
  get-or-create stays correct even without the in-run cache.
* ``provenance.fact_id`` is the primary key, which makes Provenance
  one-to-one with Fact.

Tags:
    factspine, orm, sqlalchemy, tables

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

import datetime

from sqlalchemy import JSON, Date, DateTime, Float, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from factspine.core.orm.base import FactSpineBase, utcnow

PARSE_PENDING = "pending"
PARSE_OK = "ok"
PARSE_FAILED = "failed"

RUN_RUNNING = "running"
RUN_OK = "ok"
RUN_FAILED = "failed"
RUN_PARTIAL = "partial"


class ArtifactTable(FactSpineBase):
    __tablename__ = "artifacts"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    source_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    captured_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    content_digest: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    mime_type: Mapped[str] = mapped_column(Text, nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_kind: Mapped[str] = mapped_column(Text, nullable=False, default="fs")
    storage_location: Mapped[str] = mapped_column(Text, nullable=False)
    parse_status: Mapped[str] = mapped_column(Text, nullable=False, default=PARSE_PENDING)
    parse_error: Mapped[str | None] = mapped_column(Text)


class JobRunTable(FactSpineBase):
    __tablename__ = "job_runs"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    component: Mapped[str] = mapped_column(Text, nullable=False)
    source_id: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default=RUN_RUNNING)
    started_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    finished_at: Mapped[datetime.datetime | None] = mapped_column(DateTime)
    detail: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    error: Mapped[str | None] = mapped_column(Text)


class EntityTable(FactSpineBase):
    __tablename__ = "entities"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    natural_key: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    entity_type: Mapped[str] = mapped_column(Text, nullable=False, default="organismo")


class MetricTable(FactSpineBase):
    __tablename__ = "metrics"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    natural_key: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    unit: Mapped[str] = mapped_column(Text, nullable=False, default="CLP")


class SnapshotTable(FactSpineBase):
    __tablename__ = "snapshots"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    note: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    facts: Mapped[list[FactTable]] = relationship(
        "FactTable", back_populates="snapshot", order_by="FactTable.ordinal"
    )


class FactTable(FactSpineBase):
    __tablename__ = "facts"
    __table_args__ = (
        Index("idx_facts_metric_time", "metric_id", "period_start", "period_end"),
        Index("idx_facts_snapshot_ordinal", "snapshot_id", "ordinal"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    snapshot_id: Mapped[str] = mapped_column(
        Text, ForeignKey("snapshots.id"), nullable=False
    )
    ordinal: Mapped[int] = mapped_column(Integer, nullable=False)
    entity_id: Mapped[str] = mapped_column(
        Text, ForeignKey("entities.id"), nullable=False, index=True
    )
    metric_id: Mapped[str] = mapped_column(Text, ForeignKey("metrics.id"), nullable=False)
    period_start: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    period_end: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(Text, nullable=False)
    dims: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # --- relationships ---
    snapshot: Mapped[SnapshotTable] = relationship("SnapshotTable", back_populates="facts")
    provenance: Mapped[ProvenanceTable] = relationship(
        "ProvenanceTable", back_populates="fact", uselist=False
    )


class ProvenanceTable(FactSpineBase):
    __tablename__ = "provenance"

    fact_id: Mapped[str] = mapped_column(Text, ForeignKey("facts.id"), primary_key=True)
    artifact_id: Mapped[str] = mapped_column(
        Text, ForeignKey("artifacts.id"), nullable=False, index=True
    )
    location: Mapped[str] = mapped_column(Text, nullable=False)
    method: Mapped[str] = mapped_column(Text, nullable=False)

    fact: Mapped[FactTable] = relationship("FactTable", back_populates="provenance")


__all__ = [
    "ArtifactTable",
    "EntityTable",
    "FactTable",
    "JobRunTable",
    "MetricTable",
    "PARSE_FAILED",
    "PARSE_OK",
    "PARSE_PENDING",
    "ProvenanceTable",
    "RUN_FAILED",
    "RUN_OK",
    "RUN_PARTIAL",
    "RUN_RUNNING",
    "SnapshotTable",
]
