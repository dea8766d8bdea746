"""Snapshots, facts and provenance.

Everything here is insert-only. A Fact is written together with its
Provenance row in the same flush, so the one-to-one invariant never has a
visible gap.

Tags:
    factspine, repository, facts, provenance, snapshot
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from factspine.core.orm.base import utcnow
from factspine.core.orm.tables import FactTable, ProvenanceTable, SnapshotTable
from factspine.core.repositories._base import BaseRepository, new_id

if TYPE_CHECKING:
    from factspine.parsing.types import FactCandidate


class FactRepository(BaseRepository):
    """Append-only access to ``snapshots``, ``facts`` and ``provenance``."""

    def create_snapshot(self, note: str | None = None) -> SnapshotTable:
        snapshot = SnapshotTable(id=new_id(), note=note, created_at=utcnow())
        self.session.add(snapshot)
        self.flush()
        return snapshot

    def insert_fact(
        self,
        *,
        snapshot_id: str,
        ordinal: int,
        entity_id: str,
        metric_id: str,
        candidate: FactCandidate,
        artifact_id: str,
        method: str,
    ) -> FactTable:
        """Insert one Fact and its Provenance row.

        ``ordinal`` is the candidate's position in parser output; it keeps
        write order queryable since surrogate ids are random.
        """
        fact = FactTable(
            id=new_id(),
            snapshot_id=snapshot_id,
            ordinal=ordinal,
            entity_id=entity_id,
            metric_id=metric_id,
            period_start=candidate.period_start,
            period_end=candidate.period_end,
            value=candidate.value,
            unit=candidate.unit,
            dims=dict(candidate.dims),
        )
        fact.provenance = ProvenanceTable(
            artifact_id=artifact_id,
            location=candidate.location,
            method=method,
        )
        self.session.add(fact)
        self.flush()
        return fact

    def get_snapshot(self, snapshot_id: str) -> SnapshotTable | None:
        return self.session.get(SnapshotTable, snapshot_id)

    def facts_for_snapshot(self, snapshot_id: str) -> list[FactTable]:
        """Facts of one snapshot in write order."""
        stmt = (
            select(FactTable)
            .where(FactTable.snapshot_id == snapshot_id)
            .order_by(FactTable.ordinal)
        )
        return list(self.session.scalars(stmt).all())

    def count_facts(self) -> int:
        return self.session.scalar(select(func.count()).select_from(FactTable)) or 0

    def count_snapshots(self) -> int:
        return self.session.scalar(select(func.count()).select_from(SnapshotTable)) or 0

    def snapshots_for_artifact(self, artifact_id: str) -> list[str]:
        """Ids of every snapshot holding facts derived from *artifact_id*, oldest first."""
        stmt = (
            select(SnapshotTable.id)
            .join(FactTable, FactTable.snapshot_id == SnapshotTable.id)
            .join(ProvenanceTable, ProvenanceTable.fact_id == FactTable.id)
            .where(ProvenanceTable.artifact_id == artifact_id)
            .group_by(SnapshotTable.id, SnapshotTable.created_at)
            .order_by(SnapshotTable.created_at, SnapshotTable.id)
        )
        return list(self.session.scalars(stmt).all())
