"""Fact writer: one Snapshot, N Fact + Provenance pairs, then the status flip.

The writer runs inside a single unit of work opened by the caller (see
:func:`factspine.core.orm.session.transaction`). It never commits, so a
failure anywhere rolls back the snapshot, the facts, any identity rows
created on the way, and the status flip together.

Tags:
    factspine, ingest, writer, snapshot, provenance
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from factspine.core.logging import get_logger
from factspine.core.repositories import ArtifactRepository, FactRepository
from factspine.ingest.identity import IdentityResolver
from factspine.parsing.types import ParseResult

logger = get_logger(__name__)


def snapshot_note(artifact_id: str) -> str:
    return f"Parser run for artifact {artifact_id}"


@dataclass(frozen=True)
class WriteSummary:
    snapshot_id: str
    facts_created: int


class FactWriter:
    """Persist a :class:`ParseResult` for one artifact."""

    def __init__(self, session: Session):
        self.session = session
        self.artifacts = ArtifactRepository(session)
        self.facts = FactRepository(session)

    def write(self, artifact_id: str, result: ParseResult) -> WriteSummary:
        """Write every candidate in input order and mark the artifact parsed."""
        self.artifacts.require(artifact_id)
        snapshot = self.facts.create_snapshot(snapshot_note(artifact_id))
        identities = IdentityResolver(self.session)

        for ordinal, candidate in enumerate(result.candidates):
            entity_id = identities.resolve_entity(
                candidate.entity_key, candidate.entity_name, candidate.entity_type
            )
            metric_id = identities.resolve_metric(
                candidate.metric_key, candidate.metric_name, candidate.unit
            )
            self.facts.insert_fact(
                snapshot_id=snapshot.id,
                ordinal=ordinal,
                entity_id=entity_id,
                metric_id=metric_id,
                candidate=candidate,
                artifact_id=artifact_id,
                method=result.method,
            )

        self.artifacts.mark_parsed(artifact_id)
        logger.info(
            "facts_written",
            snapshot_id=snapshot.id,
            facts_created=len(result.candidates),
            identities_resolved=identities.cache_size,
        )
        return WriteSummary(snapshot_id=snapshot.id, facts_created=len(result.candidates))


__all__ = ["FactWriter", "WriteSummary", "snapshot_note"]
