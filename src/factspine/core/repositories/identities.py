"""Entity and metric identity rows, keyed by natural key.

Tags:
    factspine, repository, identity
"""

from __future__ import annotations

from sqlalchemy import select

from factspine.core.orm.tables import EntityTable, MetricTable
from factspine.core.repositories._base import BaseRepository, new_id


class IdentityRepository(BaseRepository):
    """Lookup and insert for ``entities`` and ``metrics``.

    Inserts are plain; the unique constraint on ``natural_key`` is what
    rejects a duplicate, and :class:`~factspine.ingest.identity.IdentityResolver`
    recovers from that by re-reading.
    """

    # -- entities --------------------------------------------------------------

    def find_entity_id(self, natural_key: str) -> str | None:
        return self.session.scalar(
            select(EntityTable.id).where(EntityTable.natural_key == natural_key)
        )

    def insert_entity(self, natural_key: str, display_name: str, entity_type: str) -> str:
        entity = EntityTable(
            id=new_id(),
            natural_key=natural_key,
            display_name=display_name,
            entity_type=entity_type,
        )
        self.session.add(entity)
        self.flush()
        return entity.id

    def get_entity(self, entity_id: str) -> EntityTable | None:
        return self.session.get(EntityTable, entity_id)

    # -- metrics ---------------------------------------------------------------

    def find_metric_id(self, natural_key: str) -> str | None:
        return self.session.scalar(
            select(MetricTable.id).where(MetricTable.natural_key == natural_key)
        )

    def insert_metric(self, natural_key: str, display_name: str, unit: str) -> str:
        metric = MetricTable(
            id=new_id(),
            natural_key=natural_key,
            display_name=display_name,
            unit=unit,
        )
        self.session.add(metric)
        self.flush()
        return metric.id

    def get_metric(self, metric_id: str) -> MetricTable | None:
        return self.session.get(MetricTable, metric_id)
