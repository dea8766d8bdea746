"""
Identity resolution: natural key to durable surrogate id.

Manifesto:
    An entity or metric is created the first time its natural key is seen
    and reused forever after. The display name of that first occurrence is
    kept; later spellings of the same key never overwrite it.

    The resolver's cache lives for one parse run only. It saves lookups, it
    is not what prevents duplicates: the unique constraint on
    ``natural_key`` is. When an insert loses a race against another
    process, the savepoint is rolled back and the winner's row is read.

Tags:
    factspine, ingest, identity, get-or-create
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from factspine.core.errors import StorageError
from factspine.core.logging import get_logger
from factspine.core.repositories import IdentityRepository

logger = get_logger(__name__)


class IdentityResolver:
    """Get-or-create entities and metrics inside the caller's transaction.

    Create one per parse run and drop it when the run ends.
    """

    def __init__(self, session: Session):
        self.session = session
        self.repo = IdentityRepository(session)
        self._entities: dict[str, str] = {}
        self._metrics: dict[str, str] = {}

    def resolve_entity(self, key: str, display_name: str, entity_type: str) -> str:
        """Return the id of the entity with natural key *key*, creating it if absent."""
        cached = self._entities.get(key)
        if cached is not None:
            return cached
        entity_id = self._get_or_create(
            key,
            find=self.repo.find_entity_id,
            insert=lambda: self.repo.insert_entity(key, display_name, entity_type),
            kind="entity",
        )
        self._entities[key] = entity_id
        return entity_id

    def resolve_metric(self, key: str, display_name: str, unit: str) -> str:
        """Return the id of the metric with natural key *key*, creating it if absent."""
        cached = self._metrics.get(key)
        if cached is not None:
            return cached
        metric_id = self._get_or_create(
            key,
            find=self.repo.find_metric_id,
            insert=lambda: self.repo.insert_metric(key, display_name, unit),
            kind="metric",
        )
        self._metrics[key] = metric_id
        return metric_id

    def _get_or_create(
        self,
        key: str,
        *,
        find: Callable[[str], str | None],
        insert: Callable[[], str],
        kind: str,
    ) -> str:
        existing = find(key)
        if existing is not None:
            return existing

        try:
            with self.session.begin_nested():
                new_id = insert()
        except IntegrityError:
            winner = find(key)
            if winner is None:
                raise StorageError(
                    f"Could not create or find {kind} with natural key {key!r}"
                ) from None
            logger.info("identity_insert_raced", kind=kind, natural_key=key)
            return winner

        logger.debug("identity_created", kind=kind, natural_key=key, id=new_id)
        return new_id

    @property
    def cache_size(self) -> int:
        return len(self._entities) + len(self._metrics)


__all__ = ["IdentityResolver"]
