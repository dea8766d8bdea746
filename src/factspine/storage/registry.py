"""Artifact registry: registry rows joined with the blobs they reference.

Tags:
    factspine, storage, registry, evidence
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import sessionmaker

from factspine.core.errors import StorageError
from factspine.core.hashing import content_digest
from factspine.core.logging import get_logger
from factspine.core.orm.session import FactSpineSession, transaction
from factspine.core.orm.tables import ArtifactTable
from factspine.core.repositories import ArtifactRepository
from factspine.storage.blob import BlobStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class IntegrityReport:
    """Outcome of re-hashing an artifact's stored bytes."""

    artifact_id: str
    expected_digest: str
    actual_digest: str
    storage_location: str

    @property
    def ok(self) -> bool:
        return self.expected_digest == self.actual_digest


class ArtifactRegistry:
    """Read access to artifacts and their evidence bytes.

    Args:
        session_factory: Session factory for the relational store
        blob_stores: Blob stores keyed by ``storage_kind``
    """

    def __init__(
        self,
        session_factory: sessionmaker[FactSpineSession],
        blob_stores: dict[str, BlobStore] | BlobStore,
    ):
        self.session_factory = session_factory
        if isinstance(blob_stores, dict):
            self.blob_stores = dict(blob_stores)
        else:
            self.blob_stores = {blob_stores.kind: blob_stores}

    def get(self, artifact_id: str) -> ArtifactTable:
        """Artifact row (detached) or :class:`ArtifactNotFoundError`."""
        with transaction(self.session_factory) as session:
            return ArtifactRepository(session).require(artifact_id)

    def list_artifacts(
        self,
        *,
        source_id: str | None = None,
        parse_status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ArtifactTable], int]:
        with transaction(self.session_factory) as session:
            return ArtifactRepository(session).list_artifacts(
                source_id=source_id, parse_status=parse_status, limit=limit, offset=offset
            )

    def blob_store_for(self, storage_kind: str) -> BlobStore:
        store = self.blob_stores.get(storage_kind)
        if store is None:
            raise StorageError(f"No blob store configured for storage kind {storage_kind!r}")
        return store

    def read_bytes(self, artifact: ArtifactTable) -> bytes:
        """Raw bytes of *artifact* exactly as captured."""
        return self.blob_store_for(artifact.storage_kind).get(artifact.storage_location)

    def verify_integrity(self, artifact_id: str) -> IntegrityReport:
        """Re-hash the stored blob and compare with the registered digest."""
        artifact = self.get(artifact_id)
        data = self.read_bytes(artifact)
        report = IntegrityReport(
            artifact_id=artifact.id,
            expected_digest=artifact.content_digest,
            actual_digest=content_digest(data),
            storage_location=artifact.storage_location,
        )
        if report.ok:
            logger.info("artifact_integrity_ok", artifact_id=artifact_id)
        else:
            logger.error(
                "artifact_integrity_mismatch",
                artifact_id=artifact_id,
                expected=report.expected_digest,
                actual=report.actual_digest,
            )
        return report


__all__ = ["ArtifactRegistry", "IntegrityReport"]
