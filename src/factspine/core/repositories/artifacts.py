"""Artifact registry: relational record of every acquired document.

Tags:
    factspine, repository, artifacts

Doc-Types:
    api-reference
"""

from __future__ import annotations

import datetime

from sqlalchemy import func, select

from factspine.core.errors import ArtifactNotFoundError
from factspine.core.orm.tables import PARSE_FAILED, PARSE_OK, ArtifactTable
from factspine.core.repositories._base import BaseRepository


class ArtifactRepository(BaseRepository):
    """CRUD for ``artifacts``.

    Rows are immutable once inserted except for ``parse_status`` and
    ``parse_error``; no method here touches any other column after insert.
    """

    def get(self, artifact_id: str) -> ArtifactTable | None:
        """Get artifact by ID."""
        return self.session.get(ArtifactTable, artifact_id)

    def require(self, artifact_id: str) -> ArtifactTable:
        """Get artifact by ID or raise :class:`ArtifactNotFoundError`."""
        artifact = self.get(artifact_id)
        if artifact is None:
            raise ArtifactNotFoundError(artifact_id)
        return artifact

    def find_by_digest(self, content_digest: str) -> ArtifactTable | None:
        """Return the artifact holding exactly these bytes, if any."""
        stmt = select(ArtifactTable).where(ArtifactTable.content_digest == content_digest)
        return self.session.scalars(stmt).first()

    def create(
        self,
        *,
        artifact_id: str,
        source_id: str,
        url: str,
        captured_at: datetime.datetime,
        content_digest: str,
        mime_type: str,
        size_bytes: int,
        storage_kind: str,
        storage_location: str,
    ) -> ArtifactTable:
        """Register a new artifact with ``parse_status = pending``."""
        artifact = ArtifactTable(
            id=artifact_id,
            source_id=source_id,
            url=url,
            captured_at=captured_at,
            content_digest=content_digest,
            mime_type=mime_type,
            size_bytes=size_bytes,
            storage_kind=storage_kind,
            storage_location=storage_location,
        )
        self.session.add(artifact)
        self.flush()
        return artifact

    def mark_parsed(self, artifact_id: str) -> None:
        """Flip ``parse_status`` to ``ok`` and clear any previous error."""
        artifact = self.require(artifact_id)
        artifact.parse_status = PARSE_OK
        artifact.parse_error = None

    def mark_failed(self, artifact_id: str, error: str) -> None:
        """Flip ``parse_status`` to ``failed`` and keep the message for review."""
        artifact = self.require(artifact_id)
        artifact.parse_status = PARSE_FAILED
        artifact.parse_error = error

    def list_artifacts(
        self,
        *,
        source_id: str | None = None,
        parse_status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ArtifactTable], int]:
        """List artifacts, newest capture first.  Returns ``(rows, total)``."""
        conditions = []
        if source_id is not None:
            conditions.append(ArtifactTable.source_id == source_id)
        if parse_status is not None:
            conditions.append(ArtifactTable.parse_status == parse_status)

        total = self.session.scalar(
            select(func.count()).select_from(ArtifactTable).where(*conditions)
        ) or 0
        rows = self.session.scalars(
            select(ArtifactTable)
            .where(*conditions)
            .order_by(ArtifactTable.captured_at.desc(), ArtifactTable.id)
            .limit(limit)
            .offset(offset)
        ).all()
        return list(rows), total
