"""JobRun ledger, the append-only audit trail of acquisition and parse invocations.

A run is opened (``running``) before any work starts and closed exactly once
with ``ok``, ``failed`` or ``partial``. Closing is the only mutation a run
ever sees.

Tags:
    factspine, repository, audit, job-runs
"""

from __future__ import annotations

from typing import Any

from factspine.core.errors import StorageError
from factspine.core.orm.base import utcnow
from factspine.core.orm.tables import RUN_RUNNING, JobRunTable
from factspine.core.repositories._base import BaseRepository, new_id

COMPONENT_COLLECTOR = "collector"
COMPONENT_PARSER = "parser"


class JobRunRepository(BaseRepository):
    """Open, close and read ``job_runs`` rows."""

    def open(
        self,
        component: str,
        source_id: str,
        detail: dict[str, Any] | None = None,
    ) -> JobRunTable:
        """Insert a new ``running`` run and return it."""
        run = JobRunTable(
            id=new_id(),
            component=component,
            source_id=source_id,
            status=RUN_RUNNING,
            started_at=utcnow(),
            detail=dict(detail or {}),
        )
        self.session.add(run)
        self.flush()
        return run

    def close(
        self,
        job_run_id: str,
        status: str,
        *,
        error: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> JobRunTable:
        """Close a running run with its final status.

        ``detail`` is merged into the existing detail document.

        Raises:
            StorageError: If the run does not exist or was already closed.
        """
        run = self.session.get(JobRunTable, job_run_id)
        if run is None:
            raise StorageError(f"JobRun not found: {job_run_id}").with_context(
                job_run_id=job_run_id
            )
        if run.status != RUN_RUNNING:
            raise StorageError(
                f"JobRun {job_run_id} already closed with status {run.status!r}"
            ).with_context(job_run_id=job_run_id)

        run.status = status
        run.finished_at = utcnow()
        run.error = error
        if detail:
            # Reassign so the JSON column is flagged dirty
            run.detail = {**(run.detail or {}), **detail}
        return run

    def get(self, job_run_id: str) -> JobRunTable | None:
        """Get run by ID."""
        return self.session.get(JobRunTable, job_run_id)


__all__ = ["COMPONENT_COLLECTOR", "COMPONENT_PARSER", "JobRunRepository"]
