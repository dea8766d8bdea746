"""
Parse invocation: artifact id in, Snapshot + Facts (or a recorded failure) out.

Manifesto:
    The invocation boundary is where failures become durable. Everything
    below it raises; this module is the one place that catches, records the
    failure on the Artifact and the JobRun, and re-raises:
    - **Idempotent by status:** an ``ok`` artifact is skipped unless
      ``verify`` is set
    - **Append-only:** a verify re-parse writes a new Snapshot and new Facts
      beside the old ones; nothing is reconciled or overwritten
    - **Evidence first:** the blob is re-hashed before parsing, so facts are
      never derived from bytes that differ from the registered digest
    - **Dry-run writes nothing:** no JobRun, no Snapshot, no status change,
      on success or failure

Architecture:
    ::

        parse_artifact(id)
          ├─ load artifact ──────────────── ArtifactNotFoundError
          ├─ status ok and not verify ───▶ skipped
          ├─ JobRun.open                   [own transaction, not in dry-run]
          ├─ read blob + digest check ───── StorageError
          ├─ detect_format
          ├─ engine.parse ───────────────── AmbiguityError / NoFactsParsedError
          ├─ log rejects (row_skipped)
          ├─ dry-run ───────────────────▶ summary only
          ├─ FactWriter.write              [one transaction]
          └─ JobRun.close(ok)
             on error: mark artifact failed + JobRun.close(failed), re-raise

Tags:
    factspine, ingest, parser, audit

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import sessionmaker

from factspine.core.errors import FactSpineError, StorageError
from factspine.core.hashing import content_digest
from factspine.core.logging import LogContext, get_logger
from factspine.core.orm.session import FactSpineSession, transaction
from factspine.core.orm.tables import PARSE_OK, RUN_FAILED, RUN_OK
from factspine.core.repositories import ArtifactRepository, JobRunRepository
from factspine.core.repositories.job_runs import COMPONENT_PARSER
from factspine.ingest.writer import FactWriter
from factspine.parsing.detector import detect_format
from factspine.parsing.engine import parse
from factspine.parsing.types import FactCandidate
from factspine.storage.registry import ArtifactRegistry

logger = get_logger(__name__)

STATUS_OK = "ok"
STATUS_SKIPPED = "skipped"
STATUS_DRY_RUN = "dry_run"


@dataclass
class ParseOutcome:
    """What one parse invocation did."""

    artifact_id: str
    status: str
    job_run_id: str | None = None
    format: str | None = None
    facts_created: int = 0
    rows_skipped: int = 0
    snapshot_id: str | None = None
    dry_run: bool = False
    candidates: list[FactCandidate] = field(default_factory=list, repr=False)

    def detail(self) -> dict[str, Any]:
        return {
            "artifact_id": self.artifact_id,
            "format": self.format,
            "facts_created": self.facts_created,
            "rows_skipped": self.rows_skipped,
            "snapshot_id": self.snapshot_id,
        }


class ParserService:
    """Run the parser for one artifact at a time."""

    def __init__(
        self,
        session_factory: sessionmaker[FactSpineSession],
        registry: ArtifactRegistry,
    ):
        self.session_factory = session_factory
        self.registry = registry

    def parse_artifact(
        self,
        artifact_id: str,
        *,
        dry_run: bool = False,
        verify: bool = False,
    ) -> ParseOutcome:
        """Parse *artifact_id* and persist the result.

        Raises:
            ArtifactNotFoundError: Unknown id (nothing recorded)
            StorageError: Blob unreadable, digest mismatch or store failure
            AmbiguityError: The document could not be interpreted by fixed rule
        """
        artifact = self.registry.get(artifact_id)

        if artifact.parse_status == PARSE_OK and not verify:
            logger.info("artifact_already_parsed", artifact_id=artifact_id)
            return ParseOutcome(artifact_id=artifact_id, status=STATUS_SKIPPED, dry_run=dry_run)

        job_run_id = None
        if not dry_run:
            with transaction(self.session_factory) as session:
                job_run_id = JobRunRepository(session).open(
                    COMPONENT_PARSER,
                    artifact.source_id,
                    {"artifact_id": artifact_id, "verify": verify},
                ).id

        with LogContext(job_run_id=job_run_id, artifact_id=artifact_id):
            outcome = ParseOutcome(
                artifact_id=artifact_id,
                status=STATUS_DRY_RUN if dry_run else STATUS_OK,
                job_run_id=job_run_id,
                dry_run=dry_run,
            )
            try:
                self._run(artifact, outcome)
            except Exception as e:
                message = e.message if isinstance(e, FactSpineError) else str(e)
                logger.error("parse_failed", error=message, format=outcome.format)
                if job_run_id is not None:
                    self._record_failure(artifact_id, job_run_id, message, outcome)
                if isinstance(e, FactSpineError):
                    e.with_context(
                        artifact_id=artifact_id,
                        job_run_id=job_run_id,
                        source_id=artifact.source_id,
                    )
                raise

            if job_run_id is not None:
                with transaction(self.session_factory) as session:
                    JobRunRepository(session).close(job_run_id, RUN_OK, detail=outcome.detail())

            logger.info(
                "parse_completed",
                format=outcome.format,
                facts_created=outcome.facts_created,
                rows_skipped=outcome.rows_skipped,
                snapshot_id=outcome.snapshot_id,
                dry_run=dry_run,
            )
            return outcome

    def _run(self, artifact, outcome: ParseOutcome) -> None:
        data = self.registry.read_bytes(artifact)
        actual = content_digest(data)
        if actual != artifact.content_digest:
            raise StorageError(
                f"Stored bytes do not match registered digest {artifact.content_digest} "
                f"(found {actual})"
            ).with_context(location=artifact.storage_location)

        fmt = detect_format(
            mime_type=artifact.mime_type,
            source_id=artifact.source_id,
            storage_location=artifact.storage_location,
            url=artifact.url,
        )
        outcome.format = fmt.name
        logger.info("parse_started", format=fmt.name, size_bytes=len(data))

        result = parse(data, artifact.source_id, fmt)
        for reject in result.rejects:
            logger.warning("row_skipped", **reject.to_dict())

        outcome.candidates = result.candidates
        outcome.facts_created = result.facts_count
        outcome.rows_skipped = result.rows_skipped

        if outcome.dry_run:
            return

        with transaction(self.session_factory) as session:
            summary = FactWriter(session).write(artifact.id, result)
        outcome.snapshot_id = summary.snapshot_id

    def _record_failure(
        self, artifact_id: str, job_run_id: str, message: str, outcome: ParseOutcome
    ) -> None:
        with transaction(self.session_factory) as session:
            ArtifactRepository(session).mark_failed(artifact_id, message)
            JobRunRepository(session).close(
                job_run_id,
                RUN_FAILED,
                error=message,
                detail={
                    "artifact_id": artifact_id,
                    "format": outcome.format,
                    "facts_created": 0,
                    "rows_skipped": outcome.rows_skipped,
                },
            )


__all__ = [
    "STATUS_DRY_RUN",
    "STATUS_OK",
    "STATUS_SKIPPED",
    "ParseOutcome",
    "ParserService",
]
