"""
Acquisition controller: fetch, digest, deduplicate, store, register.

Manifesto:
    Every number the platform publishes must trace back to byte-identical
    evidence. Acquisition therefore does exactly one thing per URL and
    records that it did it:
    - **Content-addressed:** the sha256 digest of the full body is the dedup
      key; identical bytes resolve to the existing artifact
    - **Blob before row:** bytes are persisted first, the registry row is
      inserted second, so a row never references a missing blob
    - **Audited:** a JobRun is opened before the network call and closed
      with ``ok``, ``failed`` or ``partial``
    - **Polite:** a fixed delay separates consecutive requests

Architecture:
    ::

        acquire(source_id, url)
          │
          ├─ JobRun.open (running)                      [own transaction]
          ├─ rate limiter.wait()
          ├─ fetcher.fetch(url) ──────────── NetworkError ─┐
          ├─ content_digest(body)                          │
          ├─ find_by_digest ── hit ──▶ existing id         │
          ├─ blob.put(new_id, body) ──────── StorageError ─┤
          ├─ artifacts.create(..., pending) ─ StorageError ┤
          └─ JobRun.close(ok) ◀────────── or close(failed) ◀┘

        acquire_batch(manifest)
          └─ per source: one JobRun, every URL attempted,
             ok / partial / failed from the per-URL outcomes

    Dry-run fetches and digests but writes neither the blob nor any row,
    and opens no JobRun.

Tags:
    factspine, acquisition, collector, dedup, audit

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from factspine.acquisition.fetcher import HttpFetcher
from factspine.acquisition.manifest import SourceManifest
from factspine.acquisition.rate_limit import FixedDelayRateLimiter
from factspine.core.errors import FactSpineError, StorageError
from factspine.core.hashing import content_digest
from factspine.core.logging import LogContext, get_logger
from factspine.core.orm.base import utcnow
from factspine.core.orm.session import FactSpineSession, transaction
from factspine.core.orm.tables import RUN_FAILED, RUN_OK, RUN_PARTIAL
from factspine.core.repositories import ArtifactRepository, JobRunRepository, new_id
from factspine.core.repositories.job_runs import COMPONENT_COLLECTOR
from factspine.core.settings import FactSpineSettings
from factspine.storage.blob import BlobStore, create_blob_store

logger = get_logger(__name__)


@dataclass
class AcquisitionOutcome:
    """Result of acquiring one URL.

    ``artifact_id`` is the registered id, the existing id on a dedup hit,
    or the would-be id in dry-run mode.
    """

    source_id: str
    url: str
    artifact_id: str
    content_digest: str
    size_bytes: int
    mime_type: str
    deduplicated: bool = False
    dry_run: bool = False
    job_run_id: str | None = None

    def detail(self) -> dict[str, Any]:
        return {
            "artifact_id": self.artifact_id,
            "content_digest": self.content_digest,
            "size_bytes": self.size_bytes,
            "mime_type": self.mime_type,
            "deduplicated": self.deduplicated,
        }


@dataclass
class UrlResult:
    """Per-URL line of a batch run."""

    url: str
    status: str
    temporal_tag: str | None = None
    artifact_id: str | None = None
    deduplicated: bool = False
    error: str | None = None


@dataclass
class SourceBatchResult:
    """One source of a batch run, with its JobRun."""

    source_id: str
    job_run_id: str
    status: str
    urls: list[UrlResult] = field(default_factory=list)

    @property
    def failed(self) -> list[UrlResult]:
        return [u for u in self.urls if u.status == RUN_FAILED]


@dataclass
class BatchReport:
    sources: list[SourceBatchResult] = field(default_factory=list)
    skipped_api_key: list[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        """Worst status across sources (``ok`` when nothing ran)."""
        statuses = {s.status for s in self.sources}
        if not statuses or statuses == {RUN_OK}:
            return RUN_OK
        if statuses == {RUN_FAILED}:
            return RUN_FAILED
        return RUN_PARTIAL


def _batch_status(results: list[UrlResult]) -> str:
    failed = sum(1 for r in results if r.status == RUN_FAILED)
    if failed == 0:
        return RUN_OK
    if failed == len(results):
        return RUN_FAILED
    return RUN_PARTIAL


class AcquisitionController:
    """Collector for single URLs and manifest batches.

    One instance owns one rate limiter, so the fixed delay applies across
    every request it makes, including across sources in a batch.
    """

    def __init__(
        self,
        session_factory: sessionmaker[FactSpineSession],
        blob_store: BlobStore,
        fetcher: HttpFetcher,
        rate_limiter: FixedDelayRateLimiter,
    ):
        self.session_factory = session_factory
        self.blob_store = blob_store
        self.fetcher = fetcher
        self.rate_limiter = rate_limiter

    @classmethod
    def from_settings(
        cls,
        settings: FactSpineSettings,
        session_factory: sessionmaker[FactSpineSession],
        **fetcher_kwargs: Any,
    ) -> AcquisitionController:
        return cls(
            session_factory=session_factory,
            blob_store=create_blob_store(settings.raw_store, settings.raw_fs_dir),
            fetcher=HttpFetcher(
                timeout_seconds=settings.http_timeout_seconds,
                user_agent=settings.user_agent,
                **fetcher_kwargs,
            ),
            rate_limiter=FixedDelayRateLimiter.from_millis(settings.rate_limit_ms),
        )

    # -- JobRun bookkeeping ----------------------------------------------------

    def _open_run(self, source_id: str, detail: dict[str, Any]) -> str:
        with transaction(self.session_factory) as session:
            return JobRunRepository(session).open(COMPONENT_COLLECTOR, source_id, detail).id

    def _close_run(
        self,
        job_run_id: str,
        status: str,
        *,
        error: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        with transaction(self.session_factory) as session:
            JobRunRepository(session).close(job_run_id, status, error=error, detail=detail)

    # -- single URL ------------------------------------------------------------

    def acquire(
        self,
        source_id: str,
        url: str,
        *,
        force: bool = False,
        dry_run: bool = False,
    ) -> AcquisitionOutcome:
        """Acquire one URL under its own JobRun.

        Raises:
            NetworkError: Fetch failed; JobRun closed ``failed``, nothing registered
            StorageError: Blob or registry write failed; JobRun closed ``failed``
        """
        job_run_id = None if dry_run else self._open_run(source_id, {"url": url})

        with LogContext(job_run_id=job_run_id, source_id=source_id):
            try:
                outcome = self._acquire_one(source_id, url, force=force, dry_run=dry_run)
            except Exception as e:
                message = e.message if isinstance(e, FactSpineError) else str(e)
                logger.error("acquisition_failed", url=url, error=message)
                if job_run_id is not None:
                    self._close_run(job_run_id, RUN_FAILED, error=message)
                if isinstance(e, FactSpineError):
                    e.with_context(job_run_id=job_run_id, source_id=source_id, url=url)
                raise

            outcome.job_run_id = job_run_id
            if job_run_id is not None:
                self._close_run(job_run_id, RUN_OK, detail=outcome.detail())
            logger.info(
                "acquisition_completed",
                artifact_id=outcome.artifact_id,
                deduplicated=outcome.deduplicated,
                dry_run=dry_run,
            )
            return outcome

    def _acquire_one(
        self,
        source_id: str,
        url: str,
        *,
        force: bool,
        dry_run: bool,
    ) -> AcquisitionOutcome:
        waited = self.rate_limiter.wait()
        if waited:
            logger.debug("rate_limit_waited", seconds=round(waited, 3))

        document = self.fetcher.fetch(url)
        digest = content_digest(document.content)

        def outcome(artifact_id: str, *, deduplicated: bool = False) -> AcquisitionOutcome:
            return AcquisitionOutcome(
                source_id=source_id,
                url=url,
                artifact_id=artifact_id,
                content_digest=digest,
                size_bytes=document.size_bytes,
                mime_type=document.mime_type,
                deduplicated=deduplicated,
                dry_run=dry_run,
            )

        if not force:
            with transaction(self.session_factory) as session:
                existing = ArtifactRepository(session).find_by_digest(digest)
                existing_id = existing.id if existing is not None else None
            if existing_id is not None:
                logger.info("artifact_deduplicated", artifact_id=existing_id, content_digest=digest)
                return outcome(existing_id, deduplicated=True)

        artifact_id = new_id()
        if dry_run:
            logger.info("dry_run_artifact_not_registered", artifact_id=artifact_id)
            return outcome(artifact_id)

        location = self.blob_store.put(artifact_id, document.content)
        try:
            with transaction(self.session_factory) as session:
                ArtifactRepository(session).create(
                    artifact_id=artifact_id,
                    source_id=source_id,
                    url=url,
                    captured_at=utcnow(),
                    content_digest=digest,
                    mime_type=document.mime_type,
                    size_bytes=document.size_bytes,
                    storage_kind=self.blob_store.kind,
                    storage_location=location,
                )
        except StorageError as e:
            # The blob at `location` is now unreferenced
            if isinstance(e.cause, IntegrityError):
                raise StorageError(
                    f"Content {digest} is already registered; digests are unique",
                    cause=e.cause,
                ).with_context(artifact_id=artifact_id) from e
            raise

        logger.info("artifact_registered", artifact_id=artifact_id, location=location)
        return outcome(artifact_id)

    # -- batch -----------------------------------------------------------------

    def acquire_batch(
        self,
        manifest: SourceManifest,
        *,
        targets: list[str] | None = None,
        force: bool = False,
    ) -> BatchReport:
        """Acquire every URL of the selected manifest sources.

        Sources run sequentially, one JobRun each. A failing URL does not
        stop the batch; it is recorded and the source closes ``partial`` (or
        ``failed`` if nothing succeeded).
        """
        report = BatchReport(skipped_api_key=manifest.skipped_for_api_key(targets))
        for source_id in report.skipped_api_key:
            logger.warning("source_skipped_requires_api_key", source_id=source_id)

        for source in manifest.select(targets):
            job_run_id = self._open_run(
                source.id, {"mode": "batch", "url_count": len(source.urls)}
            )
            results: list[UrlResult] = []
            with LogContext(job_run_id=job_run_id, source_id=source.id):
                for entry in source.urls:
                    try:
                        acquired = self._acquire_one(
                            source.id, entry.url, force=force, dry_run=False
                        )
                    except FactSpineError as e:
                        logger.error("batch_url_failed", url=entry.url, error=e.message)
                        results.append(
                            UrlResult(
                                url=entry.url,
                                status=RUN_FAILED,
                                temporal_tag=entry.temporal_tag,
                                error=e.message,
                            )
                        )
                        continue
                    results.append(
                        UrlResult(
                            url=entry.url,
                            status=RUN_OK,
                            temporal_tag=entry.temporal_tag,
                            artifact_id=acquired.artifact_id,
                            deduplicated=acquired.deduplicated,
                        )
                    )

                status = _batch_status(results)
                failures = [r for r in results if r.status == RUN_FAILED]
                error = "; ".join(f"{r.url}: {r.error}" for r in failures) or None
                self._close_run(
                    job_run_id,
                    status,
                    error=error,
                    detail={"results": [asdict(r) for r in results]},
                )
                logger.info("batch_source_completed", status=status, urls=len(results))

            report.sources.append(
                SourceBatchResult(
                    source_id=source.id, job_run_id=job_run_id, status=status, urls=results
                )
            )
        return report

    def close(self) -> None:
        self.fetcher.close()


__all__ = [
    "AcquisitionController",
    "AcquisitionOutcome",
    "BatchReport",
    "SourceBatchResult",
    "UrlResult",
]
