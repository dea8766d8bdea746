"""
Tests for the parse invocation boundary.

Tests cover:
- End-to-end parse of each format
- Skipping already parsed artifacts, and append-only verify re-parses
- Dry-run leaves the store unchanged
- Failures mark the artifact and the JobRun failed
- Digest mismatch aborts before parsing
"""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import func, select

from factspine.core.errors import AmbiguityError, ArtifactNotFoundError, StorageError
from factspine.core.orm.session import transaction
from factspine.core.orm.tables import (
    PARSE_FAILED,
    PARSE_OK,
    PARSE_PENDING,
    RUN_FAILED,
    RUN_OK,
    FactTable,
    JobRunTable,
    SnapshotTable,
)
from factspine.core.repositories import ArtifactRepository, FactRepository, JobRunRepository
from factspine.ingest.parser_service import (
    STATUS_DRY_RUN,
    STATUS_OK,
    STATUS_SKIPPED,
    ParserService,
)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
WRONG_HEADER = b"Wrong;Headers;Here;For;Testing;Invalid;Format;Columns;Data\n01;a;b;c;d;e;f;1;2\n"


@pytest.fixture
def service(session_factory, registry) -> ParserService:
    return ParserService(session_factory, registry)


def _count(session_factory, table) -> int:
    with transaction(session_factory) as session:
        return session.scalar(select(func.count()).select_from(table))


def _artifact(session_factory, artifact_id):
    with transaction(session_factory) as session:
        return ArtifactRepository(session).require(artifact_id)


class TestParse:
    def test_generic_csv(self, service, session_factory, make_artifact, generic_csv):
        artifact_id = make_artifact(generic_csv, "presupuesto_2024")

        outcome = service.parse_artifact(artifact_id)

        assert outcome.status == STATUS_OK
        assert outcome.format == "generic_csv"
        assert outcome.facts_created == 4
        assert outcome.rows_skipped == 0
        assert _artifact(session_factory, artifact_id).parse_status == PARSE_OK
        with transaction(session_factory) as session:
            run = JobRunRepository(session).get(outcome.job_run_id)
            facts = FactRepository(session).facts_for_snapshot(outcome.snapshot_id)
        assert run.status == RUN_OK
        assert run.component == "parser"
        assert run.detail["facts_created"] == 4
        assert len(facts) == 4

    def test_fiscal_law(self, service, session_factory, make_artifact, fiscal_law_csv):
        artifact_id = make_artifact(fiscal_law_csv, "dipres_ley_2024")
        outcome = service.parse_artifact(artifact_id)

        assert outcome.format == "dipres_ley"
        with transaction(session_factory) as session:
            facts = FactRepository(session).facts_for_snapshot(outcome.snapshot_id)
            values = {f.dims["partida"]: f.value for f in facts}
            methods = {f.provenance.method for f in facts}
        assert values == {"01": 600000000.0, "02": 50000000.0}
        assert methods == {"dipres_ley/v1"}

    def test_spreadsheet(self, service, make_artifact, build_workbook):
        data = build_workbook([["Entidad", "Monto", "Año"], ["A", 1, 2024], ["B", 0, 2024]])
        artifact_id = make_artifact(data, "gasto_2024", mime_type=XLSX_MIME)

        outcome = service.parse_artifact(artifact_id)

        assert outcome.format == "spreadsheet"
        assert outcome.facts_created == 1
        assert outcome.rows_skipped == 1

    def test_unreadable_year_row_is_skipped(self, service, make_artifact):
        data = "entidad,anio,monto\nA,2024,1\nB,²⁰²⁴,2\n".encode()
        artifact_id = make_artifact(data, "presupuesto_2024")

        outcome = service.parse_artifact(artifact_id)

        assert (outcome.status, outcome.facts_created, outcome.rows_skipped) == (STATUS_OK, 1, 1)

    def test_unknown_artifact(self, service, session_factory):
        with pytest.raises(ArtifactNotFoundError):
            service.parse_artifact("missing")
        assert _count(session_factory, JobRunTable) == 0


class TestIdempotence:
    def test_parsed_artifact_is_skipped(
        self, service, session_factory, make_artifact, generic_csv
    ):
        artifact_id = make_artifact(generic_csv, "presupuesto_2024")
        service.parse_artifact(artifact_id)

        outcome = service.parse_artifact(artifact_id)

        assert outcome.status == STATUS_SKIPPED
        assert outcome.job_run_id is None
        assert _count(session_factory, SnapshotTable) == 1
        assert _count(session_factory, JobRunTable) == 1

    def test_verify_appends_new_snapshot(
        self, service, session_factory, make_artifact, generic_csv
    ):
        artifact_id = make_artifact(generic_csv, "presupuesto_2024")
        first = service.parse_artifact(artifact_id)

        second = service.parse_artifact(artifact_id, verify=True)

        assert second.status == STATUS_OK
        assert second.snapshot_id != first.snapshot_id
        assert _count(session_factory, FactTable) == 8
        with transaction(session_factory) as session:
            facts = FactRepository(session)
            assert set(facts.snapshots_for_artifact(artifact_id)) == {
                first.snapshot_id,
                second.snapshot_id,
            }
            old = facts.facts_for_snapshot(first.snapshot_id)
            new = facts.facts_for_snapshot(second.snapshot_id)
            assert [f.entity_id for f in old] == [f.entity_id for f in new]
            assert [f.value for f in old] == [f.value for f in new]


class TestDryRun:
    def test_end_to_end_dry_run(self, service, session_factory, make_artifact, generic_csv):
        artifact_id = make_artifact(generic_csv, "presupuesto_2024")

        outcome = service.parse_artifact(artifact_id, dry_run=True)

        assert outcome.status == STATUS_DRY_RUN
        assert outcome.facts_created == 4
        assert len(outcome.candidates) == 4
        assert outcome.snapshot_id is None
        assert outcome.job_run_id is None
        assert _count(session_factory, FactTable) == 0
        assert _count(session_factory, SnapshotTable) == 0
        assert _count(session_factory, JobRunTable) == 0
        assert _artifact(session_factory, artifact_id).parse_status == PARSE_PENDING

    def test_dry_run_failure_records_nothing(self, service, session_factory, make_artifact):
        artifact_id = make_artifact(WRONG_HEADER, "dipres_ley_2024")
        with pytest.raises(AmbiguityError):
            service.parse_artifact(artifact_id, dry_run=True)
        assert _artifact(session_factory, artifact_id).parse_status == PARSE_PENDING
        assert _count(session_factory, JobRunTable) == 0


class TestFailures:
    def test_header_mismatch_marks_failed(self, service, session_factory, make_artifact):
        artifact_id = make_artifact(WRONG_HEADER, "dipres_ley_2024")

        with pytest.raises(AmbiguityError) as exc_info:
            service.parse_artifact(artifact_id)

        error = exc_info.value
        assert error.requirement == "header"
        assert error.context.artifact_id == artifact_id
        artifact = _artifact(session_factory, artifact_id)
        assert artifact.parse_status == PARSE_FAILED
        assert "Header mismatch" in artifact.parse_error
        assert _count(session_factory, FactTable) == 0
        assert _count(session_factory, SnapshotTable) == 0
        with transaction(session_factory) as session:
            run = JobRunRepository(session).get(error.context.job_run_id)
        assert run.status == RUN_FAILED
        assert run.error == artifact.parse_error

    def test_failed_artifact_can_be_retried(self, service, session_factory, make_artifact):
        artifact_id = make_artifact(b"entidad,anio,monto\nA,2024,x\n", "presupuesto_2024")
        with pytest.raises(AmbiguityError):
            service.parse_artifact(artifact_id)
        with pytest.raises(AmbiguityError):
            service.parse_artifact(artifact_id)
        assert _count(session_factory, JobRunTable) == 2

    def test_failed_verify_marks_failed(
        self, service, session_factory, make_artifact, generic_csv
    ):
        artifact_id = make_artifact(generic_csv, "presupuesto_2024")
        service.parse_artifact(artifact_id)
        location = _artifact(session_factory, artifact_id).storage_location
        Path(location).write_bytes(b"tampered")

        with pytest.raises(StorageError, match="do not match"):
            service.parse_artifact(artifact_id, verify=True)

        assert _artifact(session_factory, artifact_id).parse_status == PARSE_FAILED
        assert _count(session_factory, SnapshotTable) == 1

    def test_digest_mismatch_aborts_before_parsing(
        self, service, session_factory, make_artifact, generic_csv
    ):
        artifact_id = make_artifact(generic_csv, "presupuesto_2024")
        Path(_artifact(session_factory, artifact_id).storage_location).write_bytes(
            generic_csv + b"Extra,Row,2024,1\n"
        )

        with pytest.raises(StorageError):
            service.parse_artifact(artifact_id)

        assert _count(session_factory, FactTable) == 0
        assert _artifact(session_factory, artifact_id).parse_status == PARSE_FAILED
