"""
Shared pytest fixtures for factspine tests.

This module provides:
- An in-memory SQLite engine with the schema created
- A filesystem blob store and artifact registry under ``tmp_path``
- Factories for registered artifacts and openpyxl workbooks
- An ``httpx.MockTransport`` fetcher keyed by URL
- Settings isolation (``FACTSPINE_*`` env + cache reset)

Usage:
    Fixtures are auto-discovered by pytest:

    def test_something(session_factory, make_artifact):
        artifact_id = make_artifact(GENERIC_CSV, "presupuesto_2024")
"""

from __future__ import annotations

import io
import logging
import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest
from openpyxl import Workbook

from factspine.acquisition.controller import AcquisitionController
from factspine.acquisition.fetcher import HttpFetcher
from factspine.acquisition.rate_limit import FixedDelayRateLimiter
from factspine.core.hashing import content_digest
from factspine.core.orm.base import utcnow
from factspine.core.orm.session import (
    create_factspine_engine,
    factspine_session_factory,
    init_schema,
    transaction,
)
from factspine.core.repositories import ArtifactRepository, new_id
from factspine.core.settings import clear_settings_cache
from factspine.storage.blob import FilesystemBlobStore
from factspine.storage.registry import ArtifactRegistry

# =============================================================================
# Sample documents
# =============================================================================

GENERIC_CSV = (
    "entidad,categoria,anio,monto\n"
    "Ministerio de Salud,Personal,2024,1500000\n"
    "Ministerio de Educación,Bienes,2024,980000.5\n"
    "Ministerio de Obras Públicas,Inversión,2024,2300000\n"
    "  Ministerio de Salud  ,Bienes,2024,410000\n"
).encode("utf-8")

FISCAL_LAW_CSV = (
    "Partida;Capitulo;Programa;Subtitulo;Item;Asignacion;Denominacion;Monto Pesos;Monto Dolar\n"
    "01;01;01;21;;;Presidencia de la República;100000;\n"
    "02;01;01;21;;;Congreso Nacional;50000;10\n"
    "01;01;01;22;;;Presidencia de la República;200000;\n"
    "01;01;02;22;;;Presidencia de la República;300000;5\n"
).encode("utf-8")

CSV_MIME = "text/csv"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@pytest.fixture
def generic_csv() -> bytes:
    return GENERIC_CSV


@pytest.fixture
def fiscal_law_csv() -> bytes:
    return FISCAL_LAW_CSV


@pytest.fixture
def build_workbook() -> Callable[..., bytes]:
    """Factory: rows (header first) -> ``.xlsx`` bytes."""

    def _build(rows: list[list[Any]], sheet: str = "Hoja1") -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = sheet
        for row in rows:
            ws.append(row)
        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    return _build


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_settings_and_logging(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Fresh settings cache per test; drop handlers bound to CliRunner streams."""
    for name in [k for k in os.environ if k.startswith("FACTSPINE_")]:
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()
    logging.getLogger().handlers.clear()


@pytest.fixture
def settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> dict[str, str]:
    """Point settings at a file database and blob area under ``tmp_path``."""
    env = {
        "FACTSPINE_DATABASE_URL": f"sqlite:///{tmp_path / 'db' / 'factspine.db'}",
        "FACTSPINE_RAW_FS_DIR": str(tmp_path / "raw"),
        "FACTSPINE_RATE_LIMIT_MS": "0",
        "FACTSPINE_LOG_LEVEL": "WARNING",
        "FACTSPINE_LOG_FORMAT": "json",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    clear_settings_cache()
    return env


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def engine():
    engine = create_factspine_engine("sqlite://")
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return factspine_session_factory(engine)


@pytest.fixture
def blob_store(tmp_path: Path) -> FilesystemBlobStore:
    return FilesystemBlobStore(tmp_path / "raw")


@pytest.fixture
def registry(session_factory, blob_store) -> ArtifactRegistry:
    return ArtifactRegistry(session_factory, blob_store)


@pytest.fixture
def make_artifact(session_factory, blob_store) -> Callable[..., str]:
    """Factory: store bytes and register a ``pending`` artifact, return its id."""

    def _make(
        data: bytes,
        source_id: str,
        *,
        mime_type: str = CSV_MIME,
        url: str | None = None,
    ) -> str:
        artifact_id = new_id()
        location = blob_store.put(artifact_id, data)
        with transaction(session_factory) as session:
            ArtifactRepository(session).create(
                artifact_id=artifact_id,
                source_id=source_id,
                url=url or f"https://datos.example.cl/{source_id}.csv",
                captured_at=utcnow(),
                content_digest=content_digest(data),
                mime_type=mime_type,
                size_bytes=len(data),
                storage_kind=blob_store.kind,
                storage_location=location,
            )
        return artifact_id

    return _make


# =============================================================================
# Acquisition
# =============================================================================


@pytest.fixture
def routes() -> dict[str, Any]:
    """URL -> canned response. Unknown URLs answer 404."""
    return {}


@pytest.fixture
def mock_transport(routes: dict[str, Any]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        response = routes.get(str(request.url))
        if response is None:
            return httpx.Response(404, text="not found")
        if isinstance(response, Exception):
            raise response
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )

    return httpx.MockTransport(handler)


@pytest.fixture
def controller(
    session_factory, blob_store, mock_transport
) -> Generator[AcquisitionController, None, None]:
    ctrl = AcquisitionController(
        session_factory=session_factory,
        blob_store=blob_store,
        fetcher=HttpFetcher(
            timeout_seconds=5, user_agent="factspine-tests", transport=mock_transport
        ),
        rate_limiter=FixedDelayRateLimiter(min_interval=0),
    )
    yield ctrl
    ctrl.close()
