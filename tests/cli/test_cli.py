"""Tests for factspine.cli: command smoke tests via CliRunner.

Commands run against a file database and blob area under ``tmp_path``
(see the ``settings_env`` fixture). HTTP goes through an
``httpx.MockTransport`` by replacing ``collect.make_controller``.

Rich wraps long lines at 80 columns, so assertions match short fragments.
"""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from factspine import __version__
from factspine.acquisition.controller import AcquisitionController
from factspine.cli import collect
from factspine.cli.app import app
from factspine.cli.utils import make_runtime, print_dict, print_table
from factspine.core.orm.tables import PARSE_OK, PARSE_PENDING

runner = CliRunner()

URL = "https://datos.example.cl/presupuesto_2024.csv"
LEY_URL = "https://datos.example.cl/ley_2024.csv"
WRONG_HEADER = b"Wrong;Headers;Here;For;Testing;Invalid;Format;Columns;Data\n01;a;b;c;d;e;f;1;2\n"


@pytest.fixture
def cli_env(settings_env, monkeypatch, mock_transport):
    """Initialised schema plus a controller that never touches the network."""

    def _controller(runtime):
        return AcquisitionController.from_settings(
            runtime.settings, runtime.session_factory, transport=mock_transport
        )

    monkeypatch.setattr(collect, "make_controller", _controller)
    result = runner.invoke(app, ["db", "init"])
    assert result.exit_code == 0, result.output
    return settings_env


@pytest.fixture
def csv_route(routes, generic_csv):
    routes[URL] = httpx.Response(200, content=generic_csv, headers={"content-type": "text/csv"})
    return routes


def _artifacts():
    runtime = make_runtime()
    try:
        rows, _ = runtime.registry().list_artifacts()
        return rows
    finally:
        runtime.dispose()


def _collect(source_id: str = "presupuesto_2024", url: str = URL) -> str:
    result = runner.invoke(app, ["collect", "url", "-s", source_id, "-u", url])
    assert result.exit_code == 0, result.output
    return next(a.id for a in _artifacts() if a.url == url)


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_db_init(self, settings_env, tmp_path):
        result = runner.invoke(app, ["db", "init"])
        assert result.exit_code == 0, result.output
        assert "Schema ready" in result.output
        assert (tmp_path / "db" / "factspine.db").exists()

    def test_bad_setting_fails(self, settings_env, monkeypatch):
        monkeypatch.setenv("FACTSPINE_RAW_STORE", "s3")
        result = runner.invoke(app, ["db", "init"])
        assert result.exit_code == 1
        assert "CONFIG" in result.output


class TestCollect:
    def test_url_registers_artifact(self, cli_env, csv_route):
        result = runner.invoke(app, ["collect", "url", "-s", "presupuesto_2024", "-u", URL])

        assert result.exit_code == 0, result.output
        assert "Registered" in result.output
        assert "factspine parse artifact" in result.output
        [artifact] = _artifacts()
        assert artifact.source_id == "presupuesto_2024"
        assert artifact.parse_status == PARSE_PENDING

    def test_url_twice_reports_existing(self, cli_env, csv_route):
        _collect()
        result = runner.invoke(app, ["collect", "url", "-s", "presupuesto_2024", "-u", URL])
        assert result.exit_code == 0, result.output
        assert "Already registered" in result.output
        assert "--force" in result.output
        assert len(_artifacts()) == 1

    def test_url_dry_run(self, cli_env, csv_route):
        result = runner.invoke(
            app, ["collect", "url", "-s", "presupuesto_2024", "-u", URL, "--dry-run"]
        )
        assert result.exit_code == 0, result.output
        assert "Dry run" in result.output
        assert _artifacts() == []

    def test_url_network_error(self, cli_env, routes):
        routes[URL] = httpx.Response(503)
        result = runner.invoke(app, ["collect", "url", "-s", "presupuesto_2024", "-u", URL])
        assert result.exit_code == 1
        assert "NETWORK" in result.output
        assert "job_run_id" in result.output

    def test_batch_partial_exits_1(self, cli_env, csv_route, tmp_path: Path):
        manifest = tmp_path / "sources.yaml"
        manifest.write_text(
            "sources:\n"
            "  - id: presupuesto_2024\n"
            "    urls:\n"
            f"      - url: {URL}\n"
            "        year: 2024\n"
            "      - url: https://datos.example.cl/missing.csv\n"
            "        year: 2024\n"
            "  - id: mercado_publico\n"
            "    requires_api_key: true\n"
            "    urls:\n"
            "      - url: https://api.example.cl/ordenes\n",
            encoding="utf-8",
        )

        result = runner.invoke(app, ["collect", "batch", str(manifest)])

        assert result.exit_code == 1
        assert "partial" in result.output
        assert "Skipped mercado_publico" in result.output
        assert len(_artifacts()) == 1

    def test_batch_missing_manifest(self, cli_env, tmp_path: Path):
        result = runner.invoke(app, ["collect", "batch", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "CONFIG" in result.output


class TestParse:
    def test_parse_then_skip(self, cli_env, csv_route):
        artifact_id = _collect()

        result = runner.invoke(app, ["parse", "artifact", artifact_id])
        assert result.exit_code == 0, result.output
        assert "facts_created: 4" in result.output
        assert "and 1 more" in result.output
        assert "snapshot_id" in result.output
        assert _artifacts()[0].parse_status == PARSE_OK

        again = runner.invoke(app, ["parse", "artifact", artifact_id])
        assert again.exit_code == 0, again.output
        assert "already parsed" in again.output
        assert "--verify" in again.output

    def test_verify_reparses(self, cli_env, csv_route):
        artifact_id = _collect()
        runner.invoke(app, ["parse", "artifact", artifact_id])

        result = runner.invoke(app, ["parse", "artifact", artifact_id, "--verify"])

        assert result.exit_code == 0, result.output
        assert "facts_created: 4" in result.output

    def test_dry_run(self, cli_env, csv_route):
        artifact_id = _collect()

        result = runner.invoke(app, ["parse", "artifact", artifact_id, "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "no facts saved" in result.output
        assert _artifacts()[0].parse_status == PARSE_PENDING

    def test_header_mismatch_exits_1(self, cli_env, routes):
        routes[LEY_URL] = httpx.Response(200, content=WRONG_HEADER)
        artifact_id = _collect("dipres_ley_2024", LEY_URL)

        result = runner.invoke(app, ["parse", "artifact", artifact_id])

        assert result.exit_code == 1
        assert "AMBIGUITY" in result.output
        assert "job_run_id" in result.output

    def test_unknown_artifact(self, cli_env):
        result = runner.invoke(app, ["parse", "artifact", "missing"])
        assert result.exit_code == 1
        assert "STORAGE" in result.output


class TestArtifacts:
    def test_list_json(self, cli_env, csv_route):
        artifact_id = _collect()

        result = runner.invoke(app, ["artifacts", "list", "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["total"] == 1
        assert payload["items"][0]["id"] == artifact_id
        assert payload["items"][0]["parse_status"] == PARSE_PENDING

    def test_list_empty(self, cli_env):
        result = runner.invoke(app, ["artifacts", "list"])
        assert result.exit_code == 0, result.output
        assert "No items" in result.output

    def test_show(self, cli_env, csv_route):
        artifact_id = _collect()
        result = runner.invoke(app, ["artifacts", "show", artifact_id])
        assert result.exit_code == 0, result.output
        assert "presupuesto_2024" in result.output
        assert "content_digest" in result.output

    def test_verify_ok(self, cli_env, csv_route):
        artifact_id = _collect()
        result = runner.invoke(app, ["artifacts", "verify", artifact_id])
        assert result.exit_code == 0, result.output
        assert "matches" in result.output

    def test_verify_tampered_blob(self, cli_env, csv_route):
        artifact_id = _collect()
        Path(_artifacts()[0].storage_location).write_bytes(b"tampered")

        result = runner.invoke(app, ["artifacts", "verify", artifact_id])

        assert result.exit_code == 1
        assert "Digest mismatch" in result.output


class TestOutputHelpers:
    def test_print_dict_shows_brackets_verbatim(self, capsys):
        print_dict({"parse_error": "Header [bold]Monto[/bold] missing"}, title="Artifact")
        assert "[bold]Monto[/bold]" in capsys.readouterr().out

    def test_print_table_shows_brackets_verbatim(self, capsys):
        print_table([{"id": "a1", "source_id": "[red]x[/red]"}], columns=["id", "source_id"])
        assert "[red]x[/red]" in capsys.readouterr().out
