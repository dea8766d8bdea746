"""
Root Typer application for the factspine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from factspine import __version__
from factspine.core.errors import ConfigError
from factspine.core.logging import configure_logging
from factspine.core.settings import get_settings

app = Typer(
    name="factspine",
    help="factspine: evidence-preserving ingestion of public budget disclosures.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"factspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Override FACTSPINE_LOG_LEVEL for this invocation."
    ),
) -> None:
    """factspine CLI: collect artifacts, parse them into facts, audit the evidence."""
    try:
        settings = get_settings()
    except ConfigError as e:
        typer.echo(f"Error (CONFIG): {e.message}", err=True)
        raise typer.Exit(code=1) from e
    configure_logging(
        level=log_level or settings.log_level,
        json_format=settings.json_logs,
    )


# ── Sub-command registration ─────────────────────────────────────────────

from factspine.cli.artifacts import app as artifacts_app  # noqa: E402
from factspine.cli.collect import app as collect_app  # noqa: E402
from factspine.cli.db import app as db_app  # noqa: E402
from factspine.cli.parse import app as parse_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(collect_app, name="collect", help="Acquire artifacts from public URLs.")
app.add_typer(parse_app, name="parse", help="Parse artifacts into canonical facts.")
app.add_typer(artifacts_app, name="artifacts", help="Inspect and verify stored artifacts.")
