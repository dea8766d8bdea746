"""
CLI: ``factspine collect``, artifact acquisition.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from factspine.acquisition.controller import AcquisitionController
from factspine.acquisition.manifest import SourceManifest
from factspine.cli.utils import Runtime, console, err_console, fail, make_runtime, print_json
from factspine.core.errors import FactSpineError
from factspine.core.orm.tables import RUN_OK

app = typer.Typer(no_args_is_help=True)


def make_controller(runtime: Runtime) -> AcquisitionController:
    """Controller wired from settings (tests replace this to inject a transport)."""
    return AcquisitionController.from_settings(runtime.settings, runtime.session_factory)


@app.command("url")
def collect_url(
    source_id: str = typer.Option(..., "--source-id", "-s", help="Source identifier"),
    url: str = typer.Option(..., "--url", "-u", help="URL to fetch"),
    force: bool = typer.Option(False, "--force", help="Skip the digest dedup shortcut"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Fetch and hash only; write nothing"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Acquire a single URL as an artifact."""
    runtime = make_runtime(database)
    controller = make_controller(runtime)
    try:
        outcome = controller.acquire(source_id, url, force=force, dry_run=dry_run)
    except FactSpineError as e:
        fail(e)
    finally:
        controller.close()
        runtime.dispose()

    if json_out:
        print_json({"job_run_id": outcome.job_run_id, **outcome.detail()})
        return

    console.print(f"  [cyan]job_run_id[/cyan]: {outcome.job_run_id or '(dry run, none recorded)'}")
    console.print(f"  [cyan]content_digest[/cyan]: {outcome.content_digest}")
    console.print(f"  [cyan]size_bytes[/cyan]: {outcome.size_bytes}")
    console.print(f"  [cyan]mime_type[/cyan]: {outcome.mime_type}")
    if outcome.deduplicated:
        console.print(f"[yellow]Already registered[/yellow] artifact_id: {outcome.artifact_id}")
        console.print("[dim]Use --force to bypass deduplication.[/dim]")
    elif dry_run:
        console.print(f"[yellow]Dry run[/yellow], would create artifact_id: {outcome.artifact_id}")
    else:
        console.print(f"[green]✓[/green] Registered artifact_id: {outcome.artifact_id}")
        console.print(f"[dim]Next: factspine parse artifact {outcome.artifact_id}[/dim]")


@app.command("batch")
def collect_batch(
    manifest_path: Path = typer.Argument(..., help="Manifest file (.json, .yaml, .yml)"),
    sources: list[str] | None = typer.Option(
        None, "--source", "-s", help="Only these source ids (repeatable; includes disabled)"
    ),
    force: bool = typer.Option(False, "--force", help="Skip the digest dedup shortcut"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Acquire every URL of the manifest's sources, one JobRun per source."""
    try:
        manifest = SourceManifest.from_file(manifest_path)
    except FactSpineError as e:
        fail(e)

    runtime = make_runtime(database)
    controller = make_controller(runtime)
    try:
        report = controller.acquire_batch(manifest, targets=sources or None, force=force)
    except FactSpineError as e:
        fail(e)
    finally:
        controller.close()
        runtime.dispose()

    if json_out:
        print_json(
            {
                "status": report.status,
                "skipped_api_key": report.skipped_api_key,
                "sources": [
                    {
                        "source_id": s.source_id,
                        "job_run_id": s.job_run_id,
                        "status": s.status,
                        "urls": [u.__dict__ for u in s.urls],
                    }
                    for s in report.sources
                ],
            }
        )
    else:
        for source_id in report.skipped_api_key:
            console.print(f"[dim]Skipped {source_id}: requires an API key[/dim]")
        for source in report.sources:
            color = "green" if source.status == RUN_OK else "red"
            console.print(
                f"[bold]{source.source_id}[/bold] [{color}]{source.status}[/{color}] "
                f"job_run_id: {source.job_run_id}"
            )
            for result in source.urls:
                if result.status == RUN_OK:
                    note = " (existing)" if result.deduplicated else ""
                    console.print(
                        f"  [green]✓[/green] {result.url} -> {result.artifact_id}{note}"
                    )
                else:
                    err_console.print(
                        f"  [red]✗[/red] {result.url}: {escape(result.error or '')}"
                    )
        if not report.sources:
            console.print("[dim]No sources selected.[/dim]")

    if report.status != RUN_OK:
        raise typer.Exit(code=1)
