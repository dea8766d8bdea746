"""
CLI: ``factspine parse``, turn artifacts into facts.
"""

from __future__ import annotations

import typer
from rich.markup import escape

from factspine.cli.utils import console, fail, make_runtime, print_json
from factspine.core.errors import FactSpineError
from factspine.ingest.parser_service import STATUS_SKIPPED, ParserService

app = typer.Typer(no_args_is_help=True)

PREVIEW_ROWS = 3


@app.command("artifact")
def parse_artifact(
    artifact_id: str = typer.Argument(..., help="Artifact id"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Parse and report; write nothing"),
    verify: bool = typer.Option(
        False, "--verify", help="Re-parse an already parsed artifact into a new snapshot"
    ),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Parse one artifact into a snapshot of facts with provenance."""
    runtime = make_runtime(database)
    service = ParserService(runtime.session_factory, runtime.registry())
    try:
        outcome = service.parse_artifact(artifact_id, dry_run=dry_run, verify=verify)
    except FactSpineError as e:
        fail(e)
    finally:
        runtime.dispose()

    if json_out:
        print_json({"status": outcome.status, "job_run_id": outcome.job_run_id, **outcome.detail()})
        return

    if outcome.status == STATUS_SKIPPED:
        console.print(f"Artifact {artifact_id} already parsed. Use --verify to re-check.")
        return

    console.print(f"  [cyan]job_run_id[/cyan]: {outcome.job_run_id or '(dry run, none recorded)'}")
    console.print(f"  [cyan]format[/cyan]: {outcome.format}")
    console.print(f"  [cyan]facts_created[/cyan]: {outcome.facts_created}")
    console.print(f"  [cyan]rows_skipped[/cyan]: {outcome.rows_skipped}")

    for i, candidate in enumerate(outcome.candidates[:PREVIEW_ROWS], start=1):
        console.print(
            f"  [{i}] {escape(candidate.entity_name)} | {candidate.metric_key} | "
            f"{candidate.period_start.year} | {candidate.value} {candidate.unit} "
            f"[dim]{candidate.location}[/dim]"
        )
    if len(outcome.candidates) > PREVIEW_ROWS:
        console.print(f"  ... and {len(outcome.candidates) - PREVIEW_ROWS} more")

    if dry_run:
        console.print("[yellow]Dry run[/yellow], no facts saved.")
    else:
        console.print(f"[green]✓[/green] snapshot_id: {outcome.snapshot_id}")
