"""
CLI: ``factspine artifacts``, inspect the registry and verify evidence.
"""

from __future__ import annotations

import typer

from factspine.cli.utils import (
    console,
    err_console,
    fail,
    make_runtime,
    print_dict,
    print_json,
    print_table,
)
from factspine.core.errors import FactSpineError

app = typer.Typer(no_args_is_help=True)

LIST_COLUMNS = ["id", "source_id", "captured_at", "size_bytes", "mime_type", "parse_status"]


@app.command("list")
def list_artifacts(
    source_id: str | None = typer.Option(None, "--source-id", "-s"),
    status: str | None = typer.Option(None, "--status", help="pending, ok or failed"),
    limit: int = typer.Option(50, "--limit", "-n"),
    offset: int = typer.Option(0, "--offset"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List registered artifacts, newest first."""
    runtime = make_runtime(database)
    try:
        rows, total = runtime.registry().list_artifacts(
            source_id=source_id, parse_status=status, limit=limit, offset=offset
        )
    except FactSpineError as e:
        fail(e)
    finally:
        runtime.dispose()

    if json_out:
        print_json(
            {
                "items": [{c: getattr(r, c) for c in LIST_COLUMNS} for r in rows],
                "total": total,
                "limit": limit,
                "offset": offset,
            }
        )
        return

    print_table(rows, columns=LIST_COLUMNS, title="Artifacts")
    if rows:
        console.print(f"\n[dim]Showing {len(rows)} of {total} (offset {offset})[/dim]")


@app.command("show")
def show_artifact(
    artifact_id: str = typer.Argument(..., help="Artifact id"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one artifact's registry record."""
    runtime = make_runtime(database)
    try:
        artifact = runtime.registry().get(artifact_id)
    except FactSpineError as e:
        fail(e)
    finally:
        runtime.dispose()

    record = {c.name: getattr(artifact, c.name) for c in artifact.__table__.columns}
    if json_out:
        print_json(record)
    else:
        print_dict(record, title="Artifact")


@app.command("verify")
def verify_artifact(
    artifact_id: str = typer.Argument(..., help="Artifact id"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Re-hash the stored bytes and compare with the registered digest."""
    runtime = make_runtime(database)
    try:
        report = runtime.registry().verify_integrity(artifact_id)
    except FactSpineError as e:
        fail(e)
    finally:
        runtime.dispose()

    if report.ok:
        console.print(f"[green]✓[/green] {artifact_id} matches {report.expected_digest}")
        return
    err_console.print(f"[bold red]Digest mismatch[/bold red] for {artifact_id}")
    err_console.print(f"  [cyan]expected[/cyan]: {report.expected_digest}")
    err_console.print(f"  [cyan]actual[/cyan]: {report.actual_digest}")
    raise typer.Exit(code=1)
