"""
CLI: ``factspine db``, database management commands.
"""

from __future__ import annotations

import typer

from factspine.cli.utils import console, fail, make_runtime
from factspine.core.errors import FactSpineError
from factspine.core.orm.session import init_schema

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
) -> None:
    """Initialise database schema (create tables)."""
    runtime = make_runtime(database)
    try:
        init_schema(runtime.engine)
    except FactSpineError as e:
        fail(e)
    finally:
        runtime.dispose()
    console.print(f"[green]✓[/green] Schema ready at {runtime.engine.url.render_as_string()}")
