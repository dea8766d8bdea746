"""
CLI utility helpers: runtime wiring, output formatting, failure reporting.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from factspine.core.errors import FactSpineError
from factspine.core.orm.session import (
    FactSpineSession,
    create_factspine_engine,
    factspine_session_factory,
)
from factspine.core.settings import FactSpineSettings, get_settings
from factspine.storage.blob import create_blob_store
from factspine.storage.registry import ArtifactRegistry

console = Console()
err_console = Console(stderr=True)


# ── Runtime wiring ───────────────────────────────────────────────────────


@dataclass
class Runtime:
    """Settings plus the engine and session factory built from them."""

    settings: FactSpineSettings
    engine: Engine
    session_factory: sessionmaker[FactSpineSession]

    def registry(self) -> ArtifactRegistry:
        store = create_blob_store(self.settings.raw_store, self.settings.raw_fs_dir)
        return ArtifactRegistry(self.session_factory, store)

    def dispose(self) -> None:
        self.engine.dispose()


def make_runtime(database_url: str | None = None) -> Runtime:
    """Build a :class:`Runtime` from settings, optionally overriding the DB URL."""
    try:
        settings = get_settings()
        engine = create_factspine_engine(
            database_url or settings.database_url, echo=settings.database_echo
        )
    except FactSpineError as e:
        fail(e)
    return Runtime(
        settings=settings,
        engine=engine,
        session_factory=factspine_session_factory(engine),
    )


# ── Failure reporting ────────────────────────────────────────────────────


def fail(error: FactSpineError | str, *, job_run_id: str | None = None) -> NoReturn:
    """Print the error (and the JobRun it was recorded on) and exit 1."""
    if isinstance(error, FactSpineError):
        job_run_id = job_run_id or error.context.job_run_id
        kind = error.kind.value if error.kind else error.category.value
        err_console.print(f"[bold red]Error[/bold red] ({kind}): {escape(error.message)}")
    else:
        err_console.print(f"[bold red]Error:[/bold red] {escape(error)}")
    if job_run_id:
        err_console.print(f"  [cyan]job_run_id[/cyan]: {job_run_id}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / ORM row / dict to plain dict."""
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if hasattr(obj, "__table__"):
        return {c.name: getattr(obj, c.name) for c in obj.__table__.columns}
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {escape(str(v))}")


def print_table(items: list[Any], *, columns: list[str] | None = None, title: str = "") -> None:
    """Render a list of dataclasses/dicts/rows as a Rich table."""
    if not items:
        console.print("[dim]No items.[/dim]")
        return
    rows = [_to_dict(item) for item in items]
    columns = columns or list(rows[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in columns:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(escape(str(row.get(c, ""))) for c in columns))
    console.print(table)


__all__ = [
    "Runtime",
    "console",
    "err_console",
    "fail",
    "make_runtime",
    "print_dict",
    "print_json",
    "print_table",
]
