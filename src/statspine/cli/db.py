"""
CLI: ``statspine db`` - reference schema management.
"""

from __future__ import annotations

import typer

from statspine.cli.utils import console, err_console, resolve_settings
from statspine.core.connection import create_connection
from statspine.core.errors import StatSpineError
from statspine.core.schema import create_tables

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
) -> None:
    """Create the reference schema (idempotent)."""
    settings = resolve_settings(database_url=database)
    try:
        conn = create_connection(settings.database_url)
    except StatSpineError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
        raise typer.Exit(code=1) from exc
    try:
        created = create_tables(conn)
    finally:
        conn.close()
    console.print(f"[green]Schema ready[/green] in {settings.database_url}: {', '.join(created)}")
