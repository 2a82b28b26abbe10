"""
Root Typer application for the stat-spine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from statspine import __version__

app = Typer(
    name="statspine",
    help="stat-spine - daily entity statistics and saved-series sampling.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"stat-spine {__version__}")
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
) -> None:
    """stat-spine CLI - collect daily statistics and manage the reference schema."""


# ── Sub-command registration ─────────────────────────────────────────────

from statspine.cli.collect import collect  # noqa: E402
from statspine.cli.db import app as db_app  # noqa: E402

app.command()(collect)
app.add_typer(db_app, name="db", help="Reference schema operations.")
