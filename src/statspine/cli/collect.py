"""
CLI: ``statspine collect`` - the daily job.
"""

from __future__ import annotations

import re
import threading
from datetime import date
from pathlib import Path

import typer
from rich.progress import BarColumn, Progress, TaskID, TextColumn

from statspine.cli.utils import console, err_console, print_run_report, resolve_settings
from statspine.core.errors import StatSpineError
from statspine.core.logging import configure_logging
from statspine.jobs.daily import run_collection

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_effective_date(value: str | None) -> date | None:
    """Validate the optional ``YYYY-MM-DD`` argument."""
    if value is None:
        return None
    if not _DATE_RE.match(value):
        raise typer.BadParameter(f"expected YYYY-MM-DD, got {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"not a calendar date: {value}") from exc


class _ProductProgress:
    """Thread-safe bridge from regeneration callbacks to a Rich progress bar."""

    def __init__(self, progress: Progress) -> None:
        self.progress = progress
        self._tasks: dict[str, TaskID] = {}
        self._lock = threading.Lock()

    def __call__(self, product: str, percent: float) -> None:
        with self._lock:
            task = self._tasks.get(product)
            if task is None:
                task = self.progress.add_task(product, total=100)
                self._tasks[product] = task
        self.progress.update(task, completed=percent)


def collect(
    effective_date: str | None = typer.Argument(
        None,
        metavar="[YYYY-MM-DD]",
        help="Date stamped on saved-series data points (defaults to today).",
    ),
    regenerate: bool = typer.Option(
        False, "--regenerate", help="Rebuild every product file from the audit trail."
    ),
    database: str | None = typer.Option(None, "--database", "-d", help="Primary database URL"),
    replica: str | None = typer.Option(None, "--replica", help="Read-replica database URL"),
    data_dir: Path | None = typer.Option(None, "--data-dir", help="Root data directory"),
    workers: int | None = typer.Option(None, "--workers", "-w", min=1, help="Parallel products"),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
) -> None:
    """Collect today's statistics (or regenerate them) and sample saved series."""
    day = parse_effective_date(effective_date)
    settings = resolve_settings(
        database_url=database,
        replica_url=replica,
        data_dir=data_dir,
        workers=workers,
        log_level=log_level,
    )
    configure_logging(level=settings.log_level, json_format=settings.json_logs)

    try:
        if regenerate:
            with Progress(
                TextColumn("[cyan]{task.description}"),
                BarColumn(),
                TextColumn("{task.percentage:>5.1f}%"),
                console=console,
                transient=True,
            ) as progress:
                report = run_collection(
                    settings,
                    regenerate=True,
                    effective_date=day,
                    on_progress=_ProductProgress(progress),
                )
        else:
            report = run_collection(settings, effective_date=day)
    except StatSpineError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
        raise typer.Exit(code=1) from exc

    print_run_report(report, data_dir=settings.mining_dir)
