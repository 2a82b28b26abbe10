"""
CLI utility helpers: settings resolution and output formatting.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from statspine.core.settings import StatSpineSettings
from statspine.jobs.daily import DailyRunReport
from statspine.stats.models import CollectionResult, RegenerationResult

console = Console()
err_console = Console(stderr=True)


# ── Settings helper ──────────────────────────────────────────────────────


def resolve_settings(**overrides: Any) -> StatSpineSettings:
    """Environment settings with CLI options layered on top.

    ``None`` options are left to the environment. Invalid values exit with
    the usage-error code.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return StatSpineSettings(**values)
    except ValidationError as exc:
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"])
            err_console.print(f"[bold red]Invalid setting[/bold red] {field}: {error['msg']}")
        raise typer.Exit(code=2) from exc


# ── Output helpers ───────────────────────────────────────────────────────


def _describe(result: Any) -> tuple[str, str]:
    if result is None:
        return "skipped", "no entities"
    if isinstance(result, RegenerationResult):
        return "regenerated", f"{result.rows_written} rows"
    if isinstance(result, CollectionResult):
        detail = result.row.date
        if result.drift is not None:
            detail += f" (schema changed, {result.rows_carried} rows carried)"
        return result.mode.value, detail
    return "done", str(result)


def print_run_report(report: DailyRunReport, *, data_dir: Path) -> None:
    """Render a daily run report as a Rich table plus a series summary."""
    table = Table(title=f"Daily {report.mode} ({report.elapsed})", pad_edge=False)
    table.add_column("Product", style="cyan", overflow="fold")
    table.add_column("Result")
    table.add_column("Detail", overflow="fold")

    for product, result in sorted(report.products.items()):
        outcome, detail = _describe(result)
        table.add_row(product, outcome, detail)
    for product, message in sorted(report.failed.items()):
        table.add_row(product, "[red]failed[/red]", message)

    console.print(table)
    console.print(f"[dim]Files in {data_dir}[/dim]")

    series = report.series
    if series is not None:
        console.print(
            f"Series on {series.effective_date}: "
            f"[green]{len(series.recorded)} recorded[/green], "
            f"[yellow]{len(series.skipped)} skipped[/yellow]"
        )
        for series_id, reason in sorted(series.skipped.items()):
            console.print(f"  [yellow]series {series_id}[/yellow]: {reason}")
