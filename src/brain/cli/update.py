"""brain update — check tracked sources and refresh the ones that changed.

Refresh only runs inside the configured download window unless --force is
given. Per-source failures are reported as skipped; the command still exits 0.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Annotated

import typer
from rich.table import Table

from brain.cli.context import console, format_wait, get_config, open_orchestrator
from brain.cli.errors import warn_outside_window
from brain.sync.orchestrator import CheckReport, RunReport, StatusReport

update_app = typer.Typer(help="Check sources for changes and re-index them.")

_JSON_OPT = typer.Option("--json", help="Print the report as JSON.")


@update_app.command("check")
def check_cmd(
    ctx: typer.Context,
    as_json: Annotated[bool, _JSON_OPT] = False,
) -> None:
    """Report which sources have changed, without re-indexing."""
    cfg = get_config(ctx)
    with open_orchestrator(cfg) as orchestrator:
        report = orchestrator.check_all()
    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return
    _print_check(report)


@update_app.command("run")
def run_cmd(
    ctx: typer.Context,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Ignore the download window and check cadence.")
    ] = False,
    as_json: Annotated[bool, _JSON_OPT] = False,
) -> None:
    """Re-index every due source whose content changed."""
    cfg = get_config(ctx)
    with open_orchestrator(cfg) as orchestrator:
        report = orchestrator.run_all(force=force)
    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return
    _print_run(report, cfg.scheduler.window_start, cfg.scheduler.window_end, cfg.scheduler.timezone)


@update_app.command("status")
def update_status_cmd(
    ctx: typer.Context,
    as_json: Annotated[bool, _JSON_OPT] = False,
) -> None:
    """Show the refresh schedule and per-source sync state."""
    cfg = get_config(ctx)
    with open_orchestrator(cfg) as orchestrator:
        report = orchestrator.status()
    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return
    _print_status(report)


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def _window_line(in_window: bool, wait_seconds: int) -> str:
    if in_window:
        return "Download window: [green]open[/]"
    hours, minutes = format_wait(wait_seconds)
    return f"Download window: [yellow]closed[/] (opens in {hours}h {minutes}m)"


def _print_check(report: CheckReport) -> None:
    console.print(_window_line(report.in_window, report.time_until_window_seconds))
    if not report.results:
        console.print("[dim]No sources indexed yet.[/]")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("Source")
    table.add_column("Update")
    table.add_column("Reason")
    for result in report.results:
        mark = "[green]yes[/]" if result.needs_update else "[dim]no[/]"
        table.add_row(result.source, mark, result.reason)
    console.print(table)


def _print_run(report: RunReport, start: int, end: int, tz: str) -> None:
    if report.blocked:
        hours, minutes = format_wait(report.time_until_window_seconds)
        console.print(warn_outside_window(hours, minutes, start, end, tz))
        return
    if report.forced:
        console.print("[yellow]Forced run outside the download window.[/]")
    for source, count in report.updated:
        console.print(f"[green]✓[/] {source}: {count} chunks")
    for source, reason in report.skipped:
        console.print(f"[dim]–[/] {source}: {reason}")
    console.print(f"\nUpdated: {len(report.updated)}  |  Skipped: {len(report.skipped)}")


def _print_status(report: StatusReport) -> None:
    console.print(
        f"Check interval: every {report.check_interval_hours}h  |  "
        f"Window: {report.window_start:02d}:00-{report.window_end:02d}:00 {report.timezone}"
    )
    console.print(_window_line(report.in_window, report.time_until_window_seconds))
    if not report.sources:
        console.print("[dim]No tracked sources.[/]")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("Source")
    table.add_column("Kind")
    table.add_column("Last checked")
    table.add_column("Last synced")
    table.add_column("Fingerprint")
    for src in report.sources:
        table.add_row(
            src.source,
            src.kind,
            _fmt(src.last_checked_at),
            _fmt(src.last_synced_at),
            (src.fingerprint or "-")[:12],
        )
    console.print(table)


def _fmt(ts: datetime | None) -> str:
    return ts.strftime("%Y-%m-%d %H:%M") if ts else "-"
