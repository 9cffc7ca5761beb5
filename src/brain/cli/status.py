"""brain status — configuration and index overview."""

from __future__ import annotations

import typer
from rich.panel import Panel

from brain.cli.context import console, format_wait, get_config, open_orchestrator
from brain.config import BrainConfig


def status_cmd(ctx: typer.Context) -> None:
    """Show configuration, index size and the download window."""
    cfg = get_config(ctx)
    _show_config_panel(cfg)

    with open_orchestrator(cfg) as orchestrator:
        total = orchestrator.store.count()
        indexed = orchestrator.store.list_sources()
        tracked = orchestrator.metadata.sources
        report = orchestrator.status()

    lines = [
        f"Sources: [bold]{len(indexed)}[/] indexed, [bold]{len(tracked)}[/] tracked  |  "
        f"Chunks: [bold]{total:,}[/]",
    ]
    if report.in_window:
        lines.append("Download window: [green]open[/]")
    else:
        hours, minutes = format_wait(report.time_until_window_seconds)
        lines.append(f"Download window: [yellow]closed[/] (opens in {hours}h {minutes}m)")
    untracked = sorted(indexed - set(tracked))
    if untracked:
        lines.append(f"[yellow]Not tracked:[/] {', '.join(untracked)}")
    console.print(Panel("\n".join(lines), title="[bold]Knowledge Base[/]", expand=False))


def _show_config_panel(cfg: BrainConfig) -> None:
    db_info = str(cfg.db_path)
    if cfg.db_path.exists():
        size_mb = cfg.db_path.stat().st_size / (1024 * 1024)
        db_info = f"{cfg.db_path} ({size_mb:.1f} MB)"
    lines = [
        f"Name:       [bold]{cfg.brain.name}[/]",
        f"Database:   {db_info}",
        f"Embedding:  {cfg.embedding.model} ({cfg.embedding.dimensions} dims)",
        f"Chunking:   {cfg.brain.chunk_size} tokens, overlap {cfg.brain.chunk_overlap}",
        f"Schedule:   every {cfg.scheduler.check_interval_hours}h, "
        f"{cfg.scheduler.window_start:02d}:00-{cfg.scheduler.window_end:02d}:00 "
        f"{cfg.scheduler.timezone}",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Brain[/]", expand=False))
