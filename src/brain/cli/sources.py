"""brain sources — list every indexed or tracked source."""

from __future__ import annotations

import json
from typing import Annotated

import typer
from rich.table import Table

from brain.cli.context import console, get_config, open_orchestrator


def sources_cmd(
    ctx: typer.Context,
    as_json: Annotated[bool, typer.Option("--json", help="Print as JSON.")] = False,
) -> None:
    """List indexed sources with their chunk counts."""
    cfg = get_config(ctx)
    with open_orchestrator(cfg) as orchestrator:
        rows = [
            {
                "source": source,
                "chunks": orchestrator.store.count(source),
                "tracked": orchestrator.metadata.get(source) is not None,
            }
            for source in orchestrator.known_sources()
        ]

    if as_json:
        typer.echo(json.dumps(rows, indent=2))
        return
    if not rows:
        console.print("[dim]No sources indexed yet.[/]\n  Run:  brain index github OWNER REPO")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Source")
    table.add_column("Chunks", justify="right")
    table.add_column("Tracked")
    for row in rows:
        table.add_row(
            row["source"],
            f"{row['chunks']:,}",
            "[green]✓[/]" if row["tracked"] else "[yellow]✗[/]",
        )
    console.print(table)
