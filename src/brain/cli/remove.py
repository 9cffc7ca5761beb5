"""brain remove — drop a source and all its indexed content.

Usage:
  brain remove github:owner/repo
  brain remove local:/abs/path --yes
"""

from __future__ import annotations

from typing import Annotated

import typer

from brain.cli.context import console, get_config, open_orchestrator
from brain.cli.errors import err_source_not_found


def remove_cmd(
    ctx: typer.Context,
    source: Annotated[str, typer.Argument(help="Source id, e.g. github:owner/repo.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove a source from the index and stop tracking it."""
    cfg = get_config(ctx)
    with open_orchestrator(cfg) as orchestrator:
        if source not in orchestrator.known_sources():
            console.print(err_source_not_found(source))
            raise typer.Exit(0)

        chunk_count = orchestrator.store.count(source)
        console.print(f"\nRemove source: [bold]{source}[/]")
        console.print(f"  Chunks: {chunk_count}")

        if not yes:
            if not typer.confirm("Confirm removal?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        deleted = orchestrator.remove_source(source)

    console.print(f"\n[green]✓[/] Removed: {source}")
    console.print(f"  {deleted} chunks deleted")
