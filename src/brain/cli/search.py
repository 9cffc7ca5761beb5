"""brain search — nearest-neighbour lookup over the index."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.panel import Panel
from rich.text import Text

from brain.cli.context import console, get_config, open_orchestrator


def search_cmd(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Natural-language query.")],
    limit: Annotated[int, typer.Option("--limit", "-n", min=1, help="Maximum results.")] = 10,
) -> None:
    """Show the chunks closest to QUERY."""
    cfg = get_config(ctx)
    with open_orchestrator(cfg) as orchestrator:
        results = orchestrator.search(query, limit)

    if not results:
        console.print("[dim]No results.[/]")
        return
    for rank, result in enumerate(results, 1):
        title = f"{rank}. {result.file_path}#{result.chunk_index}"
        console.print(
            Panel(
                Text(result.content),
                title=title,
                subtitle=f"{result.source} · distance {result.distance:.4f}",
                expand=False,
            )
        )
