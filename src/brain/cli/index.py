"""brain index — add sources to the knowledge base.

Usage:
  brain index github OWNER REPO [--branch main]
  brain index local PATH
  brain index defaults

Re-indexing an already-indexed source replaces its content.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from brain.cli.context import console, get_config, open_orchestrator

index_app = typer.Typer(help="Index a GitHub repository or a local directory.")


@index_app.command("github")
def index_github_cmd(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Repository owner.")],
    repo: Annotated[str, typer.Argument(help="Repository name.")],
    branch: Annotated[str, typer.Option("--branch", "-b", help="Branch to track.")] = "main",
) -> None:
    """Clone (or update) a GitHub repository and index it."""
    cfg = get_config(ctx)
    with open_orchestrator(cfg) as orchestrator:
        count = orchestrator.add_git_source(owner, repo, branch)
    console.print(f"[green]✓[/] {count} chunks indexed from github:{owner}/{repo} ({branch})")


@index_app.command("local")
def index_local_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Directory to index.")],
) -> None:
    """Index a local directory."""
    cfg = get_config(ctx)
    with open_orchestrator(cfg) as orchestrator:
        count = orchestrator.add_local_source(path)
    console.print(f"[green]✓[/] {count} chunks indexed from {path}")


@index_app.command("defaults")
def index_defaults_cmd(ctx: typer.Context) -> None:
    """Index every repository listed under sources.defaults."""
    cfg = get_config(ctx)
    if not cfg.sources.defaults:
        console.print(
            "[yellow]No default repositories configured.[/]\n"
            "  Add them to brain.yaml:\n"
            "    sources:\n"
            "      defaults:\n"
            "        - {owner: OWNER, repo: REPO, branch: main}"
        )
        return
    with open_orchestrator(cfg) as orchestrator:
        report = orchestrator.index_defaults(cfg.sources.defaults)

    for source, count in report.updated:
        console.print(f"[green]✓[/] {source}: {count} chunks")
    for source, reason in report.skipped:
        console.print(f"[yellow]–[/] {source}: {reason}")
