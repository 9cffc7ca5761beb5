"""Brain CLI entry point."""

from __future__ import annotations

import importlib.metadata
from pathlib import Path
from typing import Annotated, Optional

import typer

from brain.cli.context import setup_logging
from brain.cli.index import index_app
from brain.cli.remove import remove_cmd
from brain.cli.search import search_cmd
from brain.cli.sources import sources_cmd
from brain.cli.status import status_cmd
from brain.cli.update import update_app


def _version() -> str:
    try:
        return importlib.metadata.version("brain")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"brain {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="brain",
    help=(
        "Brain — a self-refreshing knowledge base over git repositories and local folders.\n\n"
        "  brain index    Add a source and index it.\n"
        "  brain update   Re-index sources whose content changed."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    config_dir: Annotated[
        Optional[Path],
        typer.Option("--config-dir", "-C", help="Directory holding brain.yaml (default: CWD)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Brain — self-refreshing knowledge base."""
    setup_logging(verbose)
    ctx.obj = {"config_dir": config_dir}


app.add_typer(index_app, name="index")
app.add_typer(update_app, name="update")
app.command("sources")(sources_cmd)
app.command("remove")(remove_cmd)
app.command("search")(search_cmd)
app.command("status")(status_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed Brain version."""
    typer.echo(f"brain {_version()}")


if __name__ == "__main__":
    app()
