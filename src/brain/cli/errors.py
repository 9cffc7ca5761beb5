"""Brain rich error messages with actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from brain.cli.errors import err_persistence
    console.print(err_persistence(exc))
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape

from brain.errors import (
    BrainError,
    ModelError,
    PathNotFound,
    PersistenceError,
    RemoteUnavailable,
    RepositoryCorrupt,
    TokenizeError,
)


def err_config(exc: Exception) -> str:
    """Configuration could not be loaded or failed validation."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {escape(str(exc))}\n"
        "  Fix brain.yaml (or ~/.brain/config.yaml) and retry."
    )


def err_persistence(exc: PersistenceError) -> str:
    """Metadata or vector store I/O failed and the run was aborted."""
    return (
        f"[red]Error:[/] {escape(exc.reason)}\n"
        "  The run was aborted; previously synced state was left untouched.\n"
        "  Check disk space and permissions on the data directory, then retry."
    )


def err_remote(exc: RemoteUnavailable) -> str:
    return (
        f"[red]Error:[/] {escape(exc.reason)}\n"
        "  Check the network connection and the repository name.\n"
        "  Private repositories need:  export GIT_TOKEN=<token>"
    )


def err_corrupt(exc: RepositoryCorrupt) -> str:
    return (
        f"[red]Error:[/] {escape(exc.reason)}\n"
        "  Delete the local clone and index the repository again:\n"
        "    brain index github OWNER REPO"
    )


def err_path_not_found(exc: PathNotFound) -> str:
    return (
        f"[red]Error:[/] {escape(exc.reason)}\n"
        "  Pass an existing directory, or drop the source:  brain remove SOURCE_ID"
    )


def err_embedding(exc: ModelError | TokenizeError) -> str:
    return (
        f"[red]Error:[/] {escape(exc.reason)}\n"
        "  Check the embedding.model setting and the provider API key, e.g.\n"
        "    export OPENAI_API_KEY=sk-..."
    )


def err_source_not_found(source: str) -> str:
    """Source not indexed and not tracked."""
    return (
        f"[yellow]Source not found:[/] '{source}' is not in the index.\n"
        "  Run:  brain sources  to see all indexed sources."
    )


def err_for(exc: BrainError) -> str:
    """Pick the message for *exc*."""
    if isinstance(exc, PersistenceError):
        return err_persistence(exc)
    if isinstance(exc, RemoteUnavailable):
        return err_remote(exc)
    if isinstance(exc, RepositoryCorrupt):
        return err_corrupt(exc)
    if isinstance(exc, PathNotFound):
        return err_path_not_found(exc)
    if isinstance(exc, (ModelError, TokenizeError)):
        return err_embedding(exc)
    return f"[red]Error:[/] {escape(exc.reason)}"


def warn_outside_window(hours: int, minutes: int, start: int, end: int, tz: str) -> str:
    """Refresh refused outside the window."""
    return (
        f"[yellow]Outside download window[/] ({start:02d}:00-{end:02d}:00 {tz}).\n"
        f"  Time until window: {hours}h {minutes}m\n"
        "  Use --force to override."
    )
