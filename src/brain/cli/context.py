"""Shared wiring for CLI commands: config → collaborators → orchestrator."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console

from brain.cli.errors import err_config, err_for
from brain.config import BrainConfig, ConfigError, load_config
from brain.db.connection import Database
from brain.db.store import VectorStore
from brain.errors import BrainError
from brain.ingest.chunker import TextChunker
from brain.ingest.embedder import LiteLLMEmbedder
from brain.ingest.git import GitLoader
from brain.ingest.local import FilesystemLoader
from brain.sync.orchestrator import IngestionOrchestrator
from brain.sync.scheduler import Scheduler, SchedulerPolicy

console = Console()


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def get_config(ctx: typer.Context) -> BrainConfig:
    """Load configuration from the directory given to ``--config-dir``."""
    config_dir: Path | None = (ctx.obj or {}).get("config_dir")
    try:
        return load_config(config_dir)
    except ConfigError as exc:
        console.print(err_config(exc))
        raise typer.Exit(1)


def build_scheduler(cfg: BrainConfig) -> Scheduler:
    return Scheduler(SchedulerPolicy.from_config(cfg.scheduler))


@contextmanager
def open_orchestrator(cfg: BrainConfig) -> Iterator[IngestionOrchestrator]:
    """Yield an orchestrator over the configured database; close it afterwards.

    Any BrainError escaping the block is printed and turned into exit status 1.
    """
    chunker = TextChunker(cfg.brain.chunk_size, cfg.brain.chunk_overlap)
    try:
        conn = Database(cfg.db_path, timeout=cfg.storage.timeout).connect()
    except BrainError as exc:
        console.print(err_for(exc))
        raise typer.Exit(1)
    try:
        orchestrator = IngestionOrchestrator(
            embedder=LiteLLMEmbedder(
                cfg.embedding.model,
                cfg.embedding.dimensions,
                timeout=cfg.embedding.timeout,
                num_retries=cfg.embedding.num_retries,
            ),
            store=VectorStore(conn, cfg.embedding.dimensions),
            git_loader=GitLoader(
                cfg.repos_path,
                chunker,
                remote_base=cfg.sources.remote_base,
                timeout=cfg.sources.git_timeout,
                exclude=cfg.sources.exclude,
            ),
            fs_loader=FilesystemLoader(chunker, exclude=cfg.sources.exclude),
            scheduler=build_scheduler(cfg),
            metadata_path=cfg.metadata_path,
        )
        yield orchestrator
    except BrainError as exc:
        console.print(err_for(exc))
        raise typer.Exit(1)
    finally:
        conn.close()


def format_wait(seconds: int) -> tuple[int, int]:
    """Split *seconds* into (hours, minutes)."""
    return seconds // 3600, (seconds % 3600) // 60
