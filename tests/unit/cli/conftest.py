"""Fixtures for CLI tests: an isolated config dir, no network, fixed clock."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from brain.ingest.git import GitLoader
from brain.sync.scheduler import Scheduler, SchedulerPolicy

# 03:00 UTC is inside the 22-8 UTC window.
INSIDE = datetime(2026, 1, 1, 3, 0, tzinfo=timezone.utc)


@pytest.fixture
def cli_clock(make_clock):
    return make_clock(INSIDE)


@pytest.fixture
def project(tmp_path: Path, monkeypatch, cli_clock, make_embedder) -> Path:
    """Config dir with brain.yaml pointing all data under tmp_path/data."""
    monkeypatch.setattr("brain.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    for var in ("BRAIN_EMBEDDING_MODEL", "BRAIN_TIMEZONE", "BRAIN_DATA_DIR"):
        monkeypatch.delenv(var, raising=False)

    (tmp_path / "brain.yaml").write_text(
        yaml.dump(
            {
                "brain": {"chunk_size": 8, "chunk_overlap": 0},
                "embedding": {"model": "ollama/test-embed", "dimensions": 4},
                "storage": {"data_dir": str(tmp_path / "data")},
                "scheduler": {"timezone": "UTC", "window_start": 22, "window_end": 8},
            }
        ),
        encoding="utf-8",
    )

    monkeypatch.setattr(
        "brain.cli.context.LiteLLMEmbedder",
        lambda model, dimensions, **kwargs: make_embedder(dimensions),
    )

    monkeypatch.setattr(
        "brain.cli.context.build_scheduler",
        lambda cfg: Scheduler(SchedulerPolicy.from_config(cfg.scheduler), clock=cli_clock),
    )
    return tmp_path


@pytest.fixture
def fake_remote(monkeypatch):
    """Replace git network access: sync_local writes a tiny tree, HEAD is settable."""
    state = {"commit": "abc123", "fail": None}

    def sync_local(self, owner, repo, branch):
        if state["fail"]:
            raise state["fail"]
        path = self.local_path(owner, repo)
        path.mkdir(parents=True, exist_ok=True)
        (path / "README.md").write_text(f"{owner} {repo} readme\n\nsecond paragraph\n")
        return path

    monkeypatch.setattr(GitLoader, "sync_local", sync_local)
    monkeypatch.setattr(GitLoader, "current_commit", lambda self, repo_dir: state["commit"])
    return state


@pytest.fixture
def notes(tmp_path: Path) -> Path:
    root = tmp_path / "notes"
    root.mkdir()
    (root / "alpha.md").write_text("alpha paragraph\n\nbeta paragraph\n")
    (root / "tool.py").write_text("print('tool')\n")
    return root
