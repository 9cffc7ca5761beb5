"""Tests for brain update check|run|status."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

from typer.testing import CliRunner

from brain.cli.main import app
from brain.errors import RemoteUnavailable

OUTSIDE = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

runner = CliRunner()


def _run(project: Path, *args: str):
    return runner.invoke(app, ["--config-dir", str(project), *args])


def test_run_blocked_outside_window(project: Path, cli_clock, fake_remote) -> None:
    _run(project, "index", "github", "o", "r")
    cli_clock.current = OUTSIDE
    fake_remote["commit"] = "def456"

    result = _run(project, "update", "run")
    assert result.exit_code == 0
    assert "Outside download window" in result.output
    assert "10h 0m" in result.output
    assert "--force" in result.output


def test_run_blocked_json(project: Path, cli_clock) -> None:
    cli_clock.current = OUTSIDE
    data = json.loads(_run(project, "update", "run", "--json").stdout)
    assert data["blocked"] is True
    assert data["time_until_window_seconds"] == 10 * 3600


def test_run_force_reindexes_changed(project: Path, cli_clock, fake_remote) -> None:
    _run(project, "index", "github", "o", "r")
    cli_clock.current = OUTSIDE
    fake_remote["commit"] = "def456"

    result = _run(project, "update", "run", "--force", "--json")
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["forced"] is True
    assert data["updated"] == [["github:o/r", 1]]


def test_run_not_due_is_skipped(project: Path, fake_remote) -> None:
    _run(project, "index", "github", "o", "r")
    result = _run(project, "update", "run")
    assert result.exit_code == 0
    assert "Not due for check yet" in result.output
    assert "Updated: 0" in result.output


def test_run_remote_failure_is_skipped_not_fatal(project: Path, fake_remote) -> None:
    _run(project, "index", "github", "o", "r")
    fake_remote["fail"] = RemoteUnavailable("git fetch failed: timed out")
    data = json.loads(_run(project, "update", "run", "--force", "--json").stdout)
    assert data["skipped"] == [["github:o/r", "Remote unavailable: git fetch failed: timed out"]]


def test_check_reports_changes(project: Path, cli_clock, fake_remote) -> None:
    _run(project, "index", "github", "o", "r")
    cli_clock.current = cli_clock.current + timedelta(hours=25)
    fake_remote["commit"] = "def456"

    result = _run(project, "update", "check", "--json")
    assert result.exit_code == 0, result.output
    (entry,) = json.loads(result.stdout)["results"]
    assert entry["source"] == "github:o/r"
    assert entry["needs_update"] is True
    assert entry["reason"] == "New commits available"


def test_check_table_output(project: Path, notes: Path) -> None:
    _run(project, "index", "local", str(notes))
    result = _run(project, "update", "check")
    assert result.exit_code == 0
    assert "Download window: open" in result.output


def test_status_shows_schedule(project: Path, fake_remote) -> None:
    _run(project, "index", "github", "o", "r")
    result = _run(project, "update", "status")
    assert result.exit_code == 0, result.output
    assert "every 24h" in result.output
    assert "22:00-08:00 UTC" in result.output
    assert "github:o/r" in result.output


def test_status_json(project: Path, fake_remote) -> None:
    _run(project, "index", "github", "o", "r")
    data = json.loads(_run(project, "update", "status", "--json").stdout)
    assert data["timezone"] == "UTC"
    assert data["sources"][0]["fingerprint"] == "abc123"
    assert data["sources"][0]["last_synced_at"] == "2026-01-01T03:00:00+00:00"


def test_malformed_metadata_exits_1(project: Path) -> None:
    data_dir = project / "data"
    data_dir.mkdir()
    (data_dir / "sources.json").write_text("{not json")
    result = _run(project, "update", "status")
    assert result.exit_code == 1
    assert "Persistence error" in result.output
