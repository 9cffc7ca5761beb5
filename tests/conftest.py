"""Shared pytest fixtures."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone

import pytest

from brain.db.connection import Database
from brain.db.store import VectorStore

DIMS = 4


class FakeEmbedder:
    """Deterministic embedder: same text → same vector, no network."""

    def __init__(self, dimensions: int = DIMS) -> None:
        self.dimensions = dimensions
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        digest = hashlib.sha256(text.encode()).digest()
        return [digest[i] / 255.0 for i in range(self.dimensions)]


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime) -> None:
        self.current = now

    def __call__(self) -> datetime:
        return self.current


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with sqlite-vec loaded, closed after test."""
    db = Database(tmp_path / "brain.db")
    conn = db.connect()
    yield conn
    conn.close()


@pytest.fixture
def store(tmp_db):
    return VectorStore(tmp_db, DIMS)


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def clock():
    # 2026-01-01 03:00 UTC is 06:00 in Europe/Moscow (inside the 22-8 window).
    return FixedClock(datetime(2026, 1, 1, 3, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_clock():
    """Factory for FixedClock instances at arbitrary times."""
    return FixedClock


@pytest.fixture
def make_embedder():
    return FakeEmbedder
