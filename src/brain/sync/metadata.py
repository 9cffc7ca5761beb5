"""Per-source synchronization state, persisted as one JSON document.

Layout (human-readable, safe to hand-edit for recovery)::

    {
      "sources": {
        "github:owner/repo": {
          "source_id": "github:owner/repo",
          "kind": "git",
          "fingerprint": "<commit id>",
          "last_checked_at": "2026-01-01T03:00:00+00:00",
          "last_synced_at": "2026-01-01T03:00:00+00:00",
          "locator": {"owner": "...", "repo": "...", "branch": "...", "local_path": "..."}
        }
      }
    }

The store is read and written whole. Saves go to a temp file in the same
directory and are renamed over the target, so the file on disk is always a
complete snapshot. One writer at a time.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Union

from brain.errors import PersistenceError


class SourceKind(str, Enum):
    GIT = "git"
    FILESYSTEM = "filesystem"


@dataclass(frozen=True)
class GitLocator:
    owner: str
    repo: str
    branch: str
    local_path: str

    kind = SourceKind.GIT


@dataclass(frozen=True)
class FilesystemLocator:
    path: str

    kind = SourceKind.FILESYSTEM


Locator = Union[GitLocator, FilesystemLocator]


@dataclass
class SourceMetadata:
    """Last-known state of one source. ``source_id`` is the index's source label."""

    source_id: str
    locator: Locator
    fingerprint: str | None = None
    last_checked_at: datetime | None = None
    last_synced_at: datetime | None = None

    @property
    def kind(self) -> SourceKind:
        return self.locator.kind

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "kind": self.kind.value,
            "fingerprint": self.fingerprint,
            "last_checked_at": _format_ts(self.last_checked_at),
            "last_synced_at": _format_ts(self.last_synced_at),
            "locator": asdict(self.locator),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SourceMetadata:
        kind = SourceKind(data["kind"])
        loc = data["locator"]
        locator: Locator
        if kind is SourceKind.GIT:
            locator = GitLocator(
                owner=str(loc["owner"]),
                repo=str(loc["repo"]),
                branch=str(loc["branch"]),
                local_path=str(loc["local_path"]),
            )
        else:
            locator = FilesystemLocator(path=str(loc["path"]))
        return cls(
            source_id=str(data["source_id"]),
            locator=locator,
            fingerprint=data.get("fingerprint"),
            last_checked_at=_parse_ts(data.get("last_checked_at")),
            last_synced_at=_parse_ts(data.get("last_synced_at")),
        )


@dataclass
class MetadataStore:
    """Mapping source_id → SourceMetadata."""

    sources: dict[str, SourceMetadata] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> MetadataStore:
        """Read the store at *path*; an absent file yields an empty store.

        Raises:
            PersistenceError: unreadable file or malformed content.
        """
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            sources = {
                key: SourceMetadata.from_dict(value)
                for key, value in (raw.get("sources") or {}).items()
            }
        except OSError as exc:
            raise PersistenceError(f"cannot read metadata {path}: {exc}") from exc
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise PersistenceError(f"malformed metadata file {path}: {exc}") from exc
        return cls(sources=sources)

    def save(self, path: Path) -> None:
        """Write the whole store to *path* atomically (temp → rename)."""
        path = Path(path)
        content = json.dumps(
            {"sources": {key: meta.to_dict() for key, meta in sorted(self.sources.items())}},
            indent=2,
        )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        except OSError as exc:
            raise PersistenceError(f"cannot write metadata {path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.write("\n")
            os.replace(tmp_path, path)
        except OSError as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise PersistenceError(f"cannot write metadata {path}: {exc}") from exc

    def get(self, source_id: str) -> SourceMetadata | None:
        return self.sources.get(source_id)

    def upsert(self, metadata: SourceMetadata) -> None:
        self.sources[metadata.source_id] = metadata

    def remove(self, source_id: str) -> SourceMetadata | None:
        return self.sources.pop(source_id, None)


def _format_ts(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    ts = datetime.fromisoformat(value)
    # Hand-edited timestamps without an offset are taken as UTC.
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts
