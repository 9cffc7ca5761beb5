"""Filesystem loader for plain directory trees."""

from __future__ import annotations

from pathlib import Path

from brain.errors import PathNotFound
from brain.ingest.base import SourceLoader


def local_source_id(path: Path) -> str:
    return f"local:{Path(path).expanduser().resolve()}"


class FilesystemLoader(SourceLoader):
    """Discover files in a local directory.

    Change detection hashes the eligible file set (see ``SourceLoader.fingerprint``),
    so a directory is refreshed the same way as a git clone.
    """

    def ensure_exists(self, path: Path) -> Path:
        """Return *path* resolved, or raise PathNotFound."""
        resolved = Path(path).expanduser().resolve()
        if not resolved.is_dir():
            raise PathNotFound(f"Source directory does not exist: {resolved}")
        return resolved
