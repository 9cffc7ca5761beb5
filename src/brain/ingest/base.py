"""Shared discovery policy for all source loaders.

A file is eligible when its extension is on the code or doc allow-list and no
part of its path is an excluded directory. Code files are chunked by line,
doc files by paragraph. Unreadable or blank files are skipped with a warning;
one bad file never fails a discovery pass.

Inside a git work tree, files that git ignores (`.gitignore`, `info/exclude`,
the global excludes file) are not eligible either.
"""

from __future__ import annotations

import fnmatch
import hashlib
import logging
import os
import subprocess
from collections.abc import Iterator
from pathlib import Path

from brain.ingest.chunker import TextChunker
from brain.models import LoadedDocument

LOGGER = logging.getLogger(__name__)

CODE_EXTS: frozenset[str] = frozenset(
    {
        ".rs", ".py", ".js", ".ts", ".jsx", ".tsx", ".go", ".java", ".c", ".cpp",
        ".h", ".hpp", ".rb", ".php", ".swift", ".kt", ".scala", ".lua", ".r", ".zig",
        ".toml", ".yaml", ".yml", ".json", ".sql", ".sh", ".bash",
    }
)
DOC_EXTS: frozenset[str] = frozenset({".md", ".txt", ".rst", ".adoc", ".org"})

# Version control metadata, build outputs, dependency caches.
EXCLUDED_DIRS: frozenset[str] = frozenset(
    {
        ".git", ".hg", ".svn",
        "target", "build", "dist", "__pycache__", ".mypy_cache", ".pytest_cache",
        ".tox", "node_modules", ".venv", "venv",
    }
)


def file_kind(path: Path) -> str | None:
    """Return ``"code"``, ``"doc"``, or None for an ineligible extension."""
    ext = path.suffix.lower()
    if ext in CODE_EXTS:
        return "code"
    if ext in DOC_EXTS:
        return "doc"
    return None


class SourceLoader:
    """Walk a source root and yield one LoadedDocument per eligible file.

    Args:
        chunker: Chunker shared by every file of the pass.
        exclude: Extra glob patterns matched against file and directory names.
    """

    def __init__(self, chunker: TextChunker, exclude: list[str] | None = None) -> None:
        self.chunker = chunker
        self.exclude = list(exclude or [])

    def discover(self, root: Path, source_id: str) -> Iterator[LoadedDocument]:
        """Lazily yield documents under *root* in sorted path order.

        Every document carries *source_id* as its source label.
        """
        root = Path(root)
        count = 0
        for path in self.iter_files(root):
            content = _read_text(path)
            if content is None:
                continue
            kind = file_kind(path)
            if kind == "code":
                chunks = self.chunker.chunk_code(content)
            else:
                chunks = self.chunker.chunk_by_paragraphs(content)
            if not chunks:
                continue
            count += 1
            yield LoadedDocument(
                source_label=source_id,
                relative_path=path.relative_to(root).as_posix(),
                chunks=chunks,
            )
        LOGGER.info("Loaded %d files from %s", count, root)

    def iter_files(self, root: Path) -> Iterator[Path]:
        """Yield eligible file paths under *root* (sorted, symlinks not followed)."""
        visible = _git_visible_files(root)
        for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
            dirnames[:] = sorted(
                d for d in dirnames if d not in EXCLUDED_DIRS and not self._excluded(d)
            )
            for name in sorted(filenames):
                if self._excluded(name):
                    continue
                path = Path(dirpath) / name
                if path.is_symlink() or not path.is_file():
                    continue
                if file_kind(path) is None:
                    continue
                if visible is not None and path.relative_to(root).as_posix() not in visible:
                    continue
                yield path

    def fingerprint(self, root: Path) -> str:
        """SHA-256 over the relative path and bytes of every eligible file."""
        root = Path(root)
        h = hashlib.sha256()
        for path in self.iter_files(root):
            try:
                data = path.read_bytes()
            except OSError as exc:
                LOGGER.warning("Skipping unreadable file %s: %s", path, exc)
                continue
            h.update(path.relative_to(root).as_posix().encode())
            h.update(b"\0")
            h.update(hashlib.sha256(data).digest())
        return h.hexdigest()

    def _excluded(self, name: str) -> bool:
        return any(fnmatch.fnmatch(name, pat) for pat in self.exclude)


def _read_text(path: Path) -> str | None:
    """Return the decoded text of *path*, or None when it should be skipped."""
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        LOGGER.warning("Skipping non-UTF-8 file: %s", path)
        return None
    except OSError as exc:
        LOGGER.warning("Skipping unreadable file %s: %s", path, exc)
        return None
    if not content.strip():
        return None
    return content


def _log_walk_error(exc: OSError) -> None:
    LOGGER.warning("Cannot scan %s: %s", exc.filename, exc)


def _git_visible_files(root: Path) -> set[str] | None:
    """Paths (relative to *root*) that git tracks or would track.

    Returns None when *root* is not inside a git work tree, so the caller
    applies no ignore rules.
    """
    if not Path(root).is_dir():
        return None
    try:
        result = subprocess.run(
            ["git", "ls-files", "--cached", "--others", "--exclude-standard", "-z"],
            cwd=root,
            shell=False,
            capture_output=True,
            text=True,
            timeout=60,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        LOGGER.debug("Cannot read ignore rules in %s: %s", root, exc)
        return None
    if result.returncode != 0:
        return None
    return {p for p in result.stdout.split("\0") if p}
