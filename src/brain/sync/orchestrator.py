"""Ingestion orchestrator, the single code path behind every transport.

Indexing flattens LoadedDocuments into chunks, embeds each one and inserts them
in batches of ``BATCH_SIZE``. Batches are not transactional as a whole: a crash
mid-run leaves a partial index for the source.

Refresh replaces a source's content by delete-then-reinsert. Between the delete
and the last insert the source is partly or entirely absent from the index; a
failure in that gap leaves it so until the next successful refresh, because the
fingerprint is only recorded after indexing completes.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from brain.config import DefaultRepo
from brain.db.store import VectorStore
from brain.errors import (
    BrainError,
    EmbeddingError,
    ModelError,
    PersistenceError,
    SourceNotTracked,
)
from brain.ingest.base import SourceLoader
from brain.ingest.embedder import Embedder
from brain.ingest.git import GitLoader, git_source_id
from brain.ingest.local import FilesystemLoader, local_source_id
from brain.models import IndexedDocument, LoadedDocument, SearchResult
from brain.sync.metadata import (
    FilesystemLocator,
    GitLocator,
    MetadataStore,
    SourceKind,
    SourceMetadata,
)
from brain.sync.scheduler import Scheduler

LOGGER = logging.getLogger(__name__)

BATCH_SIZE = 100

REASON_NOT_DUE = "Not due for check yet"
REASON_UP_TO_DATE = "Already up to date"
REASON_NOT_TRACKED = "Not tracked in metadata"
REASON_NOT_IN_METADATA = "Not in metadata"


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class _Report:
    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))  # type: ignore[call-overload]


@dataclass
class RefreshOutcome(_Report):
    source: str
    updated: bool
    chunks: int
    fingerprint: str
    detail: str


@dataclass
class CheckResult(_Report):
    source: str
    needs_update: bool
    reason: str
    in_window: bool


@dataclass
class CheckReport(_Report):
    checked_at: datetime
    timezone: str
    in_window: bool
    time_until_window_seconds: int
    results: list[CheckResult] = field(default_factory=list)


@dataclass
class RunReport(_Report):
    in_window: bool
    forced: bool
    blocked: bool = False
    time_until_window_seconds: int = 0
    updated: list[tuple[str, int]] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class SourceStatus(_Report):
    source: str
    kind: str
    last_checked_at: datetime | None
    last_synced_at: datetime | None
    fingerprint: str | None


@dataclass
class StatusReport(_Report):
    timezone: str
    check_interval_hours: int
    window_start: int
    window_end: int
    in_window: bool
    time_until_window_seconds: int
    sources: list[SourceStatus] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class IngestionOrchestrator:
    """Index, refresh, check and remove sources.

    Args:
        embedder: Text → vector collaborator.
        store: Vector store collaborator.
        git_loader: Loader for git sources (clones under its repos path).
        fs_loader: Loader for local directories.
        scheduler: Window / cadence policy and clock.
        metadata_path: JSON file holding the MetadataStore.
    """

    def __init__(
        self,
        *,
        embedder: Embedder,
        store: VectorStore,
        git_loader: GitLoader,
        fs_loader: FilesystemLoader,
        scheduler: Scheduler,
        metadata_path: Path,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.git_loader = git_loader
        self.fs_loader = fs_loader
        self.scheduler = scheduler
        self.metadata_path = Path(metadata_path)
        self._metadata: MetadataStore | None = None

    @property
    def metadata(self) -> MetadataStore:
        if self._metadata is None:
            self._metadata = MetadataStore.load(self.metadata_path)
        return self._metadata

    def _save(self) -> None:
        self.metadata.save(self.metadata_path)

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def index_source(
        self,
        source_id: str,
        documents: Iterable[LoadedDocument],
        source_kind: SourceKind,
    ) -> int:
        """Embed and insert every chunk of *documents*; return the chunk count.

        A document whose chunk fails to embed is dropped as a whole; the rest
        of the pass continues.

        Raises:
            ModelError: at least one document was dropped because the model or
                provider failed. Raised after the last batch is flushed, so
                callers never record the source as synced.
        """
        total = 0
        batch: list[IndexedDocument] = []
        model_failures: list[ModelError] = []

        for doc in documents:
            try:
                records = self._embed_document(source_id, doc, source_kind)
            except EmbeddingError as exc:
                LOGGER.warning("Skipping %s in %s: %s", doc.relative_path, source_id, exc.reason)
                if isinstance(exc, ModelError):
                    model_failures.append(exc)
                continue

            for record in records:
                batch.append(record)
                total += 1
                if len(batch) >= BATCH_SIZE:
                    self.store.insert(batch)
                    batch = []
                    LOGGER.info("Indexed %d chunks...", total)

        if batch:
            self.store.insert(batch)

        LOGGER.info("Total indexed: %d chunks from %s", total, source_id)
        if model_failures:
            raise ModelError(
                f"{len(model_failures)} document(s) of {source_id} failed to embed: {model_failures[0]}"
            ) from model_failures[0]
        return total

    def _embed_document(
        self,
        source_id: str,
        doc: LoadedDocument,
        source_kind: SourceKind,
    ) -> list[IndexedDocument]:
        records: list[IndexedDocument] = []
        for chunk in doc.chunks:
            records.append(
                IndexedDocument(
                    id=str(uuid.uuid4()),
                    content=chunk.content,
                    source=source_id,
                    source_type=source_kind.value,
                    file_path=doc.relative_path,
                    chunk_index=chunk.index,
                    created_at=self.scheduler.now().isoformat(),
                    embedding=self.embedder.embed(chunk.content),
                )
            )
        return records

    # ------------------------------------------------------------------
    # Adding sources
    # ------------------------------------------------------------------

    def add_git_source(self, owner: str, repo: str, branch: str = "main") -> int:
        """Clone or update *owner*/*repo*, (re-)index it, and start tracking it."""
        source_id = git_source_id(owner, repo)
        LOGGER.info("Indexing git repository: %s/%s (%s)", owner, repo, branch)
        repo_dir = self.git_loader.sync_local(owner, repo, branch)
        meta = SourceMetadata(
            source_id=source_id,
            locator=GitLocator(owner=owner, repo=repo, branch=branch, local_path=str(repo_dir)),
        )
        fingerprint = self.git_loader.current_commit(repo_dir)
        return self._reindex(meta, self.git_loader, repo_dir, fingerprint)

    def add_local_source(self, path: Path) -> int:
        """Index the directory at *path* and start tracking it."""
        root = self.fs_loader.ensure_exists(path)
        LOGGER.info("Indexing local directory: %s", root)
        meta = SourceMetadata(
            source_id=local_source_id(root),
            locator=FilesystemLocator(path=str(root)),
        )
        fingerprint = self.fs_loader.fingerprint(root)
        return self._reindex(meta, self.fs_loader, root, fingerprint)

    def index_defaults(self, defaults: Iterable[DefaultRepo]) -> RunReport:
        """``add_git_source`` for each configured default; failures are skipped."""
        report = RunReport(in_window=self.scheduler.is_in_window(), forced=True)
        for repo in defaults:
            source_id = git_source_id(repo.owner, repo.repo)
            try:
                count = self.add_git_source(repo.owner, repo.repo, repo.branch)
            except PersistenceError:
                raise
            except BrainError as exc:
                LOGGER.warning("Skipping %s: %s", source_id, exc.reason)
                report.skipped.append((source_id, exc.reason))
                continue
            report.updated.append((source_id, count))
        return report

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh_source(self, source_id: str) -> RefreshOutcome:
        """Re-sync one tracked source; re-index only if its fingerprint moved.

        Raises:
            SourceNotTracked: no metadata for *source_id*.
            RemoteUnavailable, RepositoryCorrupt, PathNotFound: source unreachable.
            PersistenceError: store or metadata I/O failed.
        """
        meta = self.metadata.get(source_id)
        if meta is None:
            raise SourceNotTracked(f"{source_id} has no metadata record")

        loader, root = self._locate(meta)
        fingerprint = loader.fingerprint(root)

        if not self.scheduler.has_changed(meta, fingerprint):
            self.scheduler.record_check(meta)
            self.metadata.upsert(meta)
            self._save()
            LOGGER.info("%s unchanged at %s", source_id, _short(fingerprint))
            return RefreshOutcome(source_id, False, 0, fingerprint, REASON_UP_TO_DATE)

        LOGGER.info("Re-indexing updated source: %s", source_id)
        count = self._reindex(meta, loader, root, fingerprint)
        return RefreshOutcome(source_id, True, count, fingerprint, f"{count} chunks")

    def _reindex(
        self,
        meta: SourceMetadata,
        loader: SourceLoader,
        root: Path,
        fingerprint: str,
    ) -> int:
        self.store.delete_by_source(meta.source_id)
        documents = loader.discover(root, meta.source_id)
        count = self.index_source(meta.source_id, documents, meta.kind)
        self.scheduler.record_refresh(meta, fingerprint)
        self.metadata.upsert(meta)
        self._save()
        return count

    def _locate(self, meta: SourceMetadata) -> tuple[SourceLoader, Path]:
        """Bring the source's local copy up to date and return (loader, root)."""
        locator = meta.locator
        if isinstance(locator, GitLocator):
            root = self.git_loader.sync_local(locator.owner, locator.repo, locator.branch)
            return self.git_loader, root
        return self.fs_loader, self.fs_loader.ensure_exists(Path(locator.path))

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove_source(self, source_id: str) -> int:
        """Delete a source's indexed content and its metadata. Returns deleted chunks."""
        tracked = self.metadata.get(source_id) is not None
        if not tracked and source_id not in self.store.list_sources():
            raise SourceNotTracked(f"{source_id} is neither indexed nor tracked")
        deleted = self.store.delete_by_source(source_id)
        if tracked:
            self.metadata.remove(source_id)
            self._save()
        return deleted

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------

    def known_sources(self) -> list[str]:
        """Every source that is indexed, tracked, or both."""
        return sorted(self.store.list_sources() | set(self.metadata.sources))

    def check_all(self) -> CheckReport:
        """Report which sources need a refresh, without touching the index."""
        now = self.scheduler.now()
        in_window = self.scheduler.is_in_window(now)
        report = CheckReport(
            checked_at=now,
            timezone=self.scheduler.policy.timezone,
            in_window=in_window,
            time_until_window_seconds=int(self.scheduler.time_until_window(now).total_seconds()),
        )

        for source_id in self.known_sources():
            needs_update, reason = self._check_one(source_id, now)
            report.results.append(CheckResult(source_id, needs_update, reason, in_window))

        self._save()
        return report

    def _check_one(self, source_id: str, now: datetime) -> tuple[bool, str]:
        meta = self.metadata.get(source_id)
        if meta is None:
            return True, REASON_NOT_TRACKED
        if not self.scheduler.needs_check(meta, now):
            return False, REASON_NOT_DUE
        try:
            loader, root = self._locate(meta)
            fingerprint = loader.fingerprint(root)
        except PersistenceError:
            raise
        except BrainError as exc:
            LOGGER.warning("Check failed for %s: %s", source_id, exc.reason)
            return False, exc.reason

        if self.scheduler.has_changed(meta, fingerprint):
            if meta.kind is SourceKind.GIT:
                return True, "New commits available"
            return True, "Local files changed"
        self.scheduler.record_check(meta, now)
        self.metadata.upsert(meta)
        return False, REASON_UP_TO_DATE

    def run_all(self, force: bool = False) -> RunReport:
        """Refresh every tracked source that is due.

        Outside the window nothing runs unless *force* is set; *force* also
        ignores the check cadence. Per-source failures are recorded as skipped.
        """
        now = self.scheduler.now()
        in_window = self.scheduler.is_in_window(now)
        report = RunReport(in_window=in_window, forced=force and not in_window)

        if not in_window and not force:
            report.blocked = True
            report.time_until_window_seconds = int(
                self.scheduler.time_until_window(now).total_seconds()
            )
            return report

        for source_id in self.known_sources():
            meta = self.metadata.get(source_id)
            if meta is None:
                report.skipped.append((source_id, REASON_NOT_IN_METADATA))
                continue
            if not force and not self.scheduler.needs_check(meta, now):
                report.skipped.append((source_id, REASON_NOT_DUE))
                continue
            try:
                outcome = self.refresh_source(source_id)
            except PersistenceError:
                raise
            except BrainError as exc:
                LOGGER.warning("Skipping %s: %s", source_id, exc.reason)
                report.skipped.append((source_id, exc.reason))
                continue
            if outcome.updated:
                report.updated.append((source_id, outcome.chunks))
            else:
                report.skipped.append((source_id, outcome.detail))

        return report

    def status(self) -> StatusReport:
        now = self.scheduler.now()
        policy = self.scheduler.policy
        return StatusReport(
            timezone=policy.timezone,
            check_interval_hours=policy.check_interval_hours,
            window_start=policy.window_start,
            window_end=policy.window_end,
            in_window=self.scheduler.is_in_window(now),
            time_until_window_seconds=int(self.scheduler.time_until_window(now).total_seconds()),
            sources=[
                SourceStatus(
                    source=meta.source_id,
                    kind=meta.kind.value,
                    last_checked_at=meta.last_checked_at,
                    last_synced_at=meta.last_synced_at,
                    fingerprint=meta.fingerprint,
                )
                for _, meta in sorted(self.metadata.sources.items())
            ],
        )

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def search(self, query: str, limit: int = 10) -> list[SearchResult]:
        return self.store.search(self.embedder.embed(query), limit)


def _short(fingerprint: str) -> str:
    return fingerprint[:12]
