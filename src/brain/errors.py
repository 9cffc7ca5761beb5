"""Brain error taxonomy.

Every error carries a human-readable message. ``reason`` is the short form used in
"skipped: <reason>" entries of batch reports, so it must never collapse into a
generic failure string.

Propagation:
  - per-file read errors during discovery are swallowed by the loaders (not raised)
  - EmbeddingError aborts the current document only; a ModelError is re-raised
    once the pass ends, so the source is not recorded as synced
  - other BrainError subclasses are caught per source in batch runs
  - PersistenceError aborts the run
"""

from __future__ import annotations


class BrainError(Exception):
    """Base class for all Brain errors."""

    label: str = "Error"

    @property
    def reason(self) -> str:
        return f"{self.label}: {self}"


class RemoteUnavailable(BrainError):
    """Clone or fetch failed (network, auth, timeout). Retry at the next check."""

    label = "Remote unavailable"


class RepositoryCorrupt(BrainError):
    """The local clone is unusable. Delete it and re-clone."""

    label = "Repository corrupt"


class PersistenceError(BrainError):
    """Metadata or vector store I/O failed. Fatal for the current run."""

    label = "Persistence error"


class EmbeddingError(BrainError):
    """The embedding collaborator could not produce a vector."""

    label = "Embedding failed"


class TokenizeError(EmbeddingError):
    """The input text cannot be tokenized (blank, or over the model's context)."""

    label = "Tokenize error"


class ModelError(EmbeddingError):
    """The embedding model or provider failed, or returned a malformed vector."""

    label = "Model error"


class PathNotFound(BrainError):
    """A configured filesystem source no longer exists."""

    label = "Local path not found"


class SourceNotTracked(BrainError):
    """The source id has no metadata record."""

    label = "Not in metadata"
