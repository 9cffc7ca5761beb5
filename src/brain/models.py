"""Domain models shared by the loaders, the vector store and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Chunk:
    content: str
    index: int


@dataclass
class LoadedDocument:
    """One eligible file found by a loader, already chunked."""

    source_label: str
    relative_path: str
    chunks: list[Chunk] = field(default_factory=list)


@dataclass
class IndexedDocument:
    id: str
    content: str
    source: str
    source_type: str
    file_path: str
    chunk_index: int
    created_at: str
    embedding: list[float] = field(default_factory=list)


@dataclass
class SearchResult:
    id: str
    content: str
    source: str
    file_path: str
    chunk_index: int
    distance: float
