"""Vector store: indexed documents plus their sqlite-vec embeddings.

Each ``documents`` row has a twin in ``vec_documents`` sharing its rowid. All
writes for a batch run in one transaction. Any sqlite3 failure is re-raised as
PersistenceError.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Sequence

from brain.db.migrations import run_migrations
from brain.db.vectors import ensure_vec_table
from brain.errors import PersistenceError
from brain.models import IndexedDocument, SearchResult

LOGGER = logging.getLogger(__name__)

_TABLE = "documents"


class VectorStore:
    """Persist IndexedDocuments and answer nearest-neighbour queries.

    The connection is owned by the caller and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection, dimensions: int) -> None:
        self._conn = conn
        self.dimensions = dimensions
        try:
            run_migrations(conn)
            self._vec_table = ensure_vec_table(conn, _TABLE, dimensions)
        except sqlite3.Error as exc:
            raise PersistenceError(f"cannot initialise vector store: {exc}") from exc
        except ValueError as exc:
            raise PersistenceError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, documents: Sequence[IndexedDocument]) -> None:
        """Insert a batch of documents and their embeddings atomically."""
        if not documents:
            return
        for doc in documents:
            if len(doc.embedding) != self.dimensions:
                raise PersistenceError(
                    f"embedding for {doc.file_path}#{doc.chunk_index} has "
                    f"{len(doc.embedding)} dimensions, store expects {self.dimensions}"
                )
        try:
            with self._conn:
                for doc in documents:
                    cur = self._conn.execute(
                        f"""
                        INSERT INTO {_TABLE}
                            (id, content, source, source_type, file_path, chunk_index, created_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            doc.id,
                            doc.content,
                            doc.source,
                            doc.source_type,
                            doc.file_path,
                            doc.chunk_index,
                            doc.created_at,
                        ),
                    )
                    self._conn.execute(
                        f"INSERT INTO {self._vec_table}(rowid, embedding) VALUES (?, ?)",
                        (cur.lastrowid, json.dumps([float(v) for v in doc.embedding])),
                    )
        except sqlite3.Error as exc:
            raise PersistenceError(f"insert of {len(documents)} documents failed: {exc}") from exc
        LOGGER.info("Inserted %d documents", len(documents))

    def delete_by_source(self, source: str) -> int:
        """Delete every document whose ``source`` equals *source*. Returns the count."""
        try:
            with self._conn:
                rowids = [
                    r[0]
                    for r in self._conn.execute(
                        f"SELECT rowid FROM {_TABLE} WHERE source = ?", (source,)
                    ).fetchall()
                ]
                if rowids:
                    placeholders = ",".join("?" * len(rowids))
                    self._conn.execute(
                        f"DELETE FROM {self._vec_table} WHERE rowid IN ({placeholders})",
                        rowids,
                    )
                self._conn.execute(f"DELETE FROM {_TABLE} WHERE source = ?", (source,))
        except sqlite3.Error as exc:
            raise PersistenceError(f"delete of source {source} failed: {exc}") from exc
        LOGGER.info("Deleted %d documents from source: %s", len(rowids), source)
        return len(rowids)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_sources(self) -> set[str]:
        try:
            rows = self._conn.execute(f"SELECT DISTINCT source FROM {_TABLE}").fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"cannot list sources: {exc}") from exc
        return {r[0] for r in rows}

    def count(self, source: str | None = None) -> int:
        """Number of indexed documents, optionally restricted to *source*."""
        try:
            if source is None:
                row = self._conn.execute(f"SELECT COUNT(*) FROM {_TABLE}").fetchone()
            else:
                row = self._conn.execute(
                    f"SELECT COUNT(*) FROM {_TABLE} WHERE source = ?", (source,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"cannot count documents: {exc}") from exc
        return row[0]

    def search(self, embedding: list[float], limit: int = 10) -> list[SearchResult]:
        """Nearest-neighbour search. Returns results sorted by distance."""
        try:
            rows = self._conn.execute(
                f"""
                SELECT d.id, d.content, d.source, d.file_path, d.chunk_index, v.distance
                FROM (
                    SELECT rowid, distance FROM {self._vec_table}
                    WHERE embedding MATCH ? AND k = ?
                ) AS v
                JOIN {_TABLE} AS d ON d.rowid = v.rowid
                ORDER BY v.distance
                """,
                (json.dumps([float(v) for v in embedding]), limit),
            ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"search failed: {exc}") from exc
        return [
            SearchResult(
                id=r["id"],
                content=r["content"],
                source=r["source"],
                file_path=r["file_path"],
                chunk_index=r["chunk_index"],
                distance=r["distance"],
            )
            for r in rows
        ]
