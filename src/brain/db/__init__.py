"""Brain database layer."""

from brain.db.connection import Database
from brain.db.migrations import MIGRATIONS, run_migrations
from brain.db.store import VectorStore
from brain.db.vectors import ensure_vec_table, vec_table_name

__all__ = [
    "Database",
    "MIGRATIONS",
    "VectorStore",
    "ensure_vec_table",
    "run_migrations",
    "vec_table_name",
]
