"""sqlite-vec virtual table management."""

from __future__ import annotations

import re
import sqlite3

_NAME_RE = re.compile(r"[a-z][a-z0-9_]*")


def vec_table_name(table: str) -> str:
    """Return the vec table paired with the documents table *table*."""
    return f"vec_{table}"


def ensure_vec_table(conn: sqlite3.Connection, table: str, dimensions: int) -> str:
    """Create ``vec_<table>`` if it doesn't already exist and return its name.

    Raises:
        ValueError: invalid table name, non-positive dimensions, or an existing
            vec table created with different dimensions.
    """
    if not _NAME_RE.fullmatch(table):
        raise ValueError(f"Invalid table name '{table}' — use [a-z0-9_] only.")
    if dimensions < 1:
        raise ValueError(f"dimensions must be >= 1, got {dimensions}")

    name = vec_table_name(table)
    existing = conn.execute(
        "SELECT sql FROM sqlite_master WHERE type='table' AND name=?", (name,)
    ).fetchone()

    if existing is None:
        conn.execute(
            f"CREATE VIRTUAL TABLE {name} USING vec0(embedding float[{dimensions}])"
        )
        conn.commit()
    elif f"float[{dimensions}]" not in (existing[0] or ""):
        raise ValueError(
            f"{name} was created with different dimensions; "
            f"re-index into a new table to use {dimensions}"
        )

    return name
