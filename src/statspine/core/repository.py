"""Base repository over the ``Connection`` protocol.

Architecture::

    ┌──────────────────────────────────────────────────────┐
    │                   BaseRepository                      │
    │                                                       │
    │   conn: Connection     ← explicit, chosen per role    │
    │                                                       │
    │   query(sql, params)      → list[dict]                │
    │   query_one(sql, params)  → dict | None               │
    │   scalar(sql, params)     → first column of first row │
    │   column(sql, params)     → list of first-column vals │
    └──────────────────────────────────────────────────────┘

Tags:
    repository, database, stat-spine
"""

from __future__ import annotations

from typing import Any

from statspine.core.protocols import Connection


class BaseRepository:
    """Base class for data-access repositories.

    Parameters:
        conn: Any object satisfying the :class:`Connection` protocol.
    """

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute a statement and return the raw cursor/result."""
        return self.conn.execute(sql, params)

    def query(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute a SELECT and return rows as dicts."""
        cursor = self.conn.execute(sql, params)
        rows = cursor.fetchall()
        if not rows:
            return []

        # dict(row) works with sqlite3.Row
        try:
            return [dict(row) for row in rows]
        except (TypeError, ValueError):
            pass

        if hasattr(cursor, "description") and cursor.description:
            columns = [desc[0] for desc in cursor.description]
            return [dict(zip(columns, row, strict=False)) for row in rows]

        return [{i: v for i, v in enumerate(row)} for row in rows]

    def query_one(self, sql: str, params: tuple = ()) -> dict[str, Any] | None:
        """Execute a SELECT and return the first row as a dict (or None)."""
        results = self.query(sql, params)
        return results[0] if results else None

    def scalar(self, sql: str, params: tuple = ()) -> Any:
        """Execute a SELECT and return the first column of the first row."""
        self.conn.execute(sql, params)
        row = self.conn.fetchone()
        return None if row is None else row[0]

    def column(self, sql: str, params: tuple = ()) -> list[Any]:
        """Execute a SELECT and return the first column of every row."""
        self.conn.execute(sql, params)
        return [row[0] for row in self.conn.fetchall()]


__all__ = ["BaseRepository"]
