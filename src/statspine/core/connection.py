"""Connection factory and SQLite adapter.

``create_connection()`` is the single entry point for opening the data
store. The daily job opens connections explicitly per logical role: the
*replica* for read-heavy replay and counting, the *primary* for series
writes. Nothing in the stats or series packages reaches for a global
handle.

Supported URL forms
-------------------
==================  ==========================================
``memory``          ``memory``, ``:memory:`` or ``None``
``sqlite``          ``sqlite:///path/to/file.db``
``(file path)``     ``./data/stats.db``
==================  ==========================================

Usage
-----
::

    from statspine.core.connection import create_connection, transaction

    conn = create_connection("sqlite:///data/statspine.db")
    with transaction(conn):
        conn.execute("DELETE FROM series_data WHERE series_id = ?", (7,))
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from statspine.core.errors import ConfigError
from statspine.core.protocols import Connection


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol.

    Maintains a single cursor so that ``execute`` / ``fetchone`` /
    ``fetchall`` operate on the same result set. One adapter must not be
    shared between threads; open one per worker instead.
    """

    def __init__(self, path: str = ":memory:", *, row_factory: Any = sqlite3.Row) -> None:
        self.path = path
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = row_factory
        self._cursor = self._conn.cursor()

    # -- Connection protocol -----------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        self._cursor.execute(sql, params)
        return self._cursor

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        self._cursor.executemany(sql, params)
        return self._cursor

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    def __repr__(self) -> str:
        return f"SqliteConnection({self.path!r})"


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into ``(scheme, target)``."""
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if "://" in db:
        return db.split("://", 1)[0], db

    return "sqlite", db


def create_connection(db: str | None = None) -> SqliteConnection:
    """Open a connection for a URL, path or ``memory`` keyword.

    Raises:
        ConfigError: The URL scheme has no back end.
    """
    scheme, target = _parse_url(db)
    if scheme == "memory":
        return SqliteConnection(":memory:")
    if scheme == "sqlite":
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        return SqliteConnection(str(path))
    raise ConfigError(f"Unsupported database URL scheme: {scheme!r}").with_context(url=db)


@contextmanager
def transaction(conn: Connection) -> Iterator[Connection]:
    """Commit on success, roll back on any exception."""
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()


__all__ = ["SqliteConnection", "create_connection", "transaction"]
