"""
Protocol definitions for Stat-Spine collaborators.

The daily job talks to two things it does not own: the relational data
store (through :class:`Connection`) and the saved-query compiler (through
:class:`QueryExecutor`). Both are structural protocols so tests and
alternative back ends can plug in without inheritance.

Tags:
    protocol, connection, query-executor, stat-spine, contracts
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from statspine.series.models import User


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface for data-store access.

    Examples:
        >>> conn.execute("SELECT COUNT(*) FROM entities WHERE status = ?", ("NEW",))
        >>> count = conn.fetchone()[0]
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters."""
        ...

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        """Execute SQL statement for multiple parameter sets."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from last query."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from last query."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


@runtime_checkable
class QueryExecutor(Protocol):
    """Compiles and runs a saved query definition for a given user.

    Implementations return the ids of matching entities (duplicates are
    allowed) and raise :class:`~statspine.core.errors.QueryCompilationError`
    when the definition cannot be compiled for that user, or
    :class:`~statspine.core.errors.DataStoreError` when the data store fails
    while compiling or running it.
    """

    def execute(self, definition: str, user: User) -> list[int]:
        ...


__all__ = ["Connection", "QueryExecutor"]
