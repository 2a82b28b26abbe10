"""
Shared pytest fixtures for stat-spine tests.

This module provides:
- A file-backed SQLite reference database with a small, fully known history
- Repository / domain / store fixtures wired to that database
- A fixed clock so generated files are byte-for-byte reproducible

Reference history (all timestamps local, day numbers derived from dates)::

    entity 1  Widgets/UI       created 2024-01-01  NEW → ASSIGNED (01-03)
                                                   ASSIGNED → RESOLVED, '' → FIXED (01-05)
    entity 2  Widgets/Backend  created 2024-01-02  NEW, never changed
    entity 3  Gadgets/UI       created 2024-01-03  REOPENED → ASSIGNED (01-06)
                                                   security group "security"

REOPENED is not a legal status any more; it only survives in the audit
trail. WONTFIX is a legal but inactive resolution.
"""

from __future__ import annotations

import sys
from collections.abc import Generator
from datetime import datetime
from pathlib import Path

import pytest

# Ensure statspine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from statspine.core.connection import SqliteConnection, create_connection
from statspine.core.schema import create_tables
from statspine.stats.domain import CategoryDomain, CategoryDomainRegistry
from statspine.stats.repository import StatsRepository
from statspine.stats.store import TimeSeriesStore

FIXED_NOW = datetime(2024, 1, 8, 6, 0, 0)

EXPECTED_COLUMNS = ("NEW", "ASSIGNED", "RESOLVED", "REOPENED", "FIXED", "WONTFIX")


def seed_reference_data(conn: SqliteConnection) -> None:
    """Populate an initialised database with the reference history."""
    conn.executemany(
        "INSERT INTO products (id, name) VALUES (?, ?)",
        [(1, "Widgets"), (2, "Gadgets"), (3, "Empty/Product")],
    )
    conn.executemany(
        "INSERT INTO components (id, product_id, name) VALUES (?, ?, ?)",
        [(1, 1, "UI"), (2, 1, "Backend"), (3, 2, "UI")],
    )
    conn.executemany("INSERT INTO users (id, login) VALUES (?, ?)", [(1, "alice"), (2, "bob")])
    conn.execute("INSERT INTO user_groups (user_id, group_name) VALUES (?, ?)", (1, "security"))
    conn.executemany(
        "INSERT INTO field_values (field, value, sortkey, isactive) VALUES (?, ?, ?, ?)",
        [
            ("status", "NEW", 100, 1),
            ("status", "ASSIGNED", 200, 1),
            ("status", "RESOLVED", 300, 1),
            ("resolution", "", 0, 1),
            ("resolution", "FIXED", 100, 1),
            ("resolution", "WONTFIX", 200, 0),
        ],
    )
    conn.executemany(
        """
        INSERT INTO entities
            (id, product_id, component_id, creation_ts, status, resolution,
             assignee_id, security_group)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (1, 1, 1, "2024-01-01 10:00:00", "RESOLVED", "FIXED", 1, None),
            (2, 1, 2, "2024-01-02 09:00:00", "NEW", "", 2, None),
            (3, 2, 3, "2024-01-03 12:00:00", "ASSIGNED", "", 1, "security"),
        ],
    )
    conn.executemany(
        "INSERT INTO audit_events (entity_id, field, added, removed, changed_at)"
        " VALUES (?, ?, ?, ?, ?)",
        [
            (1, "status", "ASSIGNED", "NEW", "2024-01-03 08:00:00"),
            (1, "status", "RESOLVED", "ASSIGNED", "2024-01-05 14:00:00"),
            (1, "resolution", "FIXED", "", "2024-01-05 14:00:00"),
            (3, "status", "ASSIGNED", "REOPENED", "2024-01-06 11:00:00"),
        ],
    )
    conn.execute(
        "INSERT INTO series (id, name, query, frequency, creator_id) VALUES (?, ?, ?, ?, ?)",
        (1, "Open widgets", "product=Widgets&status=NEW&status=ASSIGNED", 1, 1),
    )
    conn.commit()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Initialised and seeded reference database on disk."""
    path = tmp_path / "stats.db"
    conn = create_connection(str(path))
    create_tables(conn)
    seed_reference_data(conn)
    conn.close()
    return path


@pytest.fixture
def conn(db_path: Path) -> Generator[SqliteConnection, None, None]:
    connection = create_connection(str(db_path))
    yield connection
    connection.close()


@pytest.fixture
def empty_conn() -> Generator[SqliteConnection, None, None]:
    """In-memory database with the schema but no rows."""
    connection = create_connection("memory")
    create_tables(connection)
    yield connection
    connection.close()


# =============================================================================
# Stats Fixtures
# =============================================================================


@pytest.fixture
def repo(conn: SqliteConnection) -> StatsRepository:
    return StatsRepository(conn)


@pytest.fixture
def domain(repo: StatsRepository) -> CategoryDomain:
    return CategoryDomainRegistry(repo).build()


@pytest.fixture
def store(tmp_path: Path) -> TimeSeriesStore:
    store = TimeSeriesStore(tmp_path / "data" / "mining")
    store.ensure_directory()
    return store


@pytest.fixture
def clock():
    """Fixed local clock: 2024-01-08 06:00."""
    return lambda: FIXED_NOW


@pytest.fixture
def expected_columns() -> tuple[str, ...]:
    """Category columns of the reference domain, in file order."""
    return EXPECTED_COLUMNS
