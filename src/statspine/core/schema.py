"""
Reference data-store schema.

The daily job only *reads* entities, legal values and the audit trail, and
only *writes* ``series_data``. This module holds the DDL for the tables it
touches so the job can run end-to-end against a local SQLite database
(``statspine db init``) and so tests can build fixtures.

Table Registry:
    ::

        products        → product names (one time series per product)
        components      → per-product components (saved-query filters)
        users           → series owners
        user_groups     → group membership, drives query visibility
        entities        → current state: status, resolution, creation_ts
        field_values    → legal category values with sort order
        audit_events    → append-only field changes (added / removed)
        series          → saved sampling queries with frequency in days
        series_data     → one value per (series_id, series_date)

Examples:
    >>> from statspine.core.schema import create_tables
    >>> create_tables(conn)

Tags:
    schema, ddl, sqlite, stat-spine
"""

from __future__ import annotations

from statspine.core.protocols import Connection

TABLES = {
    "products": "products",
    "components": "components",
    "users": "users",
    "user_groups": "user_groups",
    "entities": "entities",
    "field_values": "field_values",
    "audit_events": "audit_events",
    "series": "series",
    "series_data": "series_data",
}

DDL = {
    "products": """
        CREATE TABLE IF NOT EXISTS products (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE
        )
    """,
    "components": """
        CREATE TABLE IF NOT EXISTS components (
            id INTEGER PRIMARY KEY,
            product_id INTEGER NOT NULL REFERENCES products(id),
            name TEXT NOT NULL,
            UNIQUE (product_id, name)
        )
    """,
    "users": """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY,
            login TEXT NOT NULL UNIQUE
        )
    """,
    "user_groups": """
        CREATE TABLE IF NOT EXISTS user_groups (
            user_id INTEGER NOT NULL REFERENCES users(id),
            group_name TEXT NOT NULL,
            UNIQUE (user_id, group_name)
        )
    """,
    "entities": """
        CREATE TABLE IF NOT EXISTS entities (
            id INTEGER PRIMARY KEY,
            product_id INTEGER NOT NULL REFERENCES products(id),
            component_id INTEGER REFERENCES components(id),
            creation_ts TEXT,               -- 'YYYY-MM-DD HH:MM:SS'
            status TEXT NOT NULL,
            resolution TEXT NOT NULL DEFAULT '',
            assignee_id INTEGER REFERENCES users(id),
            security_group TEXT             -- NULL: visible to everyone
        )
    """,
    # Legal values per tracked field ('status', 'resolution'), in sortkey order.
    "field_values": """
        CREATE TABLE IF NOT EXISTS field_values (
            field TEXT NOT NULL,
            value TEXT NOT NULL,
            sortkey INTEGER NOT NULL DEFAULT 0,
            isactive INTEGER NOT NULL DEFAULT 1,
            UNIQUE (field, value)
        )
    """,
    # Append-only. One row per field change; id breaks ties within a timestamp.
    "audit_events": """
        CREATE TABLE IF NOT EXISTS audit_events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            entity_id INTEGER NOT NULL REFERENCES entities(id),
            field TEXT NOT NULL,
            added TEXT,
            removed TEXT,
            changed_at TEXT NOT NULL        -- 'YYYY-MM-DD HH:MM:SS'
        )
    """,
    "series": """
        CREATE TABLE IF NOT EXISTS series (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            query TEXT NOT NULL,
            frequency INTEGER NOT NULL DEFAULT 1,
            creator_id INTEGER NOT NULL REFERENCES users(id)
        )
    """,
    "series_data": """
        CREATE TABLE IF NOT EXISTS series_data (
            series_id INTEGER NOT NULL REFERENCES series(id),
            series_date TEXT NOT NULL,      -- 'YYYY-MM-DD'
            series_value INTEGER NOT NULL,
            UNIQUE (series_id, series_date)
        )
    """,
    "audit_events_idx_field": """
        CREATE INDEX IF NOT EXISTS idx_audit_events_field_changed
        ON audit_events(field, changed_at)
    """,
    "entities_idx_product": """
        CREATE INDEX IF NOT EXISTS idx_entities_product
        ON entities(product_id)
    """,
}


def create_tables(conn: Connection) -> list[str]:
    """Create every reference table and index (idempotent).

    Returns the DDL keys that were applied, in order.
    """
    applied = []
    for key, ddl in DDL.items():
        conn.execute(ddl)
        applied.append(key)
    conn.commit()
    return applied


__all__ = ["TABLES", "DDL", "create_tables"]
