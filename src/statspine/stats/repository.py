"""Data-store queries issued by the stats pipeline.

Every method takes ``product=None`` to mean "all entities" (the ``-All-``
pseudo-product); otherwise results are restricted to the named product.
"""

from __future__ import annotations

from collections.abc import Iterator

from statspine.core.repository import BaseRepository
from statspine.core.temporal import day_number
from statspine.stats.models import AuditEvent, CategoryKind, EntityState


def _product_filter(product: str | None, alias: str = "e") -> tuple[str, str, tuple]:
    """Return ``(join, where, params)`` fragments restricting to *product*."""
    if product is None:
        return "", "", ()
    return (
        f" INNER JOIN products p ON {alias}.product_id = p.id",
        " AND p.name = ?",
        (product,),
    )


class StatsRepository(BaseRepository):
    """Read-only queries against entities, legal values and the audit trail."""

    # -- Categories --------------------------------------------------------

    def legal_values(self, field: str) -> list[tuple[str, bool]]:
        """Current legal values for *field* in canonical order, with active flag."""
        rows = self.query(
            "SELECT value, isactive FROM field_values WHERE field = ? ORDER BY sortkey, value",
            (field,),
        )
        return [(row["value"], bool(row["isactive"])) for row in rows]

    def historical_only_values(self, field: str) -> list[str]:
        """Values in the audit trail for *field* that are not legal values.

        Ordered by first appearance (event time, event id, added before removed).
        """
        rows = self.column(
            """
            SELECT h.value FROM (
                SELECT added AS value, changed_at, id, 0 AS slot
                  FROM audit_events WHERE field = ?
                UNION ALL
                SELECT removed AS value, changed_at, id, 1 AS slot
                  FROM audit_events WHERE field = ?
            ) h
            LEFT JOIN field_values fv
                   ON fv.field = ? AND fv.value = h.value
             WHERE fv.value IS NULL
               AND h.value IS NOT NULL
               AND h.value != ''
             ORDER BY h.changed_at, h.id, h.slot
            """,
            (field, field, field),
        )
        return list(dict.fromkeys(rows))

    # -- Products and entities ---------------------------------------------

    def product_names(self) -> list[str]:
        return self.column("SELECT name FROM products ORDER BY name")

    def first_creation_day(self, product: str | None) -> int | None:
        """Day number of the earliest entity creation in scope, if any."""
        join, where, params = _product_filter(product)
        first = self.scalar(
            f"SELECT MIN(e.creation_ts) FROM entities e{join}"
            f" WHERE e.creation_ts IS NOT NULL{where}",
            params,
        )
        return None if first is None else day_number(first)

    def entities(self, product: str | None) -> list[EntityState]:
        """Entities in scope ordered by creation time, then id."""
        join, where, params = _product_filter(product)
        rows = self.query(
            f"""
            SELECT e.id, e.creation_ts, e.status, e.resolution, pr.name AS product
              FROM entities e
             INNER JOIN products pr ON e.product_id = pr.id{join}
             WHERE e.creation_ts IS NOT NULL{where}
             ORDER BY e.creation_ts, e.id
            """,
            params,
        )
        return [
            EntityState(
                entity_id=row["id"],
                product=row["product"],
                creation_day=day_number(row["creation_ts"]),
                status=row["status"],
                resolution=row["resolution"] or "",
            )
            for row in rows
        ]

    def current_values(self, kind: CategoryKind) -> dict[int, str]:
        """Current value of *kind* for every entity."""
        rows = self.query(f"SELECT id, {kind.value} AS value FROM entities")
        return {row["id"]: row["value"] or "" for row in rows}

    # -- Audit trail -------------------------------------------------------

    def audit_events(self, field: str) -> Iterator[AuditEvent]:
        """Every change of *field*, ascending by time then id."""
        rows = self.query(
            "SELECT id, entity_id, added, removed, changed_at FROM audit_events"
            " WHERE field = ? ORDER BY changed_at, id",
            (field,),
        )
        for row in rows:
            yield AuditEvent(
                entity_id=row["entity_id"],
                field=field,
                added=row["added"],
                removed=row["removed"],
                day=day_number(row["changed_at"]),
                sequence=row["id"],
            )

    # -- Counting ----------------------------------------------------------

    def count_in_category(self, kind: CategoryKind, value: str, product: str | None) -> int:
        """Number of entities whose current *kind* equals *value*."""
        join, where, params = _product_filter(product)
        return self.scalar(
            f"SELECT COUNT(*) FROM entities e{join} WHERE e.{kind.value} = ?{where}",
            (value, *params),
        )


__all__ = ["StatsRepository"]
