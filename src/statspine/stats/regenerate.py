"""
Full regeneration of a product's time series from the audit trail.

Used with ``statspine collect --regenerate`` after the category domain or
the audit trail changed in ways append-mode collection cannot follow.
The product's file is rewritten unconditionally.

Algorithm::

    first_day = day of the earliest entity creation in scope
    last_day  = today
    for day in first_day+1 .. last_day:
        admit entities created on calendar day (day - 2)
        for each admitted entity:
            status     = value at start of day
            resolution = value at start of day
            count both if they are columns of the domain
        emit row(day)

The two-day window in the admission step means an entity becomes visible
one full day after it was created. Historical files have always been
produced this way and charts compare against them, so it is kept as is.

Tags:
    regeneration, replay, time-series, stat-spine
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator, Sequence
from datetime import date, datetime

from statspine.core.logging import get_logger
from statspine.core.temporal import day_number, delta_time, format_day
from statspine.stats.domain import CategoryDomain
from statspine.stats.models import (
    CategoryKind,
    DailySnapshotRow,
    EntityState,
    RegenerationResult,
    WriteMode,
)
from statspine.stats.repository import StatsRepository
from statspine.stats.snapshot import FieldCursor, SnapshotReconstructor
from statspine.stats.store import TimeSeriesStore

logger = get_logger(__name__)

ProgressCallback = Callable[[str, float], None]


class RegenerationEngine:
    """Rebuilds one product's time series from scratch.

    Parameters:
        repo: Repository on the replica connection.
        store: Target time-series store.
        domain: Category domain shared by the whole run.
        reconstructor: Snapshot reader over the bulk-loaded history.
        all_products_label: Product name meaning "every entity".
        clock: Source of "now"; its date is the last regenerated day.
        on_progress: Called with ``(product, percent)`` as days are replayed.
    """

    def __init__(
        self,
        repo: StatsRepository,
        store: TimeSeriesStore,
        domain: CategoryDomain,
        reconstructor: SnapshotReconstructor,
        *,
        all_products_label: str = "-All-",
        clock: Callable[[], datetime] = datetime.now,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.repo = repo
        self.store = store
        self.domain = domain
        self.reconstructor = reconstructor
        self.all_products_label = all_products_label
        self.clock = clock
        self.on_progress = on_progress

    def _scope(self, product: str) -> str | None:
        return None if product == self.all_products_label else product

    def regenerate(self, product: str, today: date | None = None) -> RegenerationResult | None:
        """Rewrite *product*'s file; ``None`` if it has no entities."""
        started = time.monotonic()
        scope = self._scope(product)

        first_day = self.repo.first_creation_day(scope)
        if first_day is None:
            logger.info("regeneration_skipped", product=product, reason="no_entities")
            return None

        now = self.clock()
        last_day = day_number(today or now.date())
        entities = self.repo.entities(scope)
        rows = list(self.iter_rows(entities, first_day, last_day, product=product))

        path = self.store.write(
            self.store.path_for(product),
            self.domain.columns,
            rows,
            WriteMode.REWRITE,
            product=product,
            created=now,
        )
        self._report(product, 100.0)
        logger.info(
            "product_regenerated",
            product=product,
            rows=len(rows),
            first_day=format_day(first_day),
            elapsed=delta_time(time.monotonic() - started),
        )
        return RegenerationResult(
            product=product,
            path=path,
            first_day=first_day,
            last_day=last_day,
            rows_written=len(rows),
        )

    def iter_rows(
        self,
        entities: Sequence[EntityState],
        first_day: int,
        last_day: int,
        *,
        product: str = "",
    ) -> Iterator[DailySnapshotRow]:
        """Replay *entities* (ordered by creation day) over the day range."""
        total_days = last_day - first_day
        active: list[tuple[FieldCursor, FieldCursor]] = []
        pending = 0
        columns = self.domain.columns

        for day in range(first_day + 1, last_day + 1):
            if total_days:
                self._report(product, (day - first_day - 1) * 100 / total_days)

            admit_through = day - 2
            while pending < len(entities) and entities[pending].creation_day <= admit_through:
                entity_id = entities[pending].entity_id
                active.append(
                    (
                        self.reconstructor.cursor(entity_id, CategoryKind.STATUS),
                        self.reconstructor.cursor(entity_id, CategoryKind.RESOLUTION),
                    )
                )
                pending += 1

            counts = dict.fromkeys(columns, 0)
            for status_cursor, resolution_cursor in active:
                status = self.domain.resolve(CategoryKind.STATUS, status_cursor.value_at(day))
                if status is not None:
                    counts[status] += 1
                resolution = self.domain.resolve(
                    CategoryKind.RESOLUTION, resolution_cursor.value_at(day)
                )
                if resolution is not None:
                    counts[resolution] += 1

            yield DailySnapshotRow(date=format_day(day), counts=counts)

    def _report(self, product: str, percent: float) -> None:
        if self.on_progress is not None:
            self.on_progress(product, percent)


__all__ = ["RegenerationEngine", "ProgressCallback"]
