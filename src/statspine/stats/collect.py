"""Daily append-mode collection.

Counts today's entities per category straight from the data store (no
replay) and adds one row to the product's file. When the file's header no
longer matches the category domain the whole file is rewritten under the
new header; rows from before the change keep their old counts and get
blanks for categories they never tracked.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime

from statspine.core.logging import get_logger
from statspine.core.temporal import day_number, format_day
from statspine.stats.domain import CategoryDomain
from statspine.stats.models import CategoryKind, CollectionResult, DailySnapshotRow, WriteMode
from statspine.stats.repository import StatsRepository
from statspine.stats.store import TimeSeriesStore

logger = get_logger(__name__)


class IncrementalCollector:
    """Appends today's counts to each product's time series."""

    def __init__(
        self,
        repo: StatsRepository,
        store: TimeSeriesStore,
        domain: CategoryDomain,
        *,
        all_products_label: str = "-All-",
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.repo = repo
        self.store = store
        self.domain = domain
        self.all_products_label = all_products_label
        self.clock = clock
        self._aliases: dict[str, list[str]] = {}
        for old, new in domain.renames.items():
            self._aliases.setdefault(new, []).append(old)

    def today_row(self, product: str, today: date) -> DailySnapshotRow:
        """One COUNT per category, filtered to *product* unless it is the all-label."""
        scope = None if product == self.all_products_label else product
        counts: dict[str, int | None] = {}
        for kind in (CategoryKind.STATUS, CategoryKind.RESOLUTION):
            for category in self.domain.categories(kind):
                values = [category.name, *self._aliases.get(category.name, [])]
                counts[category.name] = sum(
                    self.repo.count_in_category(kind, value, scope) for value in values
                )
        return DailySnapshotRow(date=format_day(day_number(today)), counts=counts)

    def collect_today(self, product: str, today: date | None = None) -> CollectionResult:
        now = self.clock()
        today = today or now.date()
        columns = self.domain.columns
        path = self.store.path_for(product)

        existing = self.store.load(product)
        drift = None
        carried: list[DailySnapshotRow] = []
        if existing is None:
            mode = WriteMode.REWRITE
        else:
            drift = existing.drift_from(columns)
            if drift is None:
                mode = WriteMode.APPEND
            else:
                mode = WriteMode.REWRITE
                carried = existing.rows
                logger.info(
                    "schema_drift_detected",
                    product=product,
                    added=list(drift.added),
                    removed=list(drift.removed),
                    reordered=drift.reordered,
                    rows=len(carried),
                )

        row = self.today_row(product, today)
        rows = [row] if mode is WriteMode.APPEND else [*carried, row]
        self.store.write(path, columns, rows, mode, product=product, created=now)

        logger.info("product_collected", product=product, mode=mode.value, date=row.date)
        return CollectionResult(
            product=product,
            path=path,
            mode=mode,
            row=row,
            drift=drift,
            rows_carried=len(carried),
        )


__all__ = ["IncrementalCollector"]
