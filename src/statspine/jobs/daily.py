"""
Daily collection job.

One invocation per day, normally from cron::

    statspine collect                 # append today's counts
    statspine collect --regenerate    # rebuild every product from history

Flow:
    ::

        clean chart images ─► ensure <data_dir>/mining
                │
                ▼
        category domain (replica, once)
                │
                ▼
        products = [-All-, *product names]
                │           ThreadPoolExecutor(workers)
                ├──► product A ─► regenerate | collect ─► file
                ├──► product B ─► ...
                ▼
        SeriesScheduler (queries on replica, writes on primary)

A ``StatSpineError`` in one product is logged and recorded in the run
report; the remaining products and the series run still happen. Each
worker thread opens its own replica connection.

Tags:
    batch, daily-job, thread-pool, stat-spine
"""

from __future__ import annotations

import sqlite3
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path

from statspine.core.connection import SqliteConnection, create_connection
from statspine.core.errors import DataStoreError, StatSpineError
from statspine.core.logging import LogContext, get_logger
from statspine.core.settings import StatSpineSettings
from statspine.core.temporal import delta_time
from statspine.series.executor import SavedSearchExecutor
from statspine.series.models import SeriesRunReport
from statspine.series.repository import SeriesRepository
from statspine.series.scheduler import SeriesScheduler
from statspine.stats.collect import IncrementalCollector
from statspine.stats.domain import CategoryDomain, CategoryDomainRegistry
from statspine.stats.models import CollectionResult, RegenerationResult
from statspine.stats.regenerate import ProgressCallback, RegenerationEngine
from statspine.stats.repository import StatsRepository
from statspine.stats.snapshot import EntityHistory, SnapshotReconstructor
from statspine.stats.store import TimeSeriesStore

logger = get_logger(__name__)

CHART_PATTERNS = ("*.png", "*.gif")

ProductResult = RegenerationResult | CollectionResult | None


@dataclass
class DailyRunReport:
    """Outcome of one daily run."""

    mode: str
    products: dict[str, ProductResult] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    series: SeriesRunReport | None = None
    elapsed: str = "00:00:00"

    @property
    def ok(self) -> bool:
        return not self.failed and not (self.series and self.series.skipped)


def clean_graphs(graphs_dir: Path | None) -> int:
    """Remove rendered chart images so they are redrawn from fresh data."""
    if graphs_dir is None or not graphs_dir.is_dir():
        return 0
    removed = 0
    for pattern in CHART_PATTERNS:
        for image in graphs_dir.glob(pattern):
            image.unlink(missing_ok=True)
            removed += 1
    logger.debug("graphs_cleaned", directory=str(graphs_dir), removed=removed)
    return removed


class DailyJob:
    """Wires settings, connections and engines together for one run.

    Parameters:
        settings: Resolved configuration.
        clock: Source of local "now": today's date and ``Created:`` stamps.
        on_progress: Regeneration progress callback ``(product, percent)``.
    """

    def __init__(
        self,
        settings: StatSpineSettings,
        *,
        clock: Callable[[], datetime] = datetime.now,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.settings = settings
        self.clock = clock
        self.on_progress = on_progress
        self.store = TimeSeriesStore(settings.mining_dir)
        self._local = threading.local()
        self._opened: list[SqliteConnection] = []
        self._lock = threading.Lock()
        self._replica: SqliteConnection | None = None

    # -- Connections -------------------------------------------------------

    def _worker_connection(self) -> SqliteConnection:
        """Replica connection owned by the calling thread."""
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = create_connection(self.settings.effective_replica_url)
            self._local.conn = conn
            with self._lock:
                self._opened.append(conn)
        return conn

    def _close_all(self) -> None:
        with self._lock:
            for conn in self._opened:
                conn.close()
            self._opened.clear()
        self._local = threading.local()

    # -- Run ---------------------------------------------------------------

    def run(self, *, regenerate: bool = False, effective_date: date | None = None) -> DailyRunReport:
        started = time.monotonic()
        report = DailyRunReport(mode="regenerate" if regenerate else "collect")
        logger.info("daily_run_started", mode=report.mode, workers=self.settings.workers)

        try:
            clean_graphs(self.settings.graphs_dir)
            self.store.ensure_directory()

            replica = self._worker_connection()
            stats_repo = StatsRepository(replica)
            domain = CategoryDomainRegistry(stats_repo, self.settings.category_renames).build()
            products = [self.settings.all_products_label, *stats_repo.product_names()]

            reconstructor = None
            if regenerate:
                reconstructor = SnapshotReconstructor(EntityHistory.load(stats_repo))

            self._run_products(products, domain, reconstructor, report)
            report.series = self._run_series(replica, effective_date)
        finally:
            self._close_all()

        report.elapsed = delta_time(time.monotonic() - started)
        logger.info(
            "daily_run_complete",
            mode=report.mode,
            products=len(report.products),
            failed=len(report.failed),
            elapsed=report.elapsed,
        )
        return report

    def _run_products(
        self,
        products: list[str],
        domain: CategoryDomain,
        reconstructor: SnapshotReconstructor | None,
        report: DailyRunReport,
    ) -> None:
        today = self.clock().date()

        def work(product: str) -> ProductResult:
            try:
                return build(product)
            except sqlite3.Error as exc:
                raise DataStoreError(f"Query failed for {product}", cause=exc)

        def build(product: str) -> ProductResult:
            with LogContext(product=product):
                repo = StatsRepository(self._worker_connection())
                if reconstructor is not None:
                    engine = RegenerationEngine(
                        repo,
                        self.store,
                        domain,
                        reconstructor,
                        all_products_label=self.settings.all_products_label,
                        clock=self.clock,
                        on_progress=self.on_progress,
                    )
                    return engine.regenerate(product, today)
                collector = IncrementalCollector(
                    repo,
                    self.store,
                    domain,
                    all_products_label=self.settings.all_products_label,
                    clock=self.clock,
                )
                return collector.collect_today(product, today)

        def record(product: str, run: Callable[[], ProductResult]) -> None:
            try:
                report.products[product] = run()
            except StatSpineError as exc:
                exc.with_context(product=product)
                report.failed[product] = exc.message
                logger.error("product_failed", product=product, **exc.to_dict())

        if self.settings.workers == 1:
            for product in products:
                record(product, lambda p=product: work(p))
            return

        with ThreadPoolExecutor(max_workers=self.settings.workers) as pool:
            futures = {pool.submit(work, product): product for product in products}
            for future in as_completed(futures):
                record(futures[future], future.result)

    def _run_series(
        self, replica: SqliteConnection, effective_date: date | None
    ) -> SeriesRunReport:
        primary = create_connection(self.settings.database_url)
        with self._lock:
            self._opened.append(primary)
        scheduler = SeriesScheduler(
            SeriesRepository(primary),
            SavedSearchExecutor(replica),
            clock=lambda: self.clock().astimezone(),
        )
        return scheduler.run_daily(effective_date)


def run_collection(
    settings: StatSpineSettings,
    *,
    regenerate: bool = False,
    effective_date: date | None = None,
    clock: Callable[[], datetime] = datetime.now,
    on_progress: ProgressCallback | None = None,
) -> DailyRunReport:
    """Run the daily job once and return its report."""
    job = DailyJob(settings, clock=clock, on_progress=on_progress)
    return job.run(regenerate=regenerate, effective_date=effective_date)


__all__ = ["DailyJob", "DailyRunReport", "clean_graphs", "run_collection"]
