"""
Saved-series sampling.

Each saved series carries a ``frequency`` in days. On epoch day ``D`` a
series is due when ``(D + id) % frequency == 0``, which samples it every
``frequency`` days with a per-series phase. Due series are executed as
their owner, and the number of distinct matches is stored against the
effective date, replacing any earlier value for that date.

A query that no longer compiles (product renamed, owner lost access), or
a data point that cannot be stored, skips that series only; the rest of
the run carries on.

Tags:
    series, scheduler, saved-queries, idempotent, stat-spine
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime

from statspine.core.errors import DataStoreError, QueryCompilationError
from statspine.core.logging import LogContext, get_logger
from statspine.core.protocols import QueryExecutor
from statspine.core.temporal import epoch_day_now
from statspine.series.models import SeriesDataPoint, SeriesRunReport
from statspine.series.repository import SeriesRepository

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SeriesScheduler:
    """Runs the saved series due today and records one data point each.

    Parameters:
        repo: Series repository on the *primary* connection.
        executor: Runs saved query definitions, typically on the replica.
        clock: Source of "now" used for the due-day computation.
    """

    def __init__(
        self,
        repo: SeriesRepository,
        executor: QueryExecutor,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.repo = repo
        self.executor = executor
        self.clock = clock

    def run_daily(self, effective_date: date | None = None) -> SeriesRunReport:
        now = self.clock()
        epoch_day = epoch_day_now(now)
        stamp = (effective_date or now.astimezone().date()).isoformat()
        report = SeriesRunReport(effective_date=stamp, epoch_day=epoch_day)

        for series in self.repo.due_series(epoch_day):
            with LogContext(series_id=series.id):
                owner = self.repo.user(series.owner_id)
                if owner is None:
                    report.skipped[series.id] = f"owner {series.owner_id} not found"
                    logger.info("series_skipped", reason="owner_not_found")
                    continue

                try:
                    ids = self.executor.execute(series.query, owner)
                except QueryCompilationError as exc:
                    report.skipped[series.id] = exc.message
                    logger.info("series_skipped", reason=exc.message)
                    continue
                except DataStoreError as exc:
                    report.skipped[series.id] = exc.message
                    logger.error("series_query_failed", **exc.to_dict())
                    continue

                point = SeriesDataPoint(series_id=series.id, date=stamp, value=len(set(ids)))
                try:
                    self.repo.replace_point(point)
                except DataStoreError as exc:
                    report.skipped[series.id] = exc.message
                    logger.error("series_write_failed", **exc.to_dict())
                    continue
                report.recorded.append(point)
                logger.info("series_recorded", name=series.name, value=point.value)

        logger.info(
            "series_run_complete",
            epoch_day=epoch_day,
            recorded=len(report.recorded),
            skipped=len(report.skipped),
        )
        return report


__all__ = ["SeriesScheduler"]
