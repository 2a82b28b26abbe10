"""Tests for saved-series scheduling and data-point upserts."""

from datetime import UTC, date, datetime, timedelta

import pytest

from statspine.core.errors import DataStoreError, QueryCompilationError
from statspine.core.temporal import epoch_day_now
from statspine.series.executor import SavedSearchExecutor
from statspine.series.models import Series, SeriesDataPoint, User
from statspine.series.repository import SeriesRepository
from statspine.series.scheduler import SeriesScheduler

NOON = datetime(2024, 1, 8, 12, 0, tzinfo=UTC)


class StubExecutor:
    """Returns canned ids, or raises for definitions in ``broken`` or ``failing``."""

    def __init__(self, ids=(), broken=(), failing=()):
        self.ids = list(ids)
        self.broken = set(broken)
        self.failing = set(failing)
        self.calls = []

    def execute(self, definition, user):
        self.calls.append((definition, user.login))
        if definition in self.broken:
            raise QueryCompilationError(f"cannot compile {definition}")
        if definition in self.failing:
            raise DataStoreError("database is locked")
        return list(self.ids)


@pytest.fixture
def series_repo(conn):
    return SeriesRepository(conn)


def _add_series(conn, rows):
    conn.executemany(
        "INSERT INTO series (id, name, query, frequency, creator_id) VALUES (?, ?, ?, ?, ?)",
        rows,
    )
    conn.commit()


class TestDueSelection:
    def test_every_series_fires_once_per_period(self, conn, series_repo):
        _add_series(conn, [(i, f"s{i}", "", 3, 1) for i in (2, 3, 4)])
        start = epoch_day_now(NOON)

        fired = []
        for offset in range(3):
            fired.extend(s.id for s in series_repo.due_series(start + offset) if s.frequency == 3)

        assert sorted(fired) == [2, 3, 4]

    def test_zero_frequency_never_fires(self, conn, series_repo):
        _add_series(conn, [(5, "disabled", "", 0, 1)])
        due = {s.id for day in range(10) for s in series_repo.due_series(day)}
        assert 5 not in due

    def test_matches_model_rule(self, conn, series_repo):
        _add_series(conn, [(6, "weekly", "", 7, 1), (7, "biweekly", "", 14, 1)])
        for day in range(19720, 19740):
            due = {s.id for s in series_repo.due_series(day)}
            for series_id, freq in ((6, 7), (7, 14)):
                model = Series(series_id, "", "", freq, 1)
                assert (series_id in due) == model.is_due(day)


class TestRunDaily:
    def test_records_distinct_count(self, series_repo):
        scheduler = SeriesScheduler(series_repo, StubExecutor(ids=[4, 4, 7]), clock=lambda: NOON)
        report = scheduler.run_daily(date(2024, 1, 8))

        assert report.recorded == [SeriesDataPoint(series_id=1, date="2024-01-08", value=2)]
        assert series_repo.data_points(1) == report.recorded

    def test_runs_as_owner(self, series_repo):
        executor = StubExecutor(ids=[1])
        SeriesScheduler(series_repo, executor, clock=lambda: NOON).run_daily()
        assert executor.calls == [("product=Widgets&status=NEW&status=ASSIGNED", "alice")]

    def test_upsert_is_idempotent(self, conn, series_repo):
        scheduler = SeriesScheduler(series_repo, StubExecutor(ids=[1, 2]), clock=lambda: NOON)
        scheduler.run_daily(date(2024, 1, 8))
        scheduler.executor = StubExecutor(ids=[1, 2, 3])
        scheduler.run_daily(date(2024, 1, 8))

        points = series_repo.data_points(1)
        assert points == [SeriesDataPoint(series_id=1, date="2024-01-08", value=3)]

    def test_compile_error_skips_only_that_series(self, conn, series_repo):
        _add_series(conn, [(2, "stale", "product=Nope", 1, 1)])
        executor = StubExecutor(ids=[9], broken={"product=Nope"})

        report = SeriesScheduler(series_repo, executor, clock=lambda: NOON).run_daily()

        assert [p.series_id for p in report.recorded] == [1]
        assert set(report.skipped) == {2}
        assert report.selected == 2
        assert series_repo.data_points(2) == []

    def test_query_failure_skips_only_that_series(self, conn, series_repo):
        _add_series(conn, [(2, "locked", "status=NEW", 1, 1), (3, "fine", "status=FIXED", 1, 2)])
        executor = StubExecutor(ids=[1], failing={"status=NEW"})

        report = SeriesScheduler(series_repo, executor, clock=lambda: NOON).run_daily()

        assert [p.series_id for p in report.recorded] == [1, 3]
        assert report.skipped == {2: "database is locked"}

    def test_unknown_owner_is_skipped(self, conn, series_repo):
        _add_series(conn, [(2, "orphan", "", 1, 99)])
        report = SeriesScheduler(series_repo, StubExecutor(ids=[1]), clock=lambda: NOON).run_daily()
        assert "not found" in report.skipped[2]

    def test_effective_date_defaults_to_clock(self, series_repo):
        report = SeriesScheduler(
            series_repo, StubExecutor(ids=[1]), clock=lambda: NOON
        ).run_daily()
        assert report.epoch_day == epoch_day_now(NOON)
        assert report.effective_date == NOON.astimezone().date().isoformat()

    def test_not_due_series_untouched(self, conn, series_repo):
        conn.execute("UPDATE series SET frequency = 2 WHERE id = 1")
        conn.commit()
        day = epoch_day_now(NOON)
        clock_day = NOON if (day + 1) % 2 else NOON + timedelta(days=1)

        report = SeriesScheduler(series_repo, StubExecutor(), clock=lambda: clock_day).run_daily()
        assert report.selected == 0

    def test_reference_executor_end_to_end(self, conn, series_repo):
        report = SeriesScheduler(
            series_repo, SavedSearchExecutor(conn), clock=lambda: NOON
        ).run_daily(date(2024, 1, 8))
        assert report.recorded[0].value == 1


class TestReplacePoint:
    def test_rolls_back_on_failure(self, conn, series_repo):
        series_repo.replace_point(SeriesDataPoint(1, "2024-01-08", 5))
        with pytest.raises(DataStoreError) as exc_info:
            series_repo.replace_point(SeriesDataPoint(1, "2024-01-08", None))
        assert series_repo.data_points(1) == [SeriesDataPoint(1, "2024-01-08", 5)]
        assert exc_info.value.context.series_id == 1

    def test_write_failure_skips_series(self, series_repo):
        scheduler = SeriesScheduler(series_repo, StubExecutor(ids=[1]), clock=lambda: NOON)
        series_repo.replace_point = _failing_replace

        report = scheduler.run_daily(date(2024, 1, 8))

        assert report.recorded == []
        assert "Cannot store" in report.skipped[1]


class TestOwnerLookup:
    def test_user_with_groups(self, series_repo):
        assert series_repo.user(1) == User(id=1, login="alice", groups=frozenset({"security"}))
        assert series_repo.user(2).groups == frozenset()

    def test_missing_user(self, series_repo):
        assert series_repo.user(99) is None


def _failing_replace(point):
    raise DataStoreError("Cannot store data point").with_context(series_id=point.series_id)
