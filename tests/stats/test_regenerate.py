"""Tests for full regeneration from the audit trail."""

from datetime import date

import pytest

from statspine.core.temporal import day_number
from statspine.stats.domain import CategoryDomainRegistry
from statspine.stats.models import CategoryKind, EntityState
from statspine.stats.regenerate import RegenerationEngine
from statspine.stats.snapshot import EntityHistory, SnapshotReconstructor

ALL_ROWS = [
    "20240102|0|0|0|0|0|0",
    "20240103|1|0|0|0|0|0",
    "20240104|1|1|0|0|0|0",
    "20240105|1|1|0|1|0|0",
    "20240106|1|0|1|1|1|0",
    "20240107|1|1|1|0|1|0",
    "20240108|1|1|1|0|1|0",
]


@pytest.fixture
def reconstructor(repo):
    return SnapshotReconstructor(EntityHistory.load(repo))


@pytest.fixture
def engine(repo, store, domain, reconstructor, clock):
    return RegenerationEngine(repo, store, domain, reconstructor, clock=clock)


def _data_lines(path):
    return [line for line in path.read_text().splitlines() if not line.startswith("#")]


class TestRegenerate:
    def test_all_products(self, engine):
        result = engine.regenerate("-All-")
        assert result.rows_written == 7
        assert result.first_day == day_number("2024-01-01")
        assert result.last_day == day_number("2024-01-08")
        assert _data_lines(result.path) == ALL_ROWS

    def test_single_product(self, engine):
        result = engine.regenerate("Widgets")
        assert _data_lines(result.path) == [
            "20240102|0|0|0|0|0|0",
            "20240103|1|0|0|0|0|0",
            "20240104|1|1|0|0|0|0",
            "20240105|1|1|0|0|0|0",
            "20240106|1|0|1|0|1|0",
            "20240107|1|0|1|0|1|0",
            "20240108|1|0|1|0|1|0",
        ]

    def test_history_only_category_is_counted(self, engine):
        result = engine.regenerate("Gadgets")
        assert _data_lines(result.path) == [
            "20240104|0|0|0|0|0|0",
            "20240105|0|0|0|1|0|0",
            "20240106|0|0|0|1|0|0",
            "20240107|0|1|0|0|0|0",
            "20240108|0|1|0|0|0|0",
        ]

    def test_header(self, engine):
        path = engine.regenerate("-All-").path
        header = [line for line in path.read_text().splitlines() if line.startswith("#")]
        assert header[4] == "# fields: DATE|NEW|ASSIGNED|RESOLVED|REOPENED|FIXED|WONTFIX"
        assert header[5] == "# Product: -All-"
        assert header[6] == "# Created: Mon Jan 08 06:00:00 2024"

    def test_product_without_entities_is_skipped(self, engine, store):
        assert engine.regenerate("Empty/Product") is None
        assert not store.path_for("Empty/Product").exists()

    def test_explicit_today(self, engine):
        result = engine.regenerate("-All-", today=date(2024, 1, 4))
        assert _data_lines(result.path) == ALL_ROWS[:3]

    def test_idempotent(self, engine):
        first = engine.regenerate("-All-").path.read_bytes()
        second = engine.regenerate("-All-").path.read_bytes()
        assert first == second

    def test_replaces_existing_file(self, engine, store):
        path = store.path_for("-All-")
        path.write_text("# fields: DATE|OLD\n20200101|99\n")
        engine.regenerate("-All-")
        assert _data_lines(path) == ALL_ROWS

    def test_conservation(self, engine, repo):
        entities = repo.entities(None)
        path = engine.regenerate("-All-").path
        for line in _data_lines(path):
            day = day_number(f"{line[:4]}-{line[4:6]}-{line[6:8]}")
            statuses = [int(v) for v in line.split("|")[1:5]]
            admitted = sum(1 for e in entities if e.creation_day <= day - 2)
            assert sum(statuses) == admitted

    def test_schema_extension(self, conn, repo, store, reconstructor, clock):
        conn.execute(
            "INSERT INTO field_values (field, value, sortkey, isactive)"
            " VALUES ('status', 'VERIFIED', 400, 1)"
        )
        conn.commit()
        domain = CategoryDomainRegistry(repo).build()
        engine = RegenerationEngine(repo, store, domain, reconstructor, clock=clock)

        path = engine.regenerate("-All-").path
        parsed = store.parse(path)
        assert "VERIFIED" in parsed.categories
        assert all(row.counts["VERIFIED"] == 0 for row in parsed.rows)

    def test_progress_reported(self, repo, store, domain, reconstructor, clock):
        seen = []
        engine = RegenerationEngine(
            repo,
            store,
            domain,
            reconstructor,
            clock=clock,
            on_progress=lambda product, percent: seen.append((product, percent)),
        )
        engine.regenerate("Widgets")

        percents = [p for _, p in seen]
        assert {product for product, _ in seen} == {"Widgets"}
        assert percents == sorted(percents)
        assert percents[0] == 0.0
        assert percents[-1] == 100.0


class TestAdmissionLag:
    def test_entity_counted_from_second_day(self, empty_conn, store, domain):
        from statspine.stats.repository import StatsRepository

        history = EntityHistory.from_events([], {CategoryKind.STATUS: {1: "NEW"}})
        engine = RegenerationEngine(
            StatsRepository(empty_conn), store, domain, SnapshotReconstructor(history)
        )
        entities = [EntityState(1, "Widgets", creation_day=10, status="NEW", resolution="")]

        rows = list(engine.iter_rows(entities, first_day=10, last_day=13))

        assert [row.counts["NEW"] for row in rows] == [0, 1, 1]
        assert [row.date for row in rows] == ["19700112", "19700113", "19700114"]
