"""Tests for the stats data-store queries."""

from statspine.core.temporal import day_number
from statspine.stats.models import CategoryKind


class TestStatsRepository:
    def test_product_names_sorted(self, repo):
        assert repo.product_names() == ["Empty/Product", "Gadgets", "Widgets"]

    def test_first_creation_day(self, repo):
        assert repo.first_creation_day(None) == day_number("2024-01-01")
        assert repo.first_creation_day("Gadgets") == day_number("2024-01-03")
        assert repo.first_creation_day("Empty/Product") is None

    def test_entities_ordered_by_creation(self, repo):
        entities = repo.entities("Widgets")
        assert [e.entity_id for e in entities] == [1, 2]
        assert {e.product for e in entities} == {"Widgets"}
        assert entities[1].resolution == ""

    def test_count_in_category(self, repo):
        assert repo.count_in_category(CategoryKind.STATUS, "NEW", None) == 1
        assert repo.count_in_category(CategoryKind.STATUS, "NEW", "Gadgets") == 0
        assert repo.count_in_category(CategoryKind.RESOLUTION, "FIXED", "Widgets") == 1

    def test_audit_events_in_time_order(self, repo):
        events = list(repo.audit_events("status"))
        assert [(e.entity_id, e.removed) for e in events] == [
            (1, "NEW"),
            (1, "ASSIGNED"),
            (3, "REOPENED"),
        ]
        assert events[0].day == day_number("2024-01-03")

    def test_legal_values(self, repo):
        assert repo.legal_values("resolution") == [("", True), ("FIXED", True), ("WONTFIX", False)]
