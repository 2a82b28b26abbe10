"""
Point-in-time reconstruction of entity fields from the audit trail.

Only the *current* value of a field is stored on the entity; the past is
recovered by walking its changes. A snapshot for day ``D`` is the state at
the **start** of ``D``:

- find the first change on or after ``D``;
- if there is one, the value it replaced (``removed``) was in effect at
  the start of ``D`` (a change made during ``D`` is not yet visible);
- otherwise nothing changed since, so the current value applies.

Timeline (entity created day 100 as NEW, resolved on day 105)::

    day:     100   101   102   103   104   105   106
    value:   NEW   NEW   NEW   NEW   NEW   NEW   RESOLVED
                                           ▲
                              change on 105 is attributed to 106

A change whose ``removed`` slot is empty (the field was set, not changed)
yields ``None``: the value before it is unknown and is not counted.

Performance:
    Regeneration replays every day of history for every entity. The full
    trail is bulk-loaded once into ``entity → field → sorted changes`` and
    each entity keeps a forward-only :class:`FieldCursor`, so the total
    work is O(events + entity-days) instead of O(days × events).
    Random-access :meth:`SnapshotReconstructor.value_at` uses bisection.

Tags:
    temporal, replay, audit-trail, snapshot, stat-spine
"""

from __future__ import annotations

from bisect import bisect_left
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from statspine.core.logging import get_logger
from statspine.stats.models import AuditEvent, CategoryKind
from statspine.stats.repository import StatsRepository

logger = get_logger(__name__)

TRACKED_FIELDS = (CategoryKind.STATUS, CategoryKind.RESOLUTION)


def _field_name(field_: str | CategoryKind) -> str:
    return field_.value if isinstance(field_, CategoryKind) else field_


@dataclass
class FieldChanges:
    """Change days and replaced values for one entity field, ascending."""

    days: list[int] = field(default_factory=list)
    removed: list[str | None] = field(default_factory=list)


class EntityHistory:
    """Bulk-loaded audit trail plus current values for the tracked fields."""

    def __init__(
        self,
        changes: Mapping[str, Mapping[int, FieldChanges]],
        current: Mapping[str, Mapping[int, str]],
    ) -> None:
        self._changes = changes
        self._current = current

    @classmethod
    def from_events(
        cls,
        events: Iterable[AuditEvent],
        current: Mapping[str | CategoryKind, Mapping[int, str]],
    ) -> EntityHistory:
        """Group events by field and entity, ordered by (day, sequence)."""
        grouped: dict[str, dict[int, list[AuditEvent]]] = {}
        for event in events:
            grouped.setdefault(event.field, {}).setdefault(event.entity_id, []).append(event)

        changes: dict[str, dict[int, FieldChanges]] = {}
        for field_name, per_entity in grouped.items():
            target = changes.setdefault(field_name, {})
            for entity_id, entity_events in per_entity.items():
                entity_events.sort(key=lambda e: (e.day, e.sequence))
                target[entity_id] = FieldChanges(
                    days=[e.day for e in entity_events],
                    removed=[e.removed for e in entity_events],
                )

        return cls(changes, {_field_name(k): v for k, v in current.items()})

    @classmethod
    def load(
        cls,
        repo: StatsRepository,
        fields: Iterable[CategoryKind] = TRACKED_FIELDS,
    ) -> EntityHistory:
        """Read every change and current value for *fields* in one pass each."""
        fields = tuple(fields)
        events: list[AuditEvent] = []
        current: dict[str | CategoryKind, Mapping[int, str]] = {}
        for kind in fields:
            events.extend(repo.audit_events(kind.value))
            current[kind] = repo.current_values(kind)
        logger.info("history_loaded", events=len(events), fields=[k.value for k in fields])
        return cls.from_events(events, current)

    def changes(self, entity_id: int, field_: str | CategoryKind) -> FieldChanges | None:
        return self._changes.get(_field_name(field_), {}).get(entity_id)

    def current(self, entity_id: int, field_: str | CategoryKind) -> str | None:
        return self._current.get(_field_name(field_), {}).get(entity_id)


def _removed_value(value: str | None) -> str | None:
    return value if value else None


class FieldCursor:
    """Forward-only reader of one entity field over increasing days."""

    __slots__ = ("_days", "_removed", "_current", "_pos", "_last_day")

    def __init__(self, changes: FieldChanges | None, current: str | None) -> None:
        self._days = changes.days if changes else []
        self._removed = changes.removed if changes else []
        self._current = current
        self._pos = 0
        self._last_day: int | None = None

    def value_at(self, target_day: int) -> str | None:
        if self._last_day is not None and target_day < self._last_day:
            raise ValueError(
                f"cursor moves forward only: day {target_day} after {self._last_day}"
            )
        self._last_day = target_day

        days = self._days
        pos = self._pos
        while pos < len(days) and days[pos] < target_day:
            pos += 1
        self._pos = pos

        if pos < len(days):
            return _removed_value(self._removed[pos])
        return self._current


class SnapshotReconstructor:
    """Answers "what was this field at the start of day D?"."""

    def __init__(self, history: EntityHistory) -> None:
        self.history = history

    def value_at(self, entity_id: int, field_: str | CategoryKind, target_day: int) -> str | None:
        changes = self.history.changes(entity_id, field_)
        if changes:
            pos = bisect_left(changes.days, target_day)
            if pos < len(changes.days):
                return _removed_value(changes.removed[pos])
        return self.history.current(entity_id, field_)

    def cursor(self, entity_id: int, field_: str | CategoryKind) -> FieldCursor:
        return FieldCursor(
            self.history.changes(entity_id, field_),
            self.history.current(entity_id, field_),
        )


__all__ = [
    "TRACKED_FIELDS",
    "FieldChanges",
    "EntityHistory",
    "FieldCursor",
    "SnapshotReconstructor",
]
