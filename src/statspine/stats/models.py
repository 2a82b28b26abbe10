"""
Domain types for daily entity statistics.

Value objects flow one way through the pipeline::

    field_values + audit_events ──► Category ──► CategoryDomain
    audit_events ─────────────────► AuditEvent ─► EntityHistory
    entities ─────────────────────► EntityState
                                        │
                                        ▼
                               DailySnapshotRow ──► TimeSeriesFile

Every type is a frozen dataclass except :class:`TimeSeriesFile`, which is
assembled incrementally while a file is parsed.

Tags:
    models, value-objects, time-series, stat-spine
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class CategoryKind(str, Enum):
    """Tracked entity fields. The value is the field name in the data store."""

    STATUS = "status"
    RESOLUTION = "resolution"


@dataclass(frozen=True, slots=True)
class Category:
    """One column of a time series.

    ``active`` is False for retired legal values and for values that only
    survive in the audit trail.
    """

    name: str
    kind: CategoryKind
    active: bool = True


@dataclass(frozen=True, slots=True)
class AuditEvent:
    """One recorded change of a tracked field."""

    entity_id: int
    field: str
    added: str | None
    removed: str | None
    day: int
    sequence: int


@dataclass(frozen=True, slots=True)
class EntityState:
    """Current state of an entity, as stored today."""

    entity_id: int
    product: str
    creation_day: int
    status: str
    resolution: str


@dataclass(frozen=True, slots=True)
class DailySnapshotRow:
    """Counts per category for one calendar day.

    ``counts`` maps category name to a count, or to ``None`` when the
    category was not tracked that day (written as a blank field).
    """

    date: str
    counts: Mapping[str, int | None]

    def values(self, columns: Iterable[str]) -> list[str]:
        """Render the DATE field followed by one token per column."""
        tokens = [self.date]
        for column in columns:
            value = self.counts.get(column)
            tokens.append("" if value is None else str(value))
        return tokens

    def to_line(self, columns: Iterable[str]) -> str:
        return "|".join(self.values(columns))


@dataclass(frozen=True, slots=True)
class DataIntegrityWarning:
    """A data line whose field count does not match the declared schema."""

    line_number: int
    expected: int
    actual: int

    @property
    def message(self) -> str:
        if self.actual < self.expected:
            return f"line {self.line_number}: {self.actual} fields, padded to {self.expected}"
        return f"line {self.line_number}: {self.actual} fields, truncated to {self.expected}"


@dataclass(frozen=True, slots=True)
class SchemaDrift:
    """Difference between a file's header and the canonical columns."""

    old: tuple[str, ...]
    new: tuple[str, ...]

    @property
    def added(self) -> tuple[str, ...]:
        return tuple(c for c in self.new if c not in self.old)

    @property
    def removed(self) -> tuple[str, ...]:
        return tuple(c for c in self.old if c not in self.new)

    @property
    def reordered(self) -> bool:
        common_old = [c for c in self.old if c in self.new]
        common_new = [c for c in self.new if c in self.old]
        return common_old != common_new


class WriteMode(str, Enum):
    APPEND = "append"
    REWRITE = "rewrite"


@dataclass
class TimeSeriesFile:
    """Parsed contents of one product's time-series file.

    ``columns`` is the full declared header, DATE included.
    """

    path: Path
    columns: tuple[str, ...] = ()
    product: str | None = None
    rows: list[DailySnapshotRow] = field(default_factory=list)
    warnings: list[DataIntegrityWarning] = field(default_factory=list)

    @property
    def categories(self) -> tuple[str, ...]:
        """Declared category columns, without the leading DATE column."""
        return self.columns[1:]

    def drift_from(self, canonical: Iterable[str]) -> SchemaDrift | None:
        """Positional comparison against the canonical category columns.

        Returns ``None`` when append is safe.
        """
        canonical = tuple(canonical)
        if self.categories == canonical:
            return None
        return SchemaDrift(old=self.categories, new=canonical)


@dataclass(frozen=True, slots=True)
class RegenerationResult:
    product: str
    path: Path
    first_day: int
    last_day: int
    rows_written: int


@dataclass(frozen=True, slots=True)
class CollectionResult:
    product: str
    path: Path
    mode: WriteMode
    row: DailySnapshotRow
    drift: SchemaDrift | None = None
    rows_carried: int = 0


__all__ = [
    "CategoryKind",
    "Category",
    "AuditEvent",
    "EntityState",
    "DailySnapshotRow",
    "DataIntegrityWarning",
    "SchemaDrift",
    "WriteMode",
    "TimeSeriesFile",
    "RegenerationResult",
    "CollectionResult",
]
