"""Per-product daily entity statistics.

- domain: category domain discovery (legal + historical values)
- store: flat-file time-series format
- snapshot: start-of-day reconstruction from the audit trail
- regenerate: full rebuild of a product's history
- collect: daily append-mode collection
"""

from statspine.stats.collect import IncrementalCollector
from statspine.stats.domain import CategoryDomain, CategoryDomainRegistry
from statspine.stats.models import (
    AuditEvent,
    Category,
    CategoryKind,
    DailySnapshotRow,
    DataIntegrityWarning,
    EntityState,
    SchemaDrift,
    TimeSeriesFile,
    WriteMode,
)
from statspine.stats.regenerate import RegenerationEngine
from statspine.stats.repository import StatsRepository
from statspine.stats.snapshot import EntityHistory, SnapshotReconstructor
from statspine.stats.store import TimeSeriesStore, product_filename

__all__ = [
    "AuditEvent",
    "Category",
    "CategoryDomain",
    "CategoryDomainRegistry",
    "CategoryKind",
    "DailySnapshotRow",
    "DataIntegrityWarning",
    "EntityHistory",
    "EntityState",
    "IncrementalCollector",
    "RegenerationEngine",
    "SchemaDrift",
    "SnapshotReconstructor",
    "StatsRepository",
    "TimeSeriesFile",
    "TimeSeriesStore",
    "WriteMode",
    "product_filename",
]
