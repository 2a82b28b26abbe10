"""Saved-series sampling: due-day selection, query execution and upserts."""

from statspine.series.executor import SavedSearchExecutor
from statspine.series.models import Series, SeriesDataPoint, SeriesRunReport, User
from statspine.series.repository import SeriesRepository
from statspine.series.scheduler import SeriesScheduler

__all__ = [
    "SavedSearchExecutor",
    "Series",
    "SeriesDataPoint",
    "SeriesRepository",
    "SeriesRunReport",
    "SeriesScheduler",
    "User",
]
