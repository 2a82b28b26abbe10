"""Types for saved-series sampling."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class User:
    """Permission context a saved query runs under."""

    id: int
    login: str
    groups: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class Series:
    """A saved query sampled every ``frequency`` days (0 disables it)."""

    id: int
    name: str
    query: str
    frequency: int
    owner_id: int

    def is_due(self, epoch_day: int) -> bool:
        return self.frequency != 0 and (epoch_day + self.id) % self.frequency == 0


@dataclass(frozen=True, slots=True)
class SeriesDataPoint:
    series_id: int
    date: str
    value: int


@dataclass
class SeriesRunReport:
    """What one scheduler run recorded and skipped."""

    effective_date: str
    epoch_day: int
    recorded: list[SeriesDataPoint] = field(default_factory=list)
    skipped: dict[int, str] = field(default_factory=dict)

    @property
    def selected(self) -> int:
        return len(self.recorded) + len(self.skipped)


__all__ = ["User", "Series", "SeriesDataPoint", "SeriesRunReport"]
