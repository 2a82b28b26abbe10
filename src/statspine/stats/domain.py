"""
Category domain discovery.

Statuses and resolutions are customisable: values get added, retired and
renamed over the lifetime of an installation. Counting only today's legal
values would silently drop every entity that passed through a value that
no longer exists, so the domain of a field is:

    legal values (canonical sort order)
    + values seen only in the audit trail (first-seen order)

computed once per run and shared read-only by every product worker.

A rename table (old → new) folds historical spellings into their current
category so they do not become extra columns.

Examples:
    >>> registry = CategoryDomainRegistry(StatsRepository(conn), renames={"FIXED?": "FIXED"})
    >>> domain = registry.build()
    >>> domain.header()
    ('DATE', 'NEW', 'ASSIGNED', 'RESOLVED', 'FIXED', 'WONTFIX')
    >>> domain.resolve(CategoryKind.RESOLUTION, "FIXED?")
    'FIXED'

Tags:
    categories, schema, audit-trail, stat-spine
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from statspine.core.logging import get_logger
from statspine.stats.models import Category, CategoryKind
from statspine.stats.repository import StatsRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class CategoryDomain:
    """The ordered set of categories counted in every time series of a run."""

    statuses: tuple[Category, ...]
    resolutions: tuple[Category, ...]
    renames: Mapping[str, str] = field(default_factory=dict)
    _lookup: dict[CategoryKind, frozenset[str]] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        lookup = {
            CategoryKind.STATUS: frozenset(c.name for c in self.statuses),
            CategoryKind.RESOLUTION: frozenset(c.name for c in self.resolutions),
        }
        object.__setattr__(self, "_lookup", lookup)

    @property
    def columns(self) -> tuple[str, ...]:
        """Category column names: statuses, then resolutions."""
        return tuple(c.name for c in self.statuses) + tuple(c.name for c in self.resolutions)

    def header(self) -> tuple[str, ...]:
        return ("DATE", *self.columns)

    def categories(self, kind: CategoryKind) -> tuple[Category, ...]:
        return self.statuses if kind is CategoryKind.STATUS else self.resolutions

    def resolve(self, kind: CategoryKind, value: str | None) -> str | None:
        """Map a raw field value to its column name, or ``None`` if not counted."""
        if not value:
            return None
        value = self.renames.get(value, value)
        return value if value in self._lookup[kind] else None


class CategoryDomainRegistry:
    """Computes category domains from the data store."""

    def __init__(self, repo: StatsRepository, renames: Mapping[str, str] | None = None) -> None:
        self.repo = repo
        self.renames = dict(renames or {})

    def domain_for(self, kind: CategoryKind) -> list[Category]:
        categories: dict[str, Category] = {}

        for value, active in self.repo.legal_values(kind.value):
            name = self.renames.get(value, value)
            if name and name not in categories:
                categories[name] = Category(name=name, kind=kind, active=active)

        for value in self.repo.historical_only_values(kind.value):
            name = self.renames.get(value, value)
            if name and name not in categories:
                categories[name] = Category(name=name, kind=kind, active=False)
                logger.info("historical_category_discovered", field=kind.value, value=name)

        return list(categories.values())

    def build(self) -> CategoryDomain:
        domain = CategoryDomain(
            statuses=tuple(self.domain_for(CategoryKind.STATUS)),
            resolutions=tuple(self.domain_for(CategoryKind.RESOLUTION)),
            renames=self.renames,
        )
        logger.debug("category_domain_built", columns=list(domain.columns))
        return domain


__all__ = ["CategoryDomain", "CategoryDomainRegistry"]
