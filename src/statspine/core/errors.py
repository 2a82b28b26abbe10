"""
Structured error types for Stat-Spine.

Every failure the daily job can hit is local to the smallest unit of work:
one product file or one saved series. The error types here carry enough
metadata (category, product, series, path) for the job runner to log the
failure, record it in the run report, and move on to the next unit.

Manifesto:
    - **Typed hierarchy:** Storage and query failures are different things
      and are handled at different seams
    - **Rich context:** Errors carry the product/series they belong to
    - **Error chaining:** The original ``OSError`` or driver error is kept
      as ``cause``
    - **No retries:** The job is re-run by an external scheduler every day,
      so nothing here is retryable

Architecture:
    ::

        ┌────────────────────────────────────────────────────────┐
        │                    StatSpineError                       │
        │          (category, context, cause, to_dict)            │
        ├────────────────────────────────────────────────────────┤
        │  StorageIOError        QueryCompilationError           │
        │  (STORAGE)             (VALIDATION)                    │
        │  product-fatal         series skipped                  │
        │                                                        │
        │  ConfigError           DataStoreError                  │
        │  (CONFIG)              (DATABASE)                      │
        └────────────────────────────────────────────────────────┘

    Schema drift is *not* an error: it is a :class:`SchemaDrift` value
    returned by the store. Malformed data lines are recorded as
    :class:`DataIntegrityWarning` records on the parse result.

Examples:
    >>> err = StorageIOError("cannot open data file").with_context(product="Widgets")
    >>> err.context.product
    'Widgets'
    >>> err.to_dict()["category"]
    'STORAGE'

Tags:
    error-handling, exception-hierarchy, error-context, stat-spine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories for classification in logs and run reports."""

    STORAGE = "STORAGE"  # Data directory, time-series files
    DATABASE = "DATABASE"  # Data-store queries, transactions
    VALIDATION = "VALIDATION"  # Saved queries referencing stale data
    CONFIG = "CONFIG"  # Missing or invalid settings
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        product: Product whose time series was being processed
        series_id: Saved series being sampled
        path: File involved in a storage failure
        metadata: Additional key-value pairs
    """

    product: str | None = None
    series_id: int | None = None
    path: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ("product", "series_id", "path"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class StatSpineError(Exception):
    """
    Base exception for all Stat-Spine errors.

    Subclasses set ``default_category``; callers can add context fluently
    with :meth:`with_context` and serialise with :meth:`to_dict`.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> StatSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StorageIOError("write failed").with_context(product="Widgets")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class StorageIOError(StatSpineError):
    """A time-series file or the data directory could not be read or written.

    Fatal for the affected product only.
    """

    default_category = ErrorCategory.STORAGE


class QueryCompilationError(StatSpineError):
    """A saved query references data that no longer exists or is invalid.

    The series is skipped for the day; no data point is written.
    """

    default_category = ErrorCategory.VALIDATION


class ConfigError(StatSpineError):
    """Configuration or command-line input is invalid."""

    default_category = ErrorCategory.CONFIG


class DataStoreError(StatSpineError):
    """A data-store statement or transaction failed."""

    default_category = ErrorCategory.DATABASE


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "StatSpineError",
    "StorageIOError",
    "QueryCompilationError",
    "ConfigError",
    "DataStoreError",
]
