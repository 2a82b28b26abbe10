"""Core primitives shared by the stats and series packages."""

from statspine.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    QueryCompilationError,
    StatSpineError,
    StorageIOError,
)
from statspine.core.logging import LogContext, configure_logging, get_logger
from statspine.core.temporal import (
    EPOCH,
    day_number,
    delta_time,
    format_day,
    from_day_number,
)

__all__ = [
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "QueryCompilationError",
    "StatSpineError",
    "StorageIOError",
    "LogContext",
    "configure_logging",
    "get_logger",
    "EPOCH",
    "day_number",
    "delta_time",
    "format_day",
    "from_day_number",
]
