"""
Day-number primitives for daily statistics.

All date arithmetic in the stats pipeline is done on integer *day numbers*
(days since 1970-01-01). Audit timestamps, entity creation timestamps and
the time-series DATE column are converted once at the boundary and never
compared as strings.

Manifesto:
    Replaying years of history one day at a time means millions of
    "is this change on or after that day" comparisons. Integers make those
    comparisons cheap and unambiguous:

    - **One epoch:** 1970-01-01 is day 0, matching ``int(time() / 86400)``
    - **No timezones in the counts:** a timestamp belongs to the calendar
      day written in it
    - **Explicit formatting:** ``format_day()`` is the only producer of the
      ``YYYYMMDD`` DATE column

Examples:
    >>> day_number(date(1970, 1, 2))
    1
    >>> format_day(day_number("2004-08-14 12:30:00"))
    '20040814'
    >>> delta_time(3725)
    '01:02:05'

Tags:
    temporal, day-number, date-handling, stat-spine
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

EPOCH = date(1970, 1, 1)


def day_number(value: date | datetime | str) -> int:
    """Convert a date, datetime or ISO date/timestamp string to a day number.

    Strings may be ``YYYY-MM-DD`` or ``YYYY-MM-DD HH:MM:SS`` (``T`` separator
    also accepted); only the date part is significant.
    """
    if isinstance(value, str):
        value = date.fromisoformat(value.strip()[:10])
    elif isinstance(value, datetime):
        value = value.date()
    return value.toordinal() - EPOCH.toordinal()


def from_day_number(day: int) -> date:
    """Inverse of :func:`day_number`."""
    return EPOCH + timedelta(days=day)


def format_day(day: int) -> str:
    """Render a day number as the 8-digit ``YYYYMMDD`` DATE column."""
    return from_day_number(day).strftime("%Y%m%d")


def epoch_day_now(now: datetime | None = None) -> int:
    """Days since epoch for *now* (UTC), as used by series scheduling."""
    now = now or datetime.now(UTC)
    return int(now.timestamp() // 86400)


def delta_time(seconds: float) -> str:
    """Format an elapsed duration as ``HH:MM:SS``."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


__all__ = [
    "EPOCH",
    "day_number",
    "from_day_number",
    "format_day",
    "epoch_day_now",
    "delta_time",
]
