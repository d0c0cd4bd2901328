"""
Domain time utilities (pure).

Centralized timestamp parsing for hand-entered business records.

Behavior:
- Parsing is forgiving: an unparsable or missing value yields None, never an error.
- Naive timestamps are read as written; aware timestamps keep their offset.
- Comparisons between naive and aware values go through `as_utc`.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Optional

# Formats the back-office accepts besides ISO-8601 (pt-BR style dates).
FALLBACK_FORMATS = (
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
    "%d/%m/%y",
    "%Y/%m/%d",
)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Convert a raw timestamp value into a datetime.

    Accepts datetime, date (midnight), ISO-8601 strings (a trailing "Z" means UTC)
    and the FALLBACK_FORMATS. Returns None for anything else.

    Examples:
        >>> parse_timestamp("2025-03-01T10:00:00Z")
        datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)

        >>> parse_timestamp("01/03/2025")
        datetime(2025, 3, 1, 0, 0)

        >>> parse_timestamp("not a date") is None
        True
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    iso_text = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso_text)
    except ValueError:
        pass

    for fmt in FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def to_calendar_date(value: Any, tz: Optional[tzinfo] = None) -> Optional[date]:
    """
    Resolve the calendar date a raw timestamp falls on.

    Aware timestamps are converted to `tz` first when one is given.
    """
    ts = parse_timestamp(value)
    if ts is None:
        return None
    if tz is not None and ts.tzinfo is not None:
        ts = ts.astimezone(tz)
    return ts.date()


def as_utc(value: datetime, assume_tz: tzinfo = timezone.utc) -> datetime:
    """Normalize a datetime to aware UTC; naive values are read in `assume_tz`."""

    if value.tzinfo is None or value.utcoffset() is None:
        value = value.replace(tzinfo=assume_tz)
    return value.astimezone(timezone.utc)


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """
    Whole 24-hour days elapsed from `earlier` to `later`:

    days = floor((later - earlier) / 24 hours)
    """

    delta = as_utc(later) - as_utc(earlier)
    return int(delta // timedelta(days=1))


def ceil_days_between(earlier: datetime, later: datetime) -> int:
    """Days from `earlier` to `later`, counting a started day as a whole one."""

    delta = as_utc(later) - as_utc(earlier)
    return math.ceil(delta / timedelta(days=1))


__all__ = [
    "FALLBACK_FORMATS",
    "as_utc",
    "ceil_days_between",
    "parse_timestamp",
    "to_calendar_date",
    "whole_days_between",
]
