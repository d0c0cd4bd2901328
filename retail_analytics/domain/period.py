"""
Domain: Calendar date ranges.

Rules implemented here:
- A DateRange is inclusive on both ends and measured in whole calendar days.
- A range whose start is after its end is empty; it contains no dates.
- Strict callers turn an empty range into InvalidRangeError.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from .time import parse_timestamp


class InvalidRangeError(ValueError):
    """Raised when a date range is inverted (strict mode) or its bounds cannot be read."""

    def __init__(self, start: Any, end: Any, reason: str = "range end is before range start"):
        self.start = start
        self.end = end
        super().__init__(f"Invalid date range {start!r} .. {end!r}: {reason}")


def _coerce_date(name: str, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_timestamp(value)
    if parsed is None:
        raise InvalidRangeError(value, value, reason=f"{name} is not a readable date")
    return parsed.date()


@dataclass(frozen=True, slots=True)
class DateRange:
    """
    Inclusive calendar range [start, end].

    Bounds given as datetimes or strings are reduced to their calendar date.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", _coerce_date("start", self.start))
        object.__setattr__(self, "end", _coerce_date("end", self.end))

    @classmethod
    def trailing_days(cls, as_of: Any, days: int) -> "DateRange":
        """The `days` calendar days ending at (and including) `as_of`."""

        end = _coerce_date("as_of", as_of)
        return cls(start=end - timedelta(days=days - 1), end=end)

    @property
    def is_empty(self) -> bool:
        return self.start > self.end

    def contains(self, value: date) -> bool:
        if isinstance(value, datetime):
            value = value.date()
        return self.start <= value <= self.end

    def day_count(self) -> int:
        """Number of calendar days in the range (0 when empty)."""

        return max((self.end - self.start).days + 1, 0)

    def require_valid(self) -> "DateRange":
        """Return self, or raise InvalidRangeError when the range is inverted."""

        if self.is_empty:
            raise InvalidRangeError(self.start, self.end)
        return self


def as_date_range(value: Any) -> DateRange:
    """Accept a DateRange or a (start, end) pair."""

    if isinstance(value, DateRange):
        return value
    start, end = value
    return DateRange(start=start, end=end)


__all__ = ["DateRange", "InvalidRangeError", "as_date_range"]
