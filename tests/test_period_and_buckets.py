"""
Tests for `retail_analytics/domain/period.py` and `retail_analytics/domain/bucket.py`.

Covers contract rules:
- DateRange is inclusive and measured in calendar days; bounds are coerced to dates.
- An inverted range is empty; strict callers get InvalidRangeError.
- Unreadable bounds raise InvalidRangeError (a ValueError).
- Month units roll over year boundaries; labels are ISO.
- Bucket metric sums cannot be changed after construction.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

from retail_analytics.domain.bucket import Bucket, Granularity
from retail_analytics.domain.period import DateRange, InvalidRangeError, as_date_range


def test_date_range_coerces_datetimes_and_strings() -> None:
    """Verify datetime and string bounds become calendar dates."""

    r = DateRange(start=datetime(2025, 3, 1, 18, 30), end="2025-03-05")

    assert r.start == date(2025, 3, 1)
    assert r.end == date(2025, 3, 5)
    assert r.day_count() == 5


def test_date_range_is_inclusive() -> None:
    """Verify both bounds belong to the range."""

    r = DateRange(start=date(2025, 3, 1), end=date(2025, 3, 5))

    assert r.contains(date(2025, 3, 1))
    assert r.contains(datetime(2025, 3, 5, 23, 59))
    assert not r.contains(date(2025, 3, 6))


def test_inverted_range_is_empty() -> None:
    """Verify an inverted range contains nothing and counts zero days."""

    r = DateRange(start=date(2025, 3, 5), end=date(2025, 3, 1))

    assert r.is_empty
    assert r.day_count() == 0
    assert not r.contains(date(2025, 3, 3))


def test_require_valid_raises_for_inverted_range() -> None:
    """Verify strict validation raises InvalidRangeError, a ValueError."""

    r = DateRange(start=date(2025, 3, 5), end=date(2025, 3, 1))

    with pytest.raises(InvalidRangeError):
        r.require_valid()
    with pytest.raises(ValueError):
        r.require_valid()


def test_unreadable_bound_raises() -> None:
    """Verify a bound that is not a date raises InvalidRangeError."""

    with pytest.raises(InvalidRangeError):
        DateRange(start="yesterday", end=date(2025, 3, 1))


def test_trailing_days_ends_on_as_of() -> None:
    """Verify trailing_days covers exactly `days` calendar days ending at as_of."""

    r = DateRange.trailing_days(datetime(2025, 3, 31, 12), 30)

    assert r.start == date(2025, 3, 2)
    assert r.end == date(2025, 3, 31)
    assert r.day_count() == 30


def test_as_date_range_accepts_pairs() -> None:
    """Verify (start, end) tuples and ranges are both accepted."""

    r = DateRange(start=date(2025, 1, 1), end=date(2025, 1, 31))

    assert as_date_range(r) is r
    assert as_date_range((date(2025, 1, 1), date(2025, 1, 31))) == r


@pytest.mark.parametrize(
    "granularity, start, expected_next, expected_label",
    [
        (Granularity.DAY, date(2025, 2, 28), date(2025, 3, 1), "2025-02-28"),
        (Granularity.MONTH, date(2025, 2, 1), date(2025, 3, 1), "2025-02"),
        (Granularity.MONTH, date(2024, 12, 1), date(2025, 1, 1), "2024-12"),
    ],
)
def test_granularity_next_unit_and_label(
    granularity: Granularity, start: date, expected_next: date, expected_label: str
) -> None:
    """Verify unit stepping and ISO labels, including the year rollover."""

    assert granularity.next_unit(start) == expected_next
    assert granularity.label(start) == expected_label


def test_month_unit_start_is_first_day() -> None:
    """Verify a month bucket is identified by the first day of the month."""

    assert Granularity.MONTH.unit_start(date(2025, 3, 17)) == date(2025, 3, 1)
    assert Granularity.DAY.unit_start(date(2025, 3, 17)) == date(2025, 3, 17)


def test_bucket_metric_defaults_to_zero() -> None:
    """Verify an empty bucket reports zero for any metric."""

    bucket = Bucket(start=date(2025, 3, 1), granularity=Granularity.DAY)

    assert bucket.is_empty
    assert bucket.metric("revenue") == 0
    assert bucket.label == "2025-03-01"


def test_bucket_sums_are_read_only() -> None:
    """Verify neither callers nor the source dict can change a built bucket."""

    source = {"revenue": 10}
    bucket = Bucket(start=date(2025, 3, 1), granularity=Granularity.DAY, entries=1, sums=source)

    with pytest.raises(TypeError):
        bucket.sums["revenue"] = 99
    source["revenue"] = 99

    assert bucket.metric("revenue") == 10
    assert bucket == Bucket(start=date(2025, 3, 1), granularity=Granularity.DAY, entries=1, sums={"revenue": 10})
