"""
Tests for `retail_analytics/services/bucketing_service.py`.

Covers contract rules:
- Output is gap-free: one bucket per calendar unit, ascending, zero where empty.
- Undated and out-of-range records are skipped, never fatal.
- An inverted range yields [] (InvalidRangeError in strict mode).
- Month buckets roll over year boundaries.
- Same input, same output.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from retail_analytics.domain.bucket import Granularity
from retail_analytics.domain.period import DateRange, InvalidRangeError
from retail_analytics.services.bucketing_service import (
    bucketize,
    count_units,
    iter_unit_starts,
    sales_evolution,
)


def _ts(day: int, hour: int = 10) -> datetime:
    return datetime(2025, 3, day, hour, 0)


def test_ten_sales_on_three_days_fill_five_day_window(make_sale) -> None:
    """Verify 10 sales over 3 of 5 days give 5 buckets, 2 of them empty."""

    days = [1, 1, 1, 2, 2, 2, 2, 4, 4, 4]
    sales = [make_sale(_ts(d)) for d in days]

    buckets = sales_evolution(sales, date(2025, 3, 1), date(2025, 3, 5))

    assert [b.label for b in buckets] == [
        "2025-03-01",
        "2025-03-02",
        "2025-03-03",
        "2025-03-04",
        "2025-03-05",
    ]
    assert [b.entries for b in buckets] == [3, 4, 0, 3, 0]
    assert sum(1 for b in buckets if b.is_empty) == 2
    assert sum(b.entries for b in buckets) == 10


def test_sales_evolution_sums_revenue_and_units(make_sale) -> None:
    """Verify per-bucket revenue and units are sums of the sales placed there."""

    sales = [
        make_sale(_ts(1), lines=[("P1", 2, "10"), ("P2", 1, "5.50")]),
        make_sale(_ts(1), lines=[("P1", 1, "10")]),
    ]

    (bucket,) = sales_evolution(sales, date(2025, 3, 1), date(2025, 3, 1))

    assert bucket.metric("revenue") == Decimal("35.50")
    assert bucket.metric("units") == 4


def test_undated_and_out_of_range_records_are_skipped(make_sale) -> None:
    """Verify missing timestamps and records outside the range are ignored."""

    sales = [
        make_sale(None),
        make_sale("garbage"),
        make_sale(_ts(10)),
        make_sale(_ts(2)),
    ]

    buckets = sales_evolution(sales, date(2025, 3, 1), date(2025, 3, 3))

    assert [b.entries for b in buckets] == [0, 1, 0]


def test_range_bounds_are_inclusive(make_sale) -> None:
    """Verify records on the first and last day are counted."""

    sales = [make_sale(datetime(2025, 3, 1, 0, 0)), make_sale(datetime(2025, 3, 3, 23, 59, 59))]

    buckets = sales_evolution(sales, date(2025, 3, 1), date(2025, 3, 3))

    assert [b.entries for b in buckets] == [1, 0, 1]


def test_inverted_range_returns_empty_list(make_sale) -> None:
    """Verify an inverted range is empty in lenient mode."""

    assert sales_evolution([make_sale(_ts(2))], date(2025, 3, 5), date(2025, 3, 1)) == []


def test_inverted_range_raises_in_strict_mode() -> None:
    """Verify strict mode raises InvalidRangeError for an inverted range."""

    with pytest.raises(InvalidRangeError):
        bucketize([], lambda r: r, date(2025, 3, 5), date(2025, 3, 1), strict=True)


def test_month_buckets_cross_year_boundary(make_sale) -> None:
    """Verify month buckets span Nov..Feb with partial first and last months."""

    sales = [make_sale(datetime(2024, 12, 24)), make_sale(datetime(2025, 2, 2))]

    buckets = sales_evolution(sales, date(2024, 11, 15), date(2025, 2, 3), Granularity.MONTH)

    assert [b.label for b in buckets] == ["2024-11", "2024-12", "2025-01", "2025-02"]
    assert [b.entries for b in buckets] == [0, 1, 0, 1]


def test_aware_timestamps_use_requested_timezone(make_sale) -> None:
    """Verify a sale at 01:00 UTC falls on the previous day in UTC-3."""

    brt = timezone(timedelta(hours=-3))
    sale = make_sale(datetime(2025, 3, 2, 1, 0, tzinfo=timezone.utc))

    utc_buckets = sales_evolution([sale], date(2025, 3, 1), date(2025, 3, 2))
    brt_buckets = sales_evolution([sale], date(2025, 3, 1), date(2025, 3, 2), tz=brt)

    assert [b.entries for b in utc_buckets] == [0, 1]
    assert [b.entries for b in brt_buckets] == [1, 0]


def test_bucketize_is_idempotent(make_sale) -> None:
    """Verify two calls over the same input produce equal output."""

    sales = [make_sale(_ts(d)) for d in (1, 3, 3)]

    first = sales_evolution(sales, date(2025, 3, 1), date(2025, 3, 4))
    second = sales_evolution(sales, date(2025, 3, 1), date(2025, 3, 4))

    assert first == second


def test_bucketize_custom_metrics_on_arbitrary_records() -> None:
    """Verify any record type works through the timestamp accessor."""

    records = [{"at": "2025-03-01", "n": 2}, {"at": "02/03/2025", "n": 5}, {"at": None, "n": 9}]

    buckets = bucketize(
        records,
        lambda r: r["at"],
        date(2025, 3, 1),
        date(2025, 3, 2),
        metrics={"n": lambda r: r["n"]},
    )

    assert [b.metric("n") for b in buckets] == [2, 5]


@pytest.mark.parametrize(
    "start, end, granularity, expected",
    [
        (date(2025, 3, 1), date(2025, 3, 5), Granularity.DAY, 5),
        (date(2025, 3, 5), date(2025, 3, 1), Granularity.DAY, 0),
        (date(2024, 11, 15), date(2025, 2, 3), Granularity.MONTH, 4),
        (date(2025, 1, 1), date(2025, 1, 31), Granularity.MONTH, 1),
    ],
)
def test_count_units(start: date, end: date, granularity: Granularity, expected: int) -> None:
    """Verify the unit count matches the generated bucket sequence."""

    assert count_units(start, end, granularity) == expected
    assert len(list(iter_unit_starts(DateRange(start=start, end=end), granularity))) == expected
