"""
Temporal bucketing service.

Groups timestamped records into calendar buckets (day or month) over a requested
range. The bucket sequence is generated first, so the output is always complete:
one bucket per calendar unit, ascending, zero-valued where no record landed.

Forgiving input handling:
- Records with a missing or unparsable timestamp are skipped silently.
- Records outside [range_start, range_end] are skipped.
- An inverted range yields an empty sequence (or InvalidRangeError in strict mode).
"""

from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, TypeVar

from retail_analytics.domain.bucket import Bucket, Granularity, Number
from retail_analytics.domain.period import DateRange
from retail_analytics.domain.sale import SaleRecord
from retail_analytics.domain.time import to_calendar_date

logger = logging.getLogger(__name__)

R = TypeVar("R")


class _BucketAccumulator:
    __slots__ = ("entries", "sums")

    def __init__(self, metric_names: Iterable[str]) -> None:
        self.entries = 0
        self.sums: Dict[str, Number] = {name: 0 for name in metric_names}


def iter_unit_starts(date_range: DateRange, granularity: Granularity) -> Iterator[date]:
    """Yield the first date of every calendar unit touched by `date_range`, ascending."""

    if date_range.is_empty:
        return
    current = granularity.unit_start(date_range.start)
    last = granularity.unit_start(date_range.end)
    while current <= last:
        yield current
        current = granularity.next_unit(current)


def count_units(range_start: Any, range_end: Any, granularity: Granularity = Granularity.DAY) -> int:
    """Number of calendar units between the bounds, inclusive (0 for an inverted range)."""

    date_range = DateRange(start=range_start, end=range_end)
    if date_range.is_empty:
        return 0
    if granularity is Granularity.MONTH:
        start, end = date_range.start, date_range.end
        return (end.year - start.year) * 12 + (end.month - start.month) + 1
    return date_range.day_count()


def bucketize(
    records: Iterable[R],
    extract_timestamp: Callable[[R], Any],
    range_start: Any,
    range_end: Any,
    granularity: Granularity = Granularity.DAY,
    metrics: Optional[Mapping[str, Callable[[R], Number]]] = None,
    *,
    strict: bool = False,
    tz: Optional[tzinfo] = None,
) -> List[Bucket]:
    """
    Group records into a gap-free, ascending sequence of calendar buckets.

    Args:
        records: Records to place (never mutated)
        extract_timestamp: Returns the record's timestamp (datetime, date, string or None)
        range_start: First day of the range (inclusive)
        range_end: Last day of the range (inclusive)
        granularity: Granularity.DAY or Granularity.MONTH
        metrics: Named functions whose values are summed per bucket
        strict: Raise InvalidRangeError instead of returning [] for an inverted range
        tz: Timezone used to take the calendar date of aware timestamps

    Returns:
        One Bucket per calendar unit in the range

    Example:
        buckets = bucketize(
            sales,
            lambda s: s.timestamp,
            date(2025, 3, 1),
            date(2025, 3, 5),
            metrics={"revenue": lambda s: s.total},
        )
        # 5 buckets, "2025-03-01" .. "2025-03-05"
    """
    date_range = DateRange(start=range_start, end=range_end)
    if date_range.is_empty:
        if strict:
            date_range.require_valid()
        return []

    metric_fns = dict(metrics or {})
    accumulators: Dict[date, _BucketAccumulator] = {
        unit: _BucketAccumulator(metric_fns) for unit in iter_unit_starts(date_range, granularity)
    }

    undated = 0
    out_of_range = 0
    for record in records:
        day = to_calendar_date(extract_timestamp(record), tz)
        if day is None:
            undated += 1
            continue
        if not date_range.contains(day):
            out_of_range += 1
            continue

        acc = accumulators[granularity.unit_start(day)]
        acc.entries += 1
        for name, fn in metric_fns.items():
            acc.sums[name] += fn(record)

    if undated or out_of_range:
        logger.debug(
            f"bucketize skipped {undated} undated and {out_of_range} out-of-range records",
            extra={"undated": undated, "out_of_range": out_of_range},
        )

    return [
        Bucket(start=unit, granularity=granularity, entries=acc.entries, sums=acc.sums)
        for unit, acc in accumulators.items()
    ]


def sales_evolution(
    sales: Iterable[SaleRecord],
    range_start: Any,
    range_end: Any,
    granularity: Granularity = Granularity.DAY,
    *,
    tz: Optional[tzinfo] = None,
) -> List[Bucket]:
    """
    Sale count, revenue and units sold per calendar unit.

    Each bucket's `entries` is the number of sales; `sums` holds "revenue" and "units".
    """
    return bucketize(
        sales,
        lambda sale: sale.timestamp,
        range_start,
        range_end,
        granularity,
        metrics={
            "revenue": lambda sale: sale.total,
            "units": lambda sale: sale.units,
        },
        tz=tz,
    )


__all__ = [
    "bucketize",
    "count_units",
    "iter_unit_starts",
    "sales_evolution",
]
