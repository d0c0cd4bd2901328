"""
Period comparison service.

Computes the same metrics over two date ranges independently and the percentage
delta between them. Periods are inclusive calendar ranges; they may overlap and
may come in any order (period2 is not assumed to be later).

Zero-division policy is an explicit parameter, chosen per metric:
- ZERO: a zero baseline yields 0 (default for every comparator metric).
- FULL_INCREASE: a zero baseline yields 100 when the second value is positive,
  -100 when negative, 0 when also zero (the promotion lift convention).
- UNDEFINED: a zero baseline yields 0 when the second value is also zero, else None.

No policy ever surfaces NaN or Infinity, and a period compared with itself always
yields 0 for every metric.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from retail_analytics.domain.bucket import Number
from retail_analytics.domain.period import DateRange, as_date_range
from retail_analytics.domain.sale import SaleRecord
from retail_analytics.domain.time import to_calendar_date

R = TypeVar("R")

ZERO = Decimal("0")


class ZeroDivisionPolicy(str, Enum):
    ZERO = "zero"
    FULL_INCREASE = "full_increase"
    UNDEFINED = "undefined"


def percent_delta(
    baseline: Number,
    current: Number,
    policy: ZeroDivisionPolicy = ZeroDivisionPolicy.ZERO,
) -> Optional[float]:
    """
    Percentage change from `baseline` to `current`.

    Examples:
        percent_delta(100, 150)                                   # 50.0
        percent_delta(0, 3)                                       # 0.0
        percent_delta(0, 3, ZeroDivisionPolicy.FULL_INCREASE)     # 100.0
        percent_delta(0, 3, ZeroDivisionPolicy.UNDEFINED)         # None
    """
    if baseline == 0:
        if current == 0:
            return 0.0
        if policy is ZeroDivisionPolicy.FULL_INCREASE:
            return 100.0 if current > 0 else -100.0
        if policy is ZeroDivisionPolicy.UNDEFINED:
            return None
        return 0.0
    return (float(current) - float(baseline)) / float(baseline) * 100


@dataclass(frozen=True, slots=True)
class MetricDelta:
    name: str
    first: Number
    second: Number
    delta_percent: Optional[float]
    policy: ZeroDivisionPolicy


@dataclass(frozen=True, slots=True)
class ComparisonResult:
    """Two independent metric snapshots and the delta of every metric from period1 to period2."""

    period1: DateRange
    period2: DateRange
    snapshot1: Mapping[str, Number]
    snapshot2: Mapping[str, Number]
    deltas: Mapping[str, MetricDelta]

    def delta(self, name: str) -> Optional[float]:
        return self.deltas[name].delta_percent


def _records_in(
    records: Sequence[R],
    period: DateRange,
    extract_timestamp: Callable[[R], Any],
    tz: Optional[tzinfo],
) -> List[R]:
    kept: List[R] = []
    for record in records:
        day = to_calendar_date(extract_timestamp(record), tz)
        if day is not None and period.contains(day):
            kept.append(record)
    return kept


def _timestamp_attr(record: Any) -> Any:
    return getattr(record, "timestamp", None)


def compare(
    records: Iterable[R],
    period1: Any,
    period2: Any,
    metrics_fn: Callable[[List[R]], Mapping[str, Number]],
    *,
    extract_timestamp: Optional[Callable[[R], Any]] = None,
    policies: Optional[Mapping[str, ZeroDivisionPolicy]] = None,
    default_policy: ZeroDivisionPolicy = ZeroDivisionPolicy.ZERO,
    strict: bool = False,
    tz: Optional[tzinfo] = None,
) -> ComparisonResult:
    """
    Compare `metrics_fn` over two periods.

    Args:
        records: Timestamped records (sales by default)
        period1: Baseline DateRange or (start, end) pair
        period2: Compared DateRange or (start, end) pair
        metrics_fn: Computes named metrics from the records of one period
        extract_timestamp: Timestamp accessor (defaults to `record.timestamp`)
        policies: Zero-division policy per metric name
        default_policy: Policy for metrics missing from `policies`
        strict: Raise InvalidRangeError for an inverted period instead of treating it as empty

    Example:
        result = compare(sales, (date(2025, 1, 1), date(2025, 1, 31)),
                         (date(2025, 2, 1), date(2025, 2, 28)), sales_snapshot)
        result.delta("revenue")
    """
    first = as_date_range(period1)
    second = as_date_range(period2)
    if strict:
        first.require_valid()
        second.require_valid()

    accessor = extract_timestamp or _timestamp_attr
    pool = list(records)
    snapshot1 = dict(metrics_fn(_records_in(pool, first, accessor, tz)))
    snapshot2 = dict(metrics_fn(_records_in(pool, second, accessor, tz)))

    chosen = dict(policies or {})
    deltas: Dict[str, MetricDelta] = {}
    for name in list(snapshot1) + [n for n in snapshot2 if n not in snapshot1]:
        a = snapshot1.get(name, 0)
        b = snapshot2.get(name, 0)
        policy = chosen.get(name, default_policy)
        deltas[name] = MetricDelta(
            name=name,
            first=a,
            second=b,
            delta_percent=percent_delta(a, b, policy),
            policy=policy,
        )

    return ComparisonResult(
        period1=first,
        period2=second,
        snapshot1=snapshot1,
        snapshot2=snapshot2,
        deltas=deltas,
    )


def sales_snapshot(sales: Sequence[SaleRecord]) -> Dict[str, Number]:
    """Sale count, revenue, ticket average and units sold of a set of sales."""

    count = len(sales)
    revenue = sum((sale.total for sale in sales), ZERO)
    return {
        "sale_count": count,
        "revenue": revenue,
        "ticket_average": revenue / count if count else ZERO,
        "units_sold": sum(sale.units for sale in sales),
    }


__all__ = [
    "ComparisonResult",
    "MetricDelta",
    "ZeroDivisionPolicy",
    "compare",
    "percent_delta",
    "sales_snapshot",
]
