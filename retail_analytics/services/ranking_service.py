"""
Ranking & leaderboard service.

Ordering rules:
- Primary key: metric, descending.
- Secondary key: optional tie-break metric, descending.
- Remaining ties keep their input order (stable sort), so unchanged input always
  yields the same order.

Goal rules:
- progress = min(achieved / goal * 100, 100) per tracked metric.
- overall progress = mean of the per-metric values, each capped before averaging.
- Bonus tier: no goal met -> NONE, some met -> HALF, all met -> FULL.
  Rates come from GoalPolicy; bonus value = revenue * rate.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import tzinfo
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

from retail_analytics.config import GoalPolicy
from retail_analytics.domain.bucket import Bucket, Granularity, Number
from retail_analytics.domain.period import DateRange
from retail_analytics.domain.sale import SaleRecord
from retail_analytics.domain.seller import Seller
from retail_analytics.domain.time import to_calendar_date
from retail_analytics.services.bucketing_service import bucketize

E = TypeVar("E")

ZERO = Decimal("0")


class BonusTier(str, Enum):
    NONE = "none"
    HALF = "half"
    FULL = "full"

    def rate(self, policy: GoalPolicy) -> Decimal:
        if self is BonusTier.FULL:
            return policy.full_rate
        if self is BonusTier.HALF:
            return policy.half_rate
        return ZERO


@dataclass(frozen=True, slots=True)
class GoalProgress:
    metric: str
    achieved: Number
    goal: Number
    percent: float

    @property
    def met(self) -> bool:
        return self.achieved >= self.goal


@dataclass(frozen=True, slots=True)
class LeaderboardEntry(Generic[E]):
    """
    One ranked entity.

    Goal fields stay empty for plain rankings and are filled by `apply_goals`.
    """

    entity: E
    metric_value: Number
    rank: int
    progress: Tuple[GoalProgress, ...] = ()
    overall_progress: Optional[float] = None
    bonus_tier: Optional[BonusTier] = None
    bonus_value: Optional[Decimal] = None


@dataclass(frozen=True, slots=True)
class SellerPerformance:
    seller: Seller
    sale_count: int
    revenue: Decimal

    @property
    def ticket_average(self) -> Decimal:
        if self.sale_count == 0:
            return ZERO
        return self.revenue / self.sale_count


@dataclass(frozen=True, slots=True)
class ProductSales:
    product_code: str
    product_name: str
    units: int
    revenue: Decimal


@dataclass(frozen=True, slots=True)
class SeriesSet:
    """Several bucket series sharing one calendar axis (one series per entity)."""

    metric: str
    labels: Tuple[str, ...]
    series: Dict[str, List[Bucket]] = field(default_factory=dict)


def rank(
    entities: Iterable[E],
    metric_fn: Callable[[E], Number],
    tie_break_fn: Optional[Callable[[E], Number]] = None,
) -> List[LeaderboardEntry[E]]:
    """
    Rank entities by `metric_fn` descending.

    Ranks are sequential positions starting at 1; tied entities get consecutive
    ranks in tie-break order, then input order.
    """
    ordered = list(entities)
    # Python's sort is stable with reverse=True, so two passes give metric, then tie-break, then input order.
    if tie_break_fn is not None:
        ordered.sort(key=tie_break_fn, reverse=True)
    ordered.sort(key=metric_fn, reverse=True)
    return [
        LeaderboardEntry(entity=entity, metric_value=metric_fn(entity), rank=position)
        for position, entity in enumerate(ordered, start=1)
    ]


def goal_progress(achieved: Number, goal: Number) -> float:
    """
    Percentage of `goal` reached, capped at 100.

    A non-positive goal counts as reached (100) as soon as anything was achieved.
    """
    if goal <= 0:
        return 100.0 if achieved > 0 else 0.0
    if achieved <= 0:
        return 0.0
    return min(float(achieved) / float(goal) * 100, 100.0)


def bonus_tier(goals_met: int, goals_tracked: int) -> BonusTier:
    if goals_tracked <= 0 or goals_met <= 0:
        return BonusTier.NONE
    if goals_met >= goals_tracked:
        return BonusTier.FULL
    return BonusTier.HALF


def apply_goals(
    entry: LeaderboardEntry[E],
    achieved: Dict[str, Number],
    goals: Dict[str, Number],
    revenue: Decimal,
    policy: GoalPolicy,
) -> LeaderboardEntry[E]:
    """Return `entry` annotated with per-metric progress, overall progress and bonus."""

    progress = tuple(
        GoalProgress(
            metric=name,
            achieved=achieved.get(name, 0),
            goal=goal,
            percent=goal_progress(achieved.get(name, 0), goal),
        )
        for name, goal in goals.items()
    )
    overall = sum(p.percent for p in progress) / len(progress) if progress else 0.0
    tier = bonus_tier(sum(1 for p in progress if p.met), len(progress))
    return replace(
        entry,
        progress=progress,
        overall_progress=overall,
        bonus_tier=tier,
        bonus_value=revenue * tier.rate(policy),
    )


def _in_period(sale: SaleRecord, period: Optional[DateRange], tz: Optional[tzinfo]) -> bool:
    if period is None:
        return True
    day = to_calendar_date(sale.timestamp, tz)
    return day is not None and period.contains(day)


def seller_performance(
    sellers: Iterable[Seller],
    sales: Iterable[SaleRecord],
    period: Optional[DateRange] = None,
    *,
    tz: Optional[tzinfo] = None,
) -> List[SellerPerformance]:
    """
    Sale count and revenue per seller, sellers ordered by code.

    With a `period`, only sales dated inside it count.
    """
    sales_list = [sale for sale in sales if _in_period(sale, period, tz)]
    performance: List[SellerPerformance] = []
    for seller in sorted(sellers, key=lambda s: (s.code, s.seller_id)):
        own = [sale for sale in sales_list if seller.matches(sale)]
        performance.append(SellerPerformance(
            seller=seller,
            sale_count=len(own),
            revenue=sum((sale.total for sale in own), ZERO),
        ))
    return performance


def seller_leaderboard(
    sellers: Iterable[Seller],
    sales: Iterable[SaleRecord],
    policy: GoalPolicy,
    period: Optional[DateRange] = None,
    *,
    tz: Optional[tzinfo] = None,
) -> List[LeaderboardEntry[SellerPerformance]]:
    """
    Rank sellers by revenue (ticket average breaks ties) with goal and bonus annotations.

    Example:
        board = seller_leaderboard(sellers, sales, settings.goal_policy)
        board[0].entity.seller.name, board[0].bonus_tier
    """
    performance = seller_performance(sellers, sales, period, tz=tz)
    goals: Dict[str, Number] = {"sales": policy.sales_goal, "revenue": policy.revenue_goal}
    return [
        apply_goals(
            entry,
            achieved={"sales": entry.entity.sale_count, "revenue": entry.entity.revenue},
            goals=goals,
            revenue=entry.entity.revenue,
            policy=policy,
        )
        for entry in rank(performance, lambda p: p.revenue, lambda p: p.ticket_average)
    ]


def top_products(sales: Iterable[SaleRecord], limit: int = 10) -> List[LeaderboardEntry[ProductSales]]:
    """Best-selling products by units, revenue breaking ties; first appearance order otherwise."""

    totals: Dict[str, ProductSales] = {}
    for sale in sales:
        for item in sale.items:
            current = totals.get(item.product_code)
            if current is None:
                current = ProductSales(
                    product_code=item.product_code,
                    product_name=item.product_name or item.product_code,
                    units=0,
                    revenue=ZERO,
                )
            totals[item.product_code] = replace(
                current,
                units=current.units + item.quantity,
                revenue=current.revenue + item.subtotal,
            )
    return rank(totals.values(), lambda p: p.units, lambda p: p.revenue)[:limit]


def seller_revenue_series(
    sellers: Iterable[Seller],
    sales: Sequence[SaleRecord],
    range_start: Any,
    range_end: Any,
    granularity: Granularity = Granularity.MONTH,
    *,
    tz: Optional[tzinfo] = None,
) -> SeriesSet:
    """
    Revenue per seller per calendar unit, every series on the same complete axis.

    Series are keyed by seller name. Sellers sharing a name are keyed
    "name (code)" so each keeps its own series.
    """

    date_range = DateRange(start=range_start, end=range_end)
    ordered = sorted(sellers, key=lambda s: (s.code, s.seller_id))
    name_counts = Counter(s.name for s in ordered)
    series: Dict[str, List[Bucket]] = {}
    for seller in ordered:
        key = seller.name if name_counts[seller.name] == 1 else f"{seller.name} ({seller.code})"
        series[key] = bucketize(
            [sale for sale in sales if seller.matches(sale)],
            lambda sale: sale.timestamp,
            date_range.start,
            date_range.end,
            granularity,
            metrics={"revenue": lambda sale: sale.total},
            tz=tz,
        )

    labels: Tuple[str, ...] = ()
    if series:
        labels = tuple(b.label for b in next(iter(series.values())))
    return SeriesSet(metric="revenue", labels=labels, series=series)


__all__ = [
    "BonusTier",
    "GoalProgress",
    "LeaderboardEntry",
    "ProductSales",
    "SellerPerformance",
    "SeriesSet",
    "apply_goals",
    "bonus_tier",
    "goal_progress",
    "rank",
    "seller_leaderboard",
    "seller_performance",
    "seller_revenue_series",
    "top_products",
]
