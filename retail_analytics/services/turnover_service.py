"""
Turnover & effectiveness analyzer.

Three analyses over stock, catalog and sales, all pure functions of their inputs
and an explicit `now`:

A. Turnover per category:
   turnover_rate = units_sold_in_window / stock_units * 100 (0 when stock is 0)
   days_of_stock = round(stock_units / units_sold * window_days), or None ("infinite")
   when either side is 0. Categories below the slow threshold are flagged.

B. Staleness: an item is stale iff on-hand > 0 AND (it never sold, OR its last sale is
   older than `stale_days`). Zero-stock items are never reported.

C. Promotion effectiveness: sales split at the promotion start; lift is based on daily
   averages; severity bands Excellent (>= 50), Good (>= 20), Regular (>= 0), Negative.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from retail_analytics.domain.inventory import StockItem
from retail_analytics.domain.product import Product
from retail_analytics.domain.sale import SaleRecord
from retail_analytics.domain.time import as_utc, ceil_days_between, parse_timestamp, whole_days_between
from retail_analytics.services.comparison_service import ZeroDivisionPolicy, percent_delta
from retail_analytics.services.join_service import join_product_context

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True, slots=True)
class CategoryTurnover:
    category: str
    stock_units: int
    units_sold: int
    stock_value: Decimal
    product_count: int
    turnover_rate: float
    days_of_stock: Optional[int]
    is_slow: bool

    @property
    def is_infinite(self) -> bool:
        """True when the stock would never run out at the current sales pace."""
        return self.days_of_stock is None


@dataclass(frozen=True, slots=True)
class StaleProduct:
    product_code: str
    product_name: Optional[str]
    category: str
    quantity: int
    unit_price: Decimal
    unit_cost: Decimal
    immobilized_value: Decimal
    last_sale_at: Optional[datetime]
    days_without_sale: Optional[int]

    @property
    def never_sold(self) -> bool:
        return self.last_sale_at is None


@dataclass(frozen=True, slots=True)
class StaleAlertSummary:
    total: int
    medium: int
    high: int
    critical: int
    immobilized_value: Decimal


class LiftSeverity(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    REGULAR = "Regular"
    NEGATIVE = "Negative"

    @staticmethod
    def for_lift(lift_percent: float) -> "LiftSeverity":
        if lift_percent >= 50:
            return LiftSeverity.EXCELLENT
        if lift_percent >= 20:
            return LiftSeverity.GOOD
        if lift_percent >= 0:
            return LiftSeverity.REGULAR
        return LiftSeverity.NEGATIVE


@dataclass(frozen=True, slots=True)
class EffectivenessRecord:
    product_code: str
    product_name: str
    category: str
    promo_start: datetime
    quantity_before: int
    quantity_after: int
    revenue_before: Decimal
    revenue_after: Decimal
    daily_average_before: float
    daily_average_after: float
    lift_percent: float
    conversion_share: float
    severity: LiftSeverity
    discount_percent: float
    days_without_sale_before: Optional[int]


def _dated_sales(sales: Iterable[SaleRecord]) -> List[Tuple[datetime, SaleRecord]]:
    dated: List[Tuple[datetime, SaleRecord]] = []
    for sale in sales:
        ts = parse_timestamp(sale.timestamp)
        if ts is not None:
            dated.append((as_utc(ts), sale))
    return dated


def turnover_by_category(
    stock_items: Iterable[StockItem],
    products: Iterable[Product],
    sales: Iterable[SaleRecord],
    now: datetime,
    window_days: int = 30,
    slow_threshold: float = 50.0,
) -> List[CategoryTurnover]:
    """
    Stock turnover per category over the `window_days` days before `now`.

    Returns:
        One CategoryTurnover per category, slowest turnover first (ties by name)
    """
    window_start = as_utc(now) - timedelta(days=window_days)
    window_end = as_utc(now)
    in_window = [sale for ts, sale in _dated_sales(sales) if window_start <= ts <= window_end]

    totals: Dict[str, Dict[str, Decimal]] = {}
    for row in join_product_context(stock_items, products, in_window):
        cat = totals.setdefault(row.category, {"stock": ZERO, "sold": ZERO, "value": ZERO, "count": ZERO})
        cat["stock"] += row.quantity_on_hand
        cat["sold"] += row.units_sold
        cat["value"] += row.stock_value
        cat["count"] += 1

    result: List[CategoryTurnover] = []
    for category, cat in totals.items():
        stock_units = int(cat["stock"])
        units_sold = int(cat["sold"])
        rate = units_sold / stock_units * 100 if stock_units > 0 else 0.0
        days: Optional[int] = None
        if stock_units > 0 and units_sold > 0:
            days = round_half_up(stock_units / units_sold * window_days)
        result.append(CategoryTurnover(
            category=category,
            stock_units=stock_units,
            units_sold=units_sold,
            stock_value=cat["value"],
            product_count=int(cat["count"]),
            turnover_rate=rate,
            days_of_stock=days,
            is_slow=rate < slow_threshold,
        ))
    return sorted(result, key=lambda c: (c.turnover_rate, c.category))


def staleness_report(
    stock_items: Iterable[StockItem],
    products: Iterable[Product],
    sales: Iterable[SaleRecord],
    now: datetime,
    stale_days: int = 30,
) -> List[StaleProduct]:
    """
    Stock items with on-hand quantity and no recent sale, most immobilized value first.

    Only dated sales count towards recency; a product whose sales are all undated is
    treated as never sold.
    """
    cutoff = as_utc(now) - timedelta(days=stale_days)

    last_sale: Dict[str, datetime] = {}
    for ts, sale in _dated_sales(sales):
        for item in sale.items:
            previous = last_sale.get(item.product_code)
            if previous is None or ts > previous:
                last_sale[item.product_code] = ts

    stale: List[StaleProduct] = []
    for row in join_product_context(stock_items, products):
        if row.quantity_on_hand <= 0:
            continue
        last = last_sale.get(row.product_code)
        if last is not None and last >= cutoff:
            continue
        stale.append(StaleProduct(
            product_code=row.product_code,
            product_name=row.product_name,
            category=row.category,
            quantity=row.quantity_on_hand,
            unit_price=row.unit_price,
            unit_cost=row.unit_cost,
            immobilized_value=row.stock_value,
            last_sale_at=last,
            days_without_sale=whole_days_between(last, now) if last is not None else None,
        ))

    stale.sort(key=lambda p: p.immobilized_value, reverse=True)
    logger.debug(
        f"staleness_report found {len(stale)} stale items",
        extra={"stale_items": len(stale), "stale_days": stale_days},
    )
    return stale


def stale_alert_summary(
    report: Sequence[StaleProduct],
    tiers: Tuple[int, int, int] = (30, 60, 90),
) -> StaleAlertSummary:
    """
    Count stale items per alert tier.

    medium: [tiers[0], tiers[1]) days, high: [tiers[1], tiers[2]), critical: >= tiers[2]
    or never sold. Items below tiers[0] days are not counted.
    """
    medium_from, high_from, critical_from = tiers
    medium = high = critical = 0
    value = ZERO
    for product in report:
        days = product.days_without_sale
        if days is None or days >= critical_from:
            critical += 1
        elif days >= high_from:
            high += 1
        elif days >= medium_from:
            medium += 1
        else:
            continue
        value += product.immobilized_value
    return StaleAlertSummary(
        total=medium + high + critical,
        medium=medium,
        high=high,
        critical=critical,
        immobilized_value=value,
    )


def promotion_effectiveness(
    product: Product,
    sales: Iterable[SaleRecord],
    promo_start: datetime,
    now: datetime,
    baseline_days: int = 30,
) -> EffectivenessRecord:
    """
    Before/after comparison of a product's sales around `promo_start`.

    - before: sales strictly before `promo_start`; after: at or after it
    - daily average before = quantity_before / baseline_days
    - daily average after = quantity_after / days since promo start (a started day
      counts as one; 0 while no day has elapsed, including a start exactly at `now`)
    - lift: relative change of the daily averages; 100 when nothing sold before and
      something sold after; 0 when both sides are zero
    - conversion share = quantity_after / (quantity_after + quantity_before)
    """
    start = as_utc(promo_start)
    before: List[Tuple[datetime, SaleRecord]] = []
    after: List[Tuple[datetime, SaleRecord]] = []
    for ts, sale in _dated_sales(sales):
        if not sale.has_product(product.code):
            continue
        (before if ts < start else after).append((ts, sale))

    qty_before = sum(sale.quantity_of(product.code) for _, sale in before)
    qty_after = sum(sale.quantity_of(product.code) for _, sale in after)
    revenue_before = sum((sale.revenue_of(product.code) for _, sale in before), ZERO)
    revenue_after = sum((sale.revenue_of(product.code) for _, sale in after), ZERO)

    promo_days = ceil_days_between(start, now)
    avg_before = qty_before / baseline_days if baseline_days > 0 else 0.0
    avg_after = qty_after / promo_days if promo_days > 0 else 0.0

    if avg_before > 0:
        lift = percent_delta(avg_before, avg_after) or 0.0
    else:
        lift = percent_delta(0, qty_after, ZeroDivisionPolicy.FULL_INCREASE) or 0.0

    total_qty = qty_before + qty_after
    share = qty_after / total_qty if total_qty > 0 else 0.0

    last_before = max((ts for ts, _ in before), default=None)
    days_without = ceil_days_between(last_before, start) if last_before is not None else None

    return EffectivenessRecord(
        product_code=product.code,
        product_name=product.name,
        category=product.category_name,
        promo_start=promo_start,
        quantity_before=qty_before,
        quantity_after=qty_after,
        revenue_before=revenue_before,
        revenue_after=revenue_after,
        daily_average_before=avg_before,
        daily_average_after=avg_after,
        lift_percent=lift,
        conversion_share=share,
        severity=LiftSeverity.for_lift(lift),
        discount_percent=product.discount_percent,
        days_without_sale_before=days_without,
    )


def promotion_report(
    products: Iterable[Product],
    sales: Iterable[SaleRecord],
    now: datetime,
    baseline_days: int = 30,
) -> List[EffectivenessRecord]:
    """
    Effectiveness of every product currently on promotion, best conversion first.

    The promotion start is the product's current promotion period; without any
    history the promotion is taken to start at `now`.
    """
    sales_list = list(sales)
    records = [
        promotion_effectiveness(
            product,
            sales_list,
            product.current_promotion_start() or now,
            now,
            baseline_days,
        )
        for product in products
        if product.on_promotion
    ]
    records.sort(key=lambda r: r.conversion_share, reverse=True)
    return records


__all__ = [
    "CategoryTurnover",
    "EffectivenessRecord",
    "LiftSeverity",
    "StaleAlertSummary",
    "StaleProduct",
    "promotion_effectiveness",
    "promotion_report",
    "round_half_up",
    "stale_alert_summary",
    "staleness_report",
    "turnover_by_category",
]
