"""
Chart data formatter.

Flattens any aggregate produced by the services into a list of flat rows for the
chart layer:
- keys are camelCase strings; values are numbers, strings, booleans or None
- Decimal becomes float, dates become ISO strings, enums their value
- days of stock without a finite value is rendered as "infinite"

A sequence of aggregates yields the concatenation of their rows. Unsupported
types yield [] and a warning. No business logic lives here.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from functools import singledispatch
from typing import Any, Dict, List

from retail_analytics.domain.bucket import Bucket
from retail_analytics.services.accounts_service import (
    CounterpartyDelinquency,
    InstallmentSummary,
    OverdueEntry,
)
from retail_analytics.services.category_service import CategoryMargin, CategorySales
from retail_analytics.services.comparison_service import ComparisonResult
from retail_analytics.services.ledger_service import LedgerRow
from retail_analytics.services.ranking_service import (
    LeaderboardEntry,
    ProductSales,
    SellerPerformance,
    SeriesSet,
)
from retail_analytics.services.turnover_service import (
    CategoryTurnover,
    EffectivenessRecord,
    StaleAlertSummary,
    StaleProduct,
)

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

INFINITE = "infinite"


def _value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _metric_row(sums: Dict[str, Any]) -> Row:
    return {_camel(name): _value(total) for name, total in sums.items()}


def to_chart_rows(aggregate: Any) -> List[Row]:
    """
    Convert an aggregate (or a sequence of aggregates) into chart rows.

    Examples:
        to_chart_rows(sales_evolution(sales, start, end))
        # [{"label": "2025-03-01", "entries": 2, "revenue": 150.0, "units": 3}, ...]

        to_chart_rows(None)   # []
    """
    if aggregate is None:
        return []
    if isinstance(aggregate, (list, tuple)):
        rows: List[Row] = []
        for item in aggregate:
            rows.extend(to_chart_rows(item))
        return rows
    return _rows_for(aggregate)


@singledispatch
def _rows_for(aggregate: Any) -> List[Row]:
    logger.warning(
        f"No chart row mapping for {type(aggregate).__name__}",
        extra={"aggregate_type": type(aggregate).__name__},
    )
    return []


@_rows_for.register(Bucket)
def _bucket_rows(bucket: Bucket) -> List[Row]:
    row: Row = {"label": bucket.label, "entries": bucket.entries}
    row.update(_metric_row(dict(bucket.sums)))
    return [row]


@_rows_for.register(LedgerRow)
def _ledger_rows(ledger_row: LedgerRow) -> List[Row]:
    row = _bucket_rows(ledger_row.bucket)[0]
    row["delta"] = _value(ledger_row.delta)
    row["runningTotal"] = _value(ledger_row.running_total)
    return [row]


@_rows_for.register(SellerPerformance)
def _seller_rows(performance: SellerPerformance) -> List[Row]:
    return [{
        "sellerId": performance.seller.seller_id,
        "sellerCode": performance.seller.code,
        "sellerName": performance.seller.name,
        "saleCount": performance.sale_count,
        "revenue": _value(performance.revenue),
        "ticketAverage": _value(performance.ticket_average),
    }]


@_rows_for.register(ProductSales)
def _product_sales_rows(product: ProductSales) -> List[Row]:
    return [{
        "productCode": product.product_code,
        "productName": product.product_name,
        "units": product.units,
        "revenue": _value(product.revenue),
    }]


@_rows_for.register(LeaderboardEntry)
def _leaderboard_rows(entry: LeaderboardEntry) -> List[Row]:
    entity_rows = _rows_for(entry.entity)
    row: Row = dict(entity_rows[0]) if entity_rows else {}
    row["rank"] = entry.rank
    row["metricValue"] = _value(entry.metric_value)
    for progress in entry.progress:
        row[_camel(f"{progress.metric}_progress")] = progress.percent
    if entry.overall_progress is not None:
        row["overallProgress"] = entry.overall_progress
    if entry.bonus_tier is not None:
        row["bonusTier"] = _value(entry.bonus_tier)
        row["bonusValue"] = _value(entry.bonus_value)
    return [row]


@_rows_for.register(SeriesSet)
def _series_rows(series_set: SeriesSet) -> List[Row]:
    rows: List[Row] = [{"label": label} for label in series_set.labels]
    for name, buckets in series_set.series.items():
        for row, bucket in zip(rows, buckets):
            row[name] = _value(bucket.metric(series_set.metric))
    return rows


@_rows_for.register(ComparisonResult)
def _comparison_rows(result: ComparisonResult) -> List[Row]:
    return [
        {
            "metric": _camel(delta.name),
            "period1": _value(delta.first),
            "period2": _value(delta.second),
            "deltaPercent": delta.delta_percent,
        }
        for delta in result.deltas.values()
    ]


@_rows_for.register(CategoryTurnover)
def _turnover_rows(turnover: CategoryTurnover) -> List[Row]:
    return [{
        "category": turnover.category,
        "stockUnits": turnover.stock_units,
        "unitsSold": turnover.units_sold,
        "stockValue": _value(turnover.stock_value),
        "productCount": turnover.product_count,
        "turnoverRate": turnover.turnover_rate,
        "daysOfStock": INFINITE if turnover.days_of_stock is None else turnover.days_of_stock,
        "isSlow": turnover.is_slow,
    }]


@_rows_for.register(StaleProduct)
def _stale_rows(product: StaleProduct) -> List[Row]:
    return [{
        "productCode": product.product_code,
        "productName": product.product_name,
        "category": product.category,
        "quantity": product.quantity,
        "unitPrice": _value(product.unit_price),
        "immobilizedValue": _value(product.immobilized_value),
        "lastSaleAt": product.last_sale_at.isoformat() if product.last_sale_at else None,
        "daysWithoutSale": product.days_without_sale,
    }]


@_rows_for.register(StaleAlertSummary)
def _stale_summary_rows(summary: StaleAlertSummary) -> List[Row]:
    return [{
        "total": summary.total,
        "medium": summary.medium,
        "high": summary.high,
        "critical": summary.critical,
        "immobilizedValue": _value(summary.immobilized_value),
    }]


@_rows_for.register(EffectivenessRecord)
def _effectiveness_rows(record: EffectivenessRecord) -> List[Row]:
    return [{
        "productCode": record.product_code,
        "productName": record.product_name,
        "category": record.category,
        "promoStart": record.promo_start.isoformat(),
        "quantityBefore": record.quantity_before,
        "quantityAfter": record.quantity_after,
        "revenueBefore": _value(record.revenue_before),
        "revenueAfter": _value(record.revenue_after),
        "dailyAverageBefore": record.daily_average_before,
        "dailyAverageAfter": record.daily_average_after,
        "liftPercent": record.lift_percent,
        "conversionShare": record.conversion_share,
        "severity": _value(record.severity),
        "discountPercent": record.discount_percent,
    }]


@_rows_for.register(CategorySales)
def _category_sales_rows(sales: CategorySales) -> List[Row]:
    return [{
        "category": sales.category,
        "units": sales.units,
        "revenue": _value(sales.revenue),
        "revenueShare": sales.revenue_share,
    }]


@_rows_for.register(CategoryMargin)
def _margin_rows(margin: CategoryMargin) -> List[Row]:
    return [{
        "category": margin.category,
        "stockCostValue": _value(margin.stock_cost_value),
        "stockSaleValue": _value(margin.stock_sale_value),
        "marginPercent": margin.margin_percent,
        "estimatedProfit": _value(margin.estimated_profit),
        "unitsSold": margin.units_sold,
        "revenue": _value(margin.revenue),
    }]


@_rows_for.register(OverdueEntry)
def _overdue_rows(entry: OverdueEntry) -> List[Row]:
    return [{
        "documentNumber": entry.account.display_number,
        "kind": _value(entry.account.kind),
        "counterparty": entry.counterparty,
        "dueDate": _value(entry.due_date),
        "daysOverdue": entry.days_overdue,
        "amount": _value(entry.amount),
        "severity": _value(entry.severity),
    }]


@_rows_for.register(CounterpartyDelinquency)
def _delinquency_rows(delinquency: CounterpartyDelinquency) -> List[Row]:
    return [{
        "counterparty": delinquency.counterparty,
        "total": _value(delinquency.total),
        "count": delinquency.count,
        "averageDaysOverdue": delinquency.average_days_overdue,
    }]


@_rows_for.register(InstallmentSummary)
def _installment_rows(summary: InstallmentSummary) -> List[Row]:
    return [{
        "total": summary.total,
        "settled": summary.settled,
        "upcoming": summary.upcoming,
        "adherenceRate": summary.adherence_rate,
        "upcomingValue": _value(summary.upcoming_value),
    }]


__all__ = ["INFINITE", "to_chart_rows"]
