"""
Tests for `retail_analytics/services/chart_rows_service.py`.

Covers contract rules:
- Every aggregate maps to flat camelCase rows of plain values.
- Decimal becomes float; an infinite days-of-stock becomes "infinite".
- Sequences flatten; None yields []; unsupported types yield [] and a warning.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from retail_analytics.config import GoalPolicy
from retail_analytics.domain.seller import Seller
from retail_analytics.services.bucketing_service import sales_evolution
from retail_analytics.services.chart_rows_service import INFINITE, to_chart_rows
from retail_analytics.services.comparison_service import compare, sales_snapshot
from retail_analytics.services.ledger_service import inventory_evolution
from retail_analytics.services.ranking_service import seller_leaderboard, seller_revenue_series
from retail_analytics.services.turnover_service import CategoryTurnover


def test_bucket_rows_are_flat_and_camel_cased(make_sale) -> None:
    """Verify bucket rows carry label, entries and float metrics."""

    sales = [make_sale(datetime(2025, 3, 1), lines=[("P1", 2, "12.50")])]

    rows = to_chart_rows(sales_evolution(sales, date(2025, 3, 1), date(2025, 3, 2)))

    assert rows == [
        {"label": "2025-03-01", "entries": 1, "revenue": 25.0, "units": 2},
        {"label": "2025-03-02", "entries": 0, "revenue": 0, "units": 0},
    ]
    assert isinstance(rows[0]["revenue"], float)


def test_ledger_rows_include_running_total(make_stock) -> None:
    """Verify ledger rows add delta and runningTotal to the bucket row."""

    stock = [make_stock("P1", 5, movements=[("inbound", 4, datetime(2025, 3, 31, 9))])]

    (row,) = to_chart_rows(inventory_evolution(stock, as_of=date(2025, 3, 31), days=1, opening_quantity=1))

    assert row["label"] == "2025-03-31"
    assert row["inbound"] == 4
    assert row["delta"] == 4
    assert row["runningTotal"] == 5


def test_turnover_infinite_days_of_stock() -> None:
    """Verify None days of stock renders as "infinite"."""

    turnover = CategoryTurnover(
        category="Bags",
        stock_units=0,
        units_sold=3,
        stock_value=Decimal("0"),
        product_count=1,
        turnover_rate=0.0,
        days_of_stock=None,
        is_slow=True,
    )

    (row,) = to_chart_rows(turnover)

    assert row["daysOfStock"] == INFINITE
    assert row["stockValue"] == 0.0
    assert row["isSlow"] is True


def test_leaderboard_rows_merge_entity_and_goals(make_sale) -> None:
    """Verify a leaderboard row holds seller fields, rank, progress and bonus."""

    sellers = [Seller(seller_id="id-1", code="V1", name="Ana")]
    sales = [make_sale(datetime(2025, 3, 1), lines=[("P1", 1, "60000")], seller_ref="V1")]

    (row,) = to_chart_rows(seller_leaderboard(sellers, sales, GoalPolicy()))

    assert row["sellerName"] == "Ana"
    assert row["rank"] == 1
    assert row["revenue"] == 60000.0
    assert row["salesProgress"] == 2.0
    assert row["revenueProgress"] == 100.0
    assert row["bonusTier"] == "half"
    assert row["bonusValue"] == 1500.0


def test_series_set_pivots_to_one_row_per_label(make_sale) -> None:
    """Verify a series set becomes {label, <seller>: value} rows."""

    sellers = [Seller(seller_id="a", code="V1", name="Ana"), Seller(seller_id="b", code="V2", name="Bia")]
    sales = [make_sale(datetime(2025, 2, 3), lines=[("P1", 1, "10")], seller_ref="V2")]

    rows = to_chart_rows(seller_revenue_series(sellers, sales, date(2025, 1, 1), date(2025, 2, 28)))

    assert rows == [
        {"label": "2025-01", "Ana": 0, "Bia": 0},
        {"label": "2025-02", "Ana": 0, "Bia": 10.0},
    ]


def test_comparison_rows_one_per_metric(make_sale) -> None:
    """Verify a comparison becomes one row per metric."""

    sales = [make_sale(datetime(2025, 1, 5)), make_sale(datetime(2025, 2, 5)), make_sale(datetime(2025, 2, 6))]

    rows = to_chart_rows(
        compare(sales, (date(2025, 1, 1), date(2025, 1, 31)), (date(2025, 2, 1), date(2025, 2, 28)), sales_snapshot)
    )

    assert [r["metric"] for r in rows] == ["saleCount", "revenue", "ticketAverage", "unitsSold"]
    assert rows[0] == {"metric": "saleCount", "period1": 1, "period2": 2, "deltaPercent": 100.0}


def test_none_and_nested_sequences() -> None:
    """Verify None is empty and nested sequences flatten."""

    turnover = CategoryTurnover("A", 1, 1, Decimal("1"), 1, 100.0, 30, False)

    assert to_chart_rows(None) == []
    assert to_chart_rows([]) == []
    assert len(to_chart_rows([[turnover], (turnover,)])) == 2


def test_unsupported_type_logs_warning(caplog) -> None:
    """Verify unknown aggregates yield [] and a warning."""

    with caplog.at_level(logging.WARNING, logger="retail_analytics.services.chart_rows_service"):
        assert to_chart_rows({"not": "an aggregate"}) == []

    assert "No chart row mapping for dict" in caplog.text
