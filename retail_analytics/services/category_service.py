"""
Category analyzer.

Sales and stock attributed to product categories through the join layer, so a
line item or stock item with a stale product reference lands in "Uncategorized".

Margin rule:
- margin_percent = (stock sale value - stock cost value) / stock sale value * 100
- 0 when the stock sale value is 0
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List

from retail_analytics.domain.inventory import StockItem
from retail_analytics.domain.product import Product
from retail_analytics.domain.sale import SaleRecord
from retail_analytics.services.join_service import join_product_context, join_sale_lines

ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class CategorySales:
    category: str
    units: int
    revenue: Decimal
    revenue_share: float


@dataclass(frozen=True, slots=True)
class CategoryMargin:
    category: str
    stock_cost_value: Decimal
    stock_sale_value: Decimal
    margin_percent: float
    estimated_profit: Decimal
    units_sold: int
    revenue: Decimal


def sales_by_category(sales: Iterable[SaleRecord], products: Iterable[Product]) -> List[CategorySales]:
    """
    Units and revenue per category, highest revenue first.

    `revenue_share` is the category's percentage of the total line revenue (0 when
    there is no revenue at all).
    """
    units: Dict[str, int] = {}
    revenue: Dict[str, Decimal] = {}
    for row in join_sale_lines(sales, products):
        units[row.category] = units.get(row.category, 0) + row.item.quantity
        revenue[row.category] = revenue.get(row.category, ZERO) + row.item.subtotal

    grand_total = sum(revenue.values(), ZERO)
    result = [
        CategorySales(
            category=category,
            units=units[category],
            revenue=revenue[category],
            revenue_share=float(revenue[category] / grand_total * 100) if grand_total else 0.0,
        )
        for category in revenue
    ]
    result.sort(key=lambda c: (-c.revenue, c.category))
    return result


def margin_by_category(
    products: Iterable[Product],
    stock_items: Iterable[StockItem],
    sales: Iterable[SaleRecord] = (),
) -> List[CategoryMargin]:
    """
    Stock cost/sale value and margin per category, best margin first.

    Args:
        products: Catalog used for category attribution and price fallbacks
        stock_items: Stock positions valued at cost and at sale price
        sales: Sales attributed to the stocked products (units sold and revenue)
    """
    cost: Dict[str, Decimal] = {}
    value: Dict[str, Decimal] = {}
    sold: Dict[str, int] = {}
    revenue: Dict[str, Decimal] = {}
    for row in join_product_context(stock_items, products, sales):
        cost[row.category] = cost.get(row.category, ZERO) + row.cost_value
        value[row.category] = value.get(row.category, ZERO) + row.stock_value
        sold[row.category] = sold.get(row.category, 0) + row.units_sold
        revenue[row.category] = revenue.get(row.category, ZERO) + row.revenue

    result: List[CategoryMargin] = []
    for category in value:
        sale_value = value[category]
        cost_value = cost[category]
        margin = float((sale_value - cost_value) / sale_value * 100) if sale_value else 0.0
        result.append(CategoryMargin(
            category=category,
            stock_cost_value=cost_value,
            stock_sale_value=sale_value,
            margin_percent=margin,
            estimated_profit=sale_value - cost_value,
            units_sold=sold[category],
            revenue=revenue[category],
        ))
    result.sort(key=lambda c: (-c.margin_percent, c.category))
    return result


__all__ = ["CategoryMargin", "CategorySales", "margin_by_category", "sales_by_category"]
