"""
Filter & join layer.

Resolves soft references between fetched collections before aggregation:
- stock item -> product (left join by product code)
- sale line item -> product (same key, for category/supplier attribution)
- stock movement -> product

Stale foreign keys never drop a row: a stock item or line item whose product is
missing keeps `product=None` and resolves to the "Uncategorized"/"Unknown" sentinels.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

from retail_analytics.domain.inventory import MovementType, StockItem, StockMovement
from retail_analytics.domain.labels import UNCATEGORIZED, UNKNOWN, same_label
from retail_analytics.domain.period import DateRange
from retail_analytics.domain.product import Product
from retail_analytics.domain.sale import SaleLineItem, SaleRecord
from retail_analytics.domain.time import to_calendar_date

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

RowT = TypeVar("RowT", "ProductContextRow", "SaleLineRow", "MovementRow")


@dataclass(frozen=True, slots=True)
class ProductContextRow:
    """
    One stock item joined with its product and its sales attribution.

    `unit_price` is the stock item's sale price (or promotional price), falling back
    to the catalog price when the stock record carries none.
    """

    stock_item: StockItem
    product: Optional[Product]
    product_code: str
    product_name: Optional[str]
    category: str
    supplier: str
    quantity_on_hand: int
    unit_cost: Decimal
    unit_price: Decimal
    units_sold: int = 0
    revenue: Decimal = ZERO

    @property
    def stock_value(self) -> Decimal:
        return self.quantity_on_hand * self.unit_price

    @property
    def cost_value(self) -> Decimal:
        return self.quantity_on_hand * self.unit_cost


@dataclass(frozen=True, slots=True)
class SaleLineRow:
    sale: SaleRecord
    item: SaleLineItem
    product: Optional[Product]
    category: str
    supplier: str

    @property
    def timestamp(self) -> Optional[datetime]:
        return self.sale.timestamp


@dataclass(frozen=True, slots=True)
class MovementRow:
    movement: StockMovement
    product: Optional[Product]
    category: str
    supplier: str

    @property
    def timestamp(self) -> Optional[datetime]:
        return self.movement.timestamp


def index_products(products: Iterable[Product]) -> Dict[str, Product]:
    """
    Map product code -> product.

    The first product seen for a code wins; later duplicates are logged and ignored.
    """
    index: Dict[str, Product] = {}
    for product in products:
        if product.code in index:
            logger.warning(
                f"Duplicate product code '{product.code}' ignored",
                extra={"product_code": product.code},
            )
            continue
        index[product.code] = product
    return index


def _category(product: Optional[Product]) -> str:
    return product.category_name if product is not None else UNCATEGORIZED


def _supplier(product: Optional[Product]) -> str:
    return product.supplier_name if product is not None else UNKNOWN


def join_product_context(
    stock_items: Iterable[StockItem],
    products: Iterable[Product],
    sales: Iterable[SaleRecord] = (),
) -> List[ProductContextRow]:
    """
    Left join stock items to products and attribute sold units and revenue.

    Args:
        stock_items: Stock positions (one row per item, input order kept)
        products: Catalog used to resolve name, category and supplier
        sales: Sales whose line items are attributed by product code

    Returns:
        One ProductContextRow per stock item
    """
    catalog = index_products(products)

    units_by_code: Dict[str, int] = {}
    revenue_by_code: Dict[str, Decimal] = {}
    for sale in sales:
        for item in sale.items:
            units_by_code[item.product_code] = units_by_code.get(item.product_code, 0) + item.quantity
            revenue_by_code[item.product_code] = revenue_by_code.get(item.product_code, ZERO) + item.subtotal

    rows: List[ProductContextRow] = []
    orphans = 0
    for stock in stock_items:
        product = catalog.get(stock.product_code)
        if product is None:
            orphans += 1

        unit_price = stock.unit_value
        if not unit_price and product is not None:
            unit_price = product.sale_price or product.promotional_price or ZERO
        unit_cost = stock.cost_price
        if not unit_cost and product is not None:
            unit_cost = product.cost_price

        rows.append(ProductContextRow(
            stock_item=stock,
            product=product,
            product_code=stock.product_code,
            product_name=stock.product_name or (product.name if product is not None else None),
            category=_category(product),
            supplier=_supplier(product),
            quantity_on_hand=stock.quantity_total,
            unit_cost=unit_cost,
            unit_price=unit_price,
            units_sold=units_by_code.get(stock.product_code, 0),
            revenue=revenue_by_code.get(stock.product_code, ZERO),
        ))

    if orphans:
        logger.debug(
            f"{orphans} stock items reference unknown products",
            extra={"orphan_stock_items": orphans},
        )
    return rows


def join_sale_lines(sales: Iterable[SaleRecord], products: Iterable[Product]) -> List[SaleLineRow]:
    """One row per sale line item, with the item's product category and supplier."""

    catalog = index_products(products)
    rows: List[SaleLineRow] = []
    for sale in sales:
        for item in sale.items:
            product = catalog.get(item.product_code)
            rows.append(SaleLineRow(
                sale=sale,
                item=item,
                product=product,
                category=_category(product),
                supplier=_supplier(product),
            ))
    return rows


def join_movements(stock_items: Iterable[StockItem], products: Iterable[Product]) -> List[MovementRow]:
    """One row per logged stock movement, with its product category and supplier."""

    catalog = index_products(products)
    rows: List[MovementRow] = []
    for stock in stock_items:
        product = catalog.get(stock.product_code)
        for movement in stock.movements:
            rows.append(MovementRow(
                movement=movement,
                product=product,
                category=_category(product),
                supplier=_supplier(product),
            ))
    return rows


def filter_by_category(rows: Sequence[RowT], category: Optional[str]) -> List[RowT]:
    """Rows whose resolved category matches (case-insensitive); None keeps everything."""

    if category is None:
        return list(rows)
    return [row for row in rows if same_label(row.category, category)]


def filter_by_supplier(rows: Sequence[RowT], supplier: Optional[str]) -> List[RowT]:
    """Rows whose resolved supplier matches (case-insensitive); None keeps everything."""

    if supplier is None:
        return list(rows)
    return [row for row in rows if same_label(row.supplier, supplier)]


def filter_by_movement_type(
    rows: Sequence[MovementRow],
    movement_type: Optional[MovementType],
) -> List[MovementRow]:
    if movement_type is None:
        return list(rows)
    return [row for row in rows if row.movement.movement_type is movement_type]


def filter_movements_in_range(rows: Sequence[MovementRow], date_range: DateRange) -> List[MovementRow]:
    """Rows whose movement date falls in the range; undated movements are dropped."""

    kept: List[MovementRow] = []
    for row in rows:
        day = to_calendar_date(row.timestamp)
        if day is not None and date_range.contains(day):
            kept.append(row)
    return kept


__all__ = [
    "MovementRow",
    "ProductContextRow",
    "SaleLineRow",
    "filter_by_category",
    "filter_by_movement_type",
    "filter_by_supplier",
    "filter_movements_in_range",
    "index_products",
    "join_movements",
    "join_product_context",
    "join_sale_lines",
]
