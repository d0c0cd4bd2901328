"""
Pytest configuration and shared fixtures.

Adds the repository root to the Python path so tests can import
`retail_analytics` without installing the package, and provides small
factories for building domain records.
"""

import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from retail_analytics.domain.inventory import MovementType, StockItem, StockMovement  # noqa: E402
from retail_analytics.domain.labels import NamedLabel  # noqa: E402
from retail_analytics.domain.product import Product  # noqa: E402
from retail_analytics.domain.sale import SaleLineItem, SaleRecord  # noqa: E402


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 3, 31, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_sale():
    """
    Build a SaleRecord from (product_code, quantity, unit_price) tuples.

    The total is the sum of the line subtotals.
    """

    counter = {"n": 0}

    def _make(timestamp, lines=(("P1", 1, "10"),), seller_ref=None, seller_name=None, sale_id=None):
        counter["n"] += 1
        items = tuple(
            SaleLineItem(
                product_code=code,
                quantity=qty,
                unit_price=Decimal(price),
                subtotal=Decimal(price) * qty,
            )
            for code, qty, price in lines
        )
        return SaleRecord(
            sale_id=sale_id or f"S{counter['n']}",
            timestamp=timestamp,
            items=items,
            total=sum((item.subtotal for item in items), Decimal("0")),
            seller_ref=seller_ref,
            seller_name=seller_name,
        )

    return _make


@pytest.fixture
def make_product():
    def _make(code, category="Shoes", supplier="Acme", cost="6", price="10", **kwargs):
        return Product(
            code=code,
            name=f"Product {code}",
            category=NamedLabel(category) if category else None,
            supplier=NamedLabel(supplier) if supplier else None,
            cost_price=Decimal(cost),
            sale_price=Decimal(price),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_stock():
    def _make(code, quantity, price="10", cost="6", movements=()):
        return StockItem(
            product_code=code,
            quantity_total=quantity,
            cost_price=Decimal(cost),
            sale_price=Decimal(price),
            movements=tuple(
                StockMovement(
                    product_code=code,
                    movement_type=MovementType(kind),
                    quantity=qty,
                    timestamp=ts,
                )
                for kind, qty, ts in movements
            ),
        )

    return _make
