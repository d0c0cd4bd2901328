"""
Domain: Sale records.

Rules relevant here:
- A sale carries one or more line items; each line item references a product by code.
- total == sum(line subtotals) - discount. Inconsistent records are still aggregated;
  `is_consistent()` lets callers flag them.
- The timestamp is optional at the type level: a sale without a readable timestamp is
  excluded from every temporal aggregate but still counts for non-temporal ones.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class SaleLineItem:
    product_code: str
    quantity: int
    unit_price: Decimal = ZERO
    subtotal: Decimal = ZERO
    product_name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SaleRecord:
    """
    Immutable sale as fetched from the back-office.

    Seller attribution uses `seller_ref` (id or code) and falls back to
    `seller_name`, matching how sales were recorded over time.
    """

    sale_id: str
    timestamp: Optional[datetime]
    items: Tuple[SaleLineItem, ...] = ()
    total: Decimal = ZERO
    discount: Decimal = ZERO
    seller_ref: Optional[str] = None
    seller_name: Optional[str] = None
    client_ref: Optional[str] = None
    payment_method: Optional[str] = None

    @property
    def items_subtotal(self) -> Decimal:
        return sum((item.subtotal for item in self.items), ZERO)

    @property
    def units(self) -> int:
        """Total quantity across all line items."""
        return sum(item.quantity for item in self.items)

    def is_consistent(self) -> bool:
        return self.total == self.items_subtotal - self.discount

    def has_product(self, product_code: str) -> bool:
        return any(item.product_code == product_code for item in self.items)

    def quantity_of(self, product_code: str) -> int:
        return sum(item.quantity for item in self.items if item.product_code == product_code)

    def revenue_of(self, product_code: str) -> Decimal:
        return sum(
            (item.subtotal for item in self.items if item.product_code == product_code),
            ZERO,
        )


__all__ = ["SaleLineItem", "SaleRecord"]
