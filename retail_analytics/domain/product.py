"""
Domain: Product catalog entries.

Rules relevant here:
- Category and supplier are normalized labels (see `labels`); either may be missing.
- The promotion history is an ordered log, oldest first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from .labels import UNCATEGORIZED, UNKNOWN, Label, resolve_label

ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class PromotionPeriod:
    start_date: datetime
    promo_price: Decimal
    end_date: Optional[datetime] = None
    active: bool = False


@dataclass(frozen=True, slots=True)
class Product:
    code: str
    name: str
    category: Optional[Label] = None
    supplier: Optional[Label] = None
    cost_price: Decimal = ZERO
    sale_price: Decimal = ZERO
    promotional_price: Optional[Decimal] = None
    on_promotion: bool = False
    promotion_history: Tuple[PromotionPeriod, ...] = ()

    @property
    def category_name(self) -> str:
        return resolve_label(self.category, UNCATEGORIZED)

    @property
    def supplier_name(self) -> str:
        return resolve_label(self.supplier, UNKNOWN)

    @property
    def discount_percent(self) -> float:
        """Promotional discount over the sale price (0 without a usable price pair)."""

        if not self.sale_price or self.promotional_price is None:
            return 0.0
        return float((self.sale_price - self.promotional_price) / self.sale_price * 100)

    def current_promotion_start(self) -> Optional[datetime]:
        """
        Start of the promotion in force.

        The most recent active period wins; otherwise the most recent period of any kind.
        """

        for period in reversed(self.promotion_history):
            if period.active:
                return period.start_date
        if self.promotion_history:
            return self.promotion_history[-1].start_date
        return None


__all__ = ["Product", "PromotionPeriod"]
