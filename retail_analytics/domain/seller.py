"""
Domain: Sellers.

Sellers are owned by the back-office; the engine only reads them to attribute sales.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .sale import SaleRecord


@dataclass(frozen=True, slots=True)
class Seller:
    """
    Seller reference used for leaderboard attribution.

    A sale belongs to a seller when its `seller_ref` matches the seller id or code.
    Sales without a `seller_ref` fall back to `seller_name` (older records carry
    only the name).
    """

    seller_id: str
    code: str
    name: str
    active: bool = True
    email: Optional[str] = None

    def matches(self, sale: SaleRecord) -> bool:
        if sale.seller_ref is not None:
            return sale.seller_ref in (self.seller_id, self.code)
        return sale.seller_name is not None and sale.seller_name == self.name


__all__ = ["Seller"]
