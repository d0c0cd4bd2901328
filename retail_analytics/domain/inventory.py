"""
Domain: Stock items and their movement log.

Rules implemented here:
- A StockItem owns its StockMovement entries; the log is insertion-ordered and append-only.
- Every movement quantity is strictly positive; direction comes from the movement type.
- A movement always belongs to the stock item with the same product code.

This module contains only pure domain entities/value objects: no I/O, no frameworks.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

ZERO = Decimal("0")


class MovementType(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"

    @staticmethod
    def from_raw(value: str) -> "MovementType":
        """
        Resolve a movement type from back-office spellings.

        Raises ValueError for anything that is neither an entry nor an exit.
        """

        key = value.strip().casefold()
        if key in ("inbound", "entrada", "in"):
            return MovementType.INBOUND
        if key in ("outbound", "saida", "saída", "out"):
            return MovementType.OUTBOUND
        raise ValueError(f"Unknown movement type: {value!r}")


@dataclass(frozen=True, slots=True)
class StockMovement:
    product_code: str
    movement_type: MovementType
    quantity: int
    timestamp: Optional[datetime] = None
    colorway: Optional[str] = None
    size: Optional[str] = None
    supplier_ref: Optional[str] = None
    observation: Optional[str] = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("quantity must be > 0")

    @property
    def signed_quantity(self) -> int:
        """Quantity with the sign of its effect on stock."""

        if self.movement_type is MovementType.OUTBOUND:
            return -self.quantity
        return self.quantity


@dataclass(frozen=True, slots=True)
class StockItem:
    """
    Aggregated stock position of one product plus its movement history.

    `quantity_total` is the on-hand quantity reported by the back-office; it is
    not recomputed from the movement log.
    """

    product_code: str
    quantity_total: int = 0
    product_name: Optional[str] = None
    cost_price: Decimal = ZERO
    sale_price: Decimal = ZERO
    promotional_price: Optional[Decimal] = None
    registered_at: Optional[datetime] = None
    movements: Tuple[StockMovement, ...] = ()

    @property
    def unit_value(self) -> Decimal:
        """Sale price, falling back to the promotional price when no sale price is set."""

        if self.sale_price:
            return self.sale_price
        return self.promotional_price or ZERO

    def append(self, movement: StockMovement) -> "StockItem":
        """
        Return a new StockItem with `movement` appended to the log.

        Raises ValueError if the movement belongs to another product.
        """

        if movement.product_code != self.product_code:
            raise ValueError(
                f"Movement for {movement.product_code!r} cannot be logged on {self.product_code!r}"
            )
        return StockItem(
            product_code=self.product_code,
            quantity_total=self.quantity_total,
            product_name=self.product_name,
            cost_price=self.cost_price,
            sale_price=self.sale_price,
            promotional_price=self.promotional_price,
            registered_at=self.registered_at,
            movements=self.movements + (movement,),
        )


__all__ = ["MovementType", "StockItem", "StockMovement"]
