"""
Cumulative ledger service.

Walks an ordered bucket sequence once, left to right, carrying a running total
that starts at a caller-supplied seed (opening stock, opening cash balance).

Invariant: final running total == seed + sum(deltas). No hidden state; the same
buckets and seed always produce the same totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from decimal import Decimal
from typing import Any, Callable, Iterable, List, Optional

from retail_analytics.domain.account import Account, AccountKind
from retail_analytics.domain.bucket import Bucket, Granularity, Number
from retail_analytics.domain.inventory import MovementType, StockItem, StockMovement
from retail_analytics.domain.period import DateRange
from retail_analytics.services.bucketing_service import bucketize


@dataclass(frozen=True, slots=True)
class LedgerRow:
    """A bucket annotated with its own delta and the running total after it."""

    bucket: Bucket
    delta: Number
    running_total: Number

    @property
    def label(self) -> str:
        return self.bucket.label


def accumulate(
    ordered_buckets: Iterable[Bucket],
    delta_fn: Callable[[Bucket], Number],
    seed: Number = 0,
) -> List[LedgerRow]:
    """
    Attach a running total to each bucket.

    Args:
        ordered_buckets: Buckets in the order the total should run (usually ascending time)
        delta_fn: Change contributed by one bucket
        seed: Opening value of the running total

    Returns:
        One LedgerRow per bucket, same order
    """
    rows: List[LedgerRow] = []
    running = seed
    for bucket in ordered_buckets:
        delta = delta_fn(bucket)
        running = running + delta
        rows.append(LedgerRow(bucket=bucket, delta=delta, running_total=running))
    return rows


def _movements(stock_items: Iterable[StockItem]) -> List[StockMovement]:
    return [movement for item in stock_items for movement in item.movements]


def inventory_evolution(
    stock_items: Iterable[StockItem],
    as_of: Any,
    days: int = 30,
    opening_quantity: int = 0,
    *,
    tz: Optional[tzinfo] = None,
) -> List[LedgerRow]:
    """
    Daily stock quantity evolution over the `days` days ending at `as_of`.

    Each bucket sums "inbound" and "outbound" quantities plus their signed "net";
    the running total starts at `opening_quantity` and moves by the net per day.

    Example:
        rows = inventory_evolution(stock, as_of=now, days=30, opening_quantity=120)
        rows[-1].running_total  # 120 + all entries - all exits of the window
    """
    window = DateRange.trailing_days(as_of, days)
    buckets = bucketize(
        _movements(stock_items),
        lambda m: m.timestamp,
        window.start,
        window.end,
        Granularity.DAY,
        metrics={
            "inbound": lambda m: m.quantity if m.movement_type is MovementType.INBOUND else 0,
            "outbound": lambda m: m.quantity if m.movement_type is MovementType.OUTBOUND else 0,
            "net": lambda m: m.signed_quantity,
        },
        tz=tz,
    )
    return accumulate(
        buckets,
        lambda b: b.metric("net"),
        seed=opening_quantity,
    )


def _cash_amount(account: Account, include_open: bool) -> Decimal:
    amount = account.value if account.is_settled and not account.settled_value else account.settled_value
    if include_open and not account.is_settled:
        amount += account.outstanding
    return amount


def cash_flow_projection(
    accounts: Iterable[Account],
    range_start: Any,
    range_end: Any,
    opening_balance: Decimal = Decimal("0"),
    *,
    include_open: bool = False,
    tz: Optional[tzinfo] = None,
) -> List[LedgerRow]:
    """
    Daily cash-flow balance from receivables (inflow) and payables (outflow).

    Accounts are placed on their due date. Settled amounts always count; with
    `include_open`, the outstanding value of unsettled accounts counts too, which
    turns the report into a projection.

    Each bucket sums "inflow" and "outflow"; delta = inflow - outflow.
    """
    def inflow(account: Account) -> Decimal:
        if account.kind is AccountKind.RECEIVABLE:
            return _cash_amount(account, include_open)
        return Decimal("0")

    def outflow(account: Account) -> Decimal:
        if account.kind is AccountKind.PAYABLE:
            return _cash_amount(account, include_open)
        return Decimal("0")

    buckets = bucketize(
        accounts,
        lambda a: a.due_date,
        range_start,
        range_end,
        Granularity.DAY,
        metrics={"inflow": inflow, "outflow": outflow},
        tz=tz,
    )
    return accumulate(
        buckets,
        lambda b: b.metric("inflow") - b.metric("outflow"),
        seed=opening_balance,
    )


__all__ = [
    "LedgerRow",
    "accumulate",
    "cash_flow_projection",
    "inventory_evolution",
]
