"""
Domain: Payable and receivable accounts.

Rules relevant here:
- Each installment of a split account is its own Account carrying an Installment marker.
- Open accounts are those still Pending or Partial; Overdue is set by the back-office.
- `settled_value` is what has actually been paid or received so far.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .labels import UNKNOWN, Label, resolve_label

ZERO = Decimal("0")


class AccountKind(str, Enum):
    PAYABLE = "payable"
    RECEIVABLE = "receivable"


class AccountStatus(str, Enum):
    PENDING = "Pending"
    PARTIAL = "Partial"
    PAID = "Paid"
    RECEIVED = "Received"
    OVERDUE = "Overdue"

    @staticmethod
    def from_raw(value: str) -> "AccountStatus":
        """Resolve a status from English or back-office (pt-BR) spellings."""

        key = value.strip().casefold()
        for status, aliases in _STATUS_ALIASES.items():
            if key in aliases:
                return status
        raise ValueError(f"Unknown account status: {value!r}")


_STATUS_ALIASES = {
    AccountStatus.PENDING: ("pending", "pendente"),
    AccountStatus.PARTIAL: ("partial", "parcial"),
    AccountStatus.PAID: ("paid", "pago"),
    AccountStatus.RECEIVED: ("received", "recebido"),
    AccountStatus.OVERDUE: ("overdue", "vencido"),
}


@dataclass(frozen=True, slots=True)
class Installment:
    number: int
    total: int


@dataclass(frozen=True, slots=True)
class Account:
    document_number: str
    kind: AccountKind
    value: Decimal
    status: AccountStatus
    due_date: Optional[datetime] = None
    description: str = ""
    category: Optional[Label] = None
    counterparty: Optional[Label] = None
    settled_value: Decimal = ZERO
    installment: Optional[Installment] = None

    @property
    def is_settled(self) -> bool:
        return self.status in (AccountStatus.PAID, AccountStatus.RECEIVED)

    @property
    def is_open(self) -> bool:
        return self.status in (AccountStatus.PENDING, AccountStatus.PARTIAL)

    @property
    def outstanding(self) -> Decimal:
        if self.is_settled:
            return ZERO
        return max(self.value - self.settled_value, ZERO)

    @property
    def counterparty_name(self) -> str:
        return resolve_label(self.counterparty, UNKNOWN)

    @property
    def display_number(self) -> str:
        """Document number, with "(n/total)" for installments."""

        if self.installment is None:
            return self.document_number
        return f"{self.document_number} ({self.installment.number}/{self.installment.total})"


__all__ = ["Account", "AccountKind", "AccountStatus", "Installment"]
