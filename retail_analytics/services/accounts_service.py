"""
Accounts analyzer (payables and receivables).

Overdue rules:
- An account is overdue when its status is Overdue, or when it is still open
  (Pending/Partial) and its due date is before today.
- Days overdue are whole calendar days between the due date and today (never negative).
- Severity: RECENT (<= warning_days), ATTENTION (<= critical_days), CRITICAL beyond.
- Accounts without a due date cannot be placed and are skipped.

Installment rules:
- Only accounts carrying an installment marker count.
- adherence_rate = settled / total * 100 (0 with no installments).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from retail_analytics.domain.account import Account, AccountKind, AccountStatus
from retail_analytics.domain.time import to_calendar_date

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class OverdueSeverity(str, Enum):
    RECENT = "recent"
    ATTENTION = "attention"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class OverdueEntry:
    account: Account
    due_date: date
    days_overdue: int
    amount: Decimal
    severity: OverdueSeverity

    @property
    def counterparty(self) -> str:
        return self.account.counterparty_name


@dataclass(frozen=True, slots=True)
class CounterpartyDelinquency:
    counterparty: str
    total: Decimal
    count: int
    average_days_overdue: int


@dataclass(frozen=True, slots=True)
class InstallmentSummary:
    total: int
    settled: int
    upcoming: int
    adherence_rate: float
    upcoming_value: Decimal


def _severity(days: int, warning_days: int, critical_days: int) -> OverdueSeverity:
    if days <= warning_days:
        return OverdueSeverity.RECENT
    if days <= critical_days:
        return OverdueSeverity.ATTENTION
    return OverdueSeverity.CRITICAL


def overdue_report(
    accounts: Iterable[Account],
    now: datetime,
    warning_days: int = 7,
    critical_days: int = 30,
    kind: Optional[AccountKind] = None,
) -> List[OverdueEntry]:
    """
    Overdue accounts, longest overdue first.

    Args:
        accounts: Payables and/or receivables
        now: Reference instant; only its calendar date matters
        warning_days: Upper bound (inclusive) of the RECENT band
        critical_days: Upper bound (inclusive) of the ATTENTION band
        kind: Restrict to payables or receivables (None keeps both)

    Example:
        entries = overdue_report(receivables, now=datetime(2025, 3, 31))
        [e.severity for e in entries]
    """
    today = now.date()
    entries: List[OverdueEntry] = []
    undated = 0
    for account in accounts:
        if kind is not None and account.kind is not kind:
            continue
        due = to_calendar_date(account.due_date)
        if due is None:
            undated += 1
            continue
        overdue = account.status is AccountStatus.OVERDUE or (account.is_open and due < today)
        if not overdue:
            continue
        days = max((today - due).days, 0)
        entries.append(OverdueEntry(
            account=account,
            due_date=due,
            days_overdue=days,
            amount=account.outstanding,
            severity=_severity(days, warning_days, critical_days),
        ))

    if undated:
        logger.debug(
            f"overdue_report skipped {undated} accounts without due date",
            extra={"skipped_accounts": undated},
        )
    entries.sort(key=lambda e: e.days_overdue, reverse=True)
    return entries


def delinquency_by_counterparty(entries: Sequence[OverdueEntry]) -> List[CounterpartyDelinquency]:
    """Overdue totals per counterparty, largest total first."""

    totals: Dict[str, Decimal] = {}
    counts: Dict[str, int] = {}
    days: Dict[str, int] = {}
    for entry in entries:
        name = entry.counterparty
        totals[name] = totals.get(name, ZERO) + entry.amount
        counts[name] = counts.get(name, 0) + 1
        days[name] = days.get(name, 0) + entry.days_overdue

    result = [
        CounterpartyDelinquency(
            counterparty=name,
            total=totals[name],
            count=counts[name],
            average_days_overdue=int(days[name] / counts[name] + 0.5),
        )
        for name in totals
    ]
    result.sort(key=lambda d: (-d.total, d.counterparty))
    return result


def installment_summary(
    accounts: Iterable[Account],
    now: datetime,
    horizon_days: int = 7,
) -> InstallmentSummary:
    """
    Installment adherence and the open installments falling due soon.

    Upcoming installments are open ones due after today and at most
    `horizon_days` days ahead.
    """
    today = now.date()
    horizon = today + timedelta(days=horizon_days)
    installments = [a for a in accounts if a.installment is not None]

    settled = sum(1 for a in installments if a.is_settled)
    upcoming = []
    for account in installments:
        due = to_calendar_date(account.due_date)
        if account.is_open and due is not None and today < due <= horizon:
            upcoming.append(account)

    total = len(installments)
    return InstallmentSummary(
        total=total,
        settled=settled,
        upcoming=len(upcoming),
        adherence_rate=settled / total * 100 if total else 0.0,
        upcoming_value=sum((a.outstanding for a in upcoming), ZERO),
    )


__all__ = [
    "CounterpartyDelinquency",
    "InstallmentSummary",
    "OverdueEntry",
    "OverdueSeverity",
    "delinquency_by_counterparty",
    "installment_summary",
    "overdue_report",
]
