"""
Tests for `retail_analytics/services/accounts_service.py`.

Covers contract rules:
- Overdue: status Overdue, or open (Pending/Partial) with a due date before today.
- Severity: RECENT (<= 7 days), ATTENTION (<= 30 days), CRITICAL beyond.
- Accounts without due date are skipped; settled accounts are never overdue.
- Installment adherence = settled / total * 100 (0 with no installments).
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from retail_analytics.domain.account import Account, AccountKind, AccountStatus, Installment
from retail_analytics.domain.labels import NamedLabel
from retail_analytics.services.accounts_service import (
    OverdueSeverity,
    delinquency_by_counterparty,
    installment_summary,
    overdue_report,
)


def _account(doc, status, due, value="100", client="Maria", kind=AccountKind.RECEIVABLE, **kwargs) -> Account:
    return Account(
        document_number=doc,
        kind=kind,
        value=Decimal(value),
        status=status,
        due_date=due,
        counterparty=NamedLabel(client) if client else None,
        **kwargs,
    )


@pytest.mark.parametrize(
    "days, expected",
    [
        (1, OverdueSeverity.RECENT),
        (7, OverdueSeverity.RECENT),
        (8, OverdueSeverity.ATTENTION),
        (30, OverdueSeverity.ATTENTION),
        (31, OverdueSeverity.CRITICAL),
    ],
)
def test_overdue_severity_bands(now, days: int, expected: OverdueSeverity) -> None:
    """Verify severity boundaries in whole calendar days."""

    (entry,) = overdue_report([_account("D1", AccountStatus.PENDING, now - timedelta(days=days))], now)

    assert entry.days_overdue == days
    assert entry.severity is expected


def test_overdue_report_selection_and_order(now) -> None:
    """Verify which accounts are overdue and that the longest overdue comes first."""

    accounts = [
        _account("PAST-PAID", AccountStatus.RECEIVED, now - timedelta(days=40)),
        _account("TODAY", AccountStatus.PENDING, now),
        _account("PARTIAL", AccountStatus.PARTIAL, now - timedelta(days=3), settled_value=Decimal("40")),
        _account("FLAGGED", AccountStatus.OVERDUE, now + timedelta(days=2)),
        _account("OLD", AccountStatus.PENDING, now - timedelta(days=45)),
        _account("UNDATED", AccountStatus.PENDING, None),
    ]

    entries = overdue_report(accounts, now)

    assert [e.account.document_number for e in entries] == ["OLD", "PARTIAL", "FLAGGED"]
    assert entries[1].amount == Decimal("60")
    assert entries[2].days_overdue == 0


def test_overdue_report_filters_by_kind(now) -> None:
    """Verify payables and receivables can be reported separately."""

    accounts = [
        _account("R1", AccountStatus.PENDING, now - timedelta(days=2)),
        _account("P1", AccountStatus.PENDING, now - timedelta(days=2), kind=AccountKind.PAYABLE),
    ]

    entries = overdue_report(accounts, now, kind=AccountKind.PAYABLE)

    assert [e.account.document_number for e in entries] == ["P1"]


def test_delinquency_by_counterparty(now) -> None:
    """Verify totals, counts and rounded average days per counterparty."""

    accounts = [
        _account("A1", AccountStatus.PENDING, now - timedelta(days=2), value="100", client="Maria"),
        _account("A2", AccountStatus.PENDING, now - timedelta(days=5), value="50", client="Maria"),
        _account("B1", AccountStatus.PENDING, now - timedelta(days=10), value="300", client="Joao"),
        _account("C1", AccountStatus.PENDING, now - timedelta(days=1), value="10", client=None),
    ]

    result = delinquency_by_counterparty(overdue_report(accounts, now))

    assert [(d.counterparty, d.total, d.count) for d in result] == [
        ("Joao", Decimal("300"), 1),
        ("Maria", Decimal("150"), 2),
        ("Unknown", Decimal("10"), 1),
    ]
    assert result[1].average_days_overdue == 4


def test_installment_summary(now) -> None:
    """Verify adherence over installments and the upcoming window."""

    accounts = [
        _account("X", AccountStatus.RECEIVED, now - timedelta(days=30), installment=Installment(1, 4)),
        _account("X", AccountStatus.PENDING, now + timedelta(days=3), installment=Installment(2, 4)),
        _account("X", AccountStatus.PENDING, now + timedelta(days=20), installment=Installment(3, 4)),
        _account("X", AccountStatus.PENDING, now + timedelta(days=50), installment=Installment(4, 4)),
        _account("SINGLE", AccountStatus.RECEIVED, now - timedelta(days=1)),
    ]

    summary = installment_summary(accounts, now, horizon_days=7)

    assert summary.total == 4
    assert summary.settled == 1
    assert summary.adherence_rate == 25.0
    assert summary.upcoming == 1
    assert summary.upcoming_value == Decimal("100")


def test_installment_summary_without_installments(now) -> None:
    """Verify adherence is 0 when nothing is split."""

    summary = installment_summary([_account("SINGLE", AccountStatus.PENDING, now)], now)

    assert summary.total == 0
    assert summary.adherence_rate == 0.0


def test_installment_display_number() -> None:
    """Verify installments show their position in the document number."""

    account = _account("NF-10", AccountStatus.PENDING, None, installment=Installment(2, 3))

    assert account.display_number == "NF-10 (2/3)"
