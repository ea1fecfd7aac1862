from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from domain.models import MoneySign, Transaction

EPOCH = datetime(1970, 1, 1)


def parse_transaction_date(value: str | None) -> datetime:
    """Naive UTC datetime for a backend date string; missing or unreadable dates map to the epoch."""
    if not value:
        return EPOCH
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return EPOCH
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def sort_newest_first(rows: Iterable[Transaction]) -> list[Transaction]:
    return sorted(rows, key=lambda t: parse_transaction_date(t.transaction_date), reverse=True)


def transaction_totals(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    income = Decimal("0")
    expenses = Decimal("0")
    for t in transactions:
        if t.amount.sign == MoneySign.CREDIT:
            income += t.amount.amount
        else:
            expenses += abs(t.amount.amount)
    return {"income": income, "expenses": expenses, "net_cash_flow": income - expenses}


def group_by_date(transactions: Iterable[Transaction]) -> dict[str, list[Transaction]]:
    """Bucket by calendar day (YYYY-MM-DD), newest day first and newest first within a day."""
    buckets: dict[str, list[Transaction]] = defaultdict(list)
    for t in sort_newest_first(transactions):
        buckets[parse_transaction_date(t.transaction_date).date().isoformat()].append(t)
    return dict(buckets)
