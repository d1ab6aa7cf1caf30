"""Expense-limit evaluation over in-memory snapshots.

Nothing here touches the database. Callers fetch limits and transactions,
then hand the lists to ``compute_limit_statuses`` or
``compute_exceeded_transactions``. All amounts are integer cents.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Sequence

from models import ExpenseLimit, PeriodType, Transaction, TransactionType


@dataclass(frozen=True)
class LimitStatus:
    id: int
    category: str
    limit_cents: int
    spent_cents: int
    remaining_cents: int
    exceeded: bool
    exceeded_by_cents: int
    period_type: PeriodType
    start_date: date
    end_date: date


@dataclass(frozen=True)
class ExceededTransaction:
    transaction_id: int
    amount_cents: int
    description: str
    category: str
    type: TransactionType
    date: date
    occurred_at: datetime
    limit_id: int
    limit_cents: int
    running_total_cents: int
    exceeded_by_cents: int
    period_type: PeriodType
    start_date: date
    end_date: date


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def in_period(transaction_date: date, limit: ExpenseLimit) -> bool:
    day = _as_date(transaction_date)
    return _as_date(limit.start_date) <= day <= _as_date(limit.end_date)


def _matching(
    limit: ExpenseLimit, transactions: Iterable[Transaction]
) -> list[Transaction]:
    return [
        txn
        for txn in transactions
        if txn.type == TransactionType.expense
        and txn.category == limit.category
        and in_period(txn.date, limit)
    ]


def spend_for(limit: ExpenseLimit, transactions: Iterable[Transaction]) -> int:
    return sum(txn.amount_cents for txn in _matching(limit, transactions))


def evaluate_limit(limit: ExpenseLimit, spent_cents: int) -> LimitStatus:
    exceeded = spent_cents > limit.limit_cents
    return LimitStatus(
        id=limit.id,
        category=limit.category,
        limit_cents=limit.limit_cents,
        spent_cents=spent_cents,
        remaining_cents=limit.limit_cents - spent_cents,
        exceeded=exceeded,
        exceeded_by_cents=spent_cents - limit.limit_cents if exceeded else 0,
        period_type=limit.period_type,
        start_date=limit.start_date,
        end_date=limit.end_date,
    )


def compute_limit_statuses(
    limits: Sequence[ExpenseLimit], transactions: Sequence[Transaction]
) -> list[LimitStatus]:
    return [evaluate_limit(limit, spend_for(limit, transactions)) for limit in limits]


def attribution_order(txn: Transaction) -> tuple:
    """Sort key for the running-total scan: date, then timestamp, then id."""
    occurred = txn.occurred_at or datetime.combine(
        _as_date(txn.date), datetime.min.time()
    )
    return (_as_date(txn.date), occurred, txn.id or 0)


def exceeded_for_limit(
    limit: ExpenseLimit, transactions: Iterable[Transaction]
) -> list[ExceededTransaction]:
    running_total = 0
    exceeded: list[ExceededTransaction] = []
    for txn in sorted(_matching(limit, transactions), key=attribution_order):
        running_total += txn.amount_cents
        if running_total <= limit.limit_cents:
            continue
        exceeded.append(
            ExceededTransaction(
                transaction_id=txn.id,
                amount_cents=txn.amount_cents,
                description=txn.description,
                category=txn.category,
                type=txn.type,
                date=txn.date,
                occurred_at=txn.occurred_at,
                limit_id=limit.id,
                limit_cents=limit.limit_cents,
                running_total_cents=running_total,
                exceeded_by_cents=running_total - limit.limit_cents,
                period_type=limit.period_type,
                start_date=limit.start_date,
                end_date=limit.end_date,
            )
        )
    return exceeded


def compute_exceeded_transactions(
    limits: Sequence[ExpenseLimit], transactions: Sequence[Transaction]
) -> list[ExceededTransaction]:
    result: list[ExceededTransaction] = []
    for limit in limits:
        result.extend(exceeded_for_limit(limit, transactions))
    return result
