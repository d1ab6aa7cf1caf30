from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from sqlalchemy import case, delete, func, select
from sqlalchemy.orm import Session

from billing import SubscriptionSummary, compute_subscription_summary
from csv_utils import export_transactions, parse_csv
from limits import (
    ExceededTransaction,
    LimitStatus,
    compute_exceeded_transactions,
    compute_limit_statuses,
)
from models import (
    Budget,
    Debt,
    DebtStatus,
    DebtType,
    ExpenseLimit,
    Goal,
    GoalStatus,
    Subscription,
    Transaction,
    TransactionType,
)
from periods import Period, limit_window, month_end
from preferences import PreferencesStore, SQLPreferencesStore
from recurrence import BillingEngine, local_today
from schemas import (
    BudgetIn,
    DebtIn,
    ExpenseLimitIn,
    GoalIn,
    GoalProgressIn,
    SubscriptionIn,
    TransactionIn,
)

logger = logging.getLogger(__name__)


class NotFoundError(ValueError):
    pass


class ValidationError(ValueError):
    pass


def get_current_user_id() -> int:
    return 1


@dataclass
class TransactionFilters:
    start: Optional[date] = None
    end: Optional[date] = None
    category: Optional[str] = None
    type: Optional[TransactionType] = None


class TransactionService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def create(self, data: TransactionIn, *, commit: bool = True) -> Transaction:
        occurred_at = data.occurred_at
        txn_date = data.date
        if occurred_at is None:
            occurred_at = (
                datetime.combine(txn_date, time(12, 0))
                if txn_date
                else datetime.utcnow()
            )
        if txn_date is None:
            txn_date = occurred_at.date()
        txn = Transaction(
            user_id=self.user_id,
            date=txn_date,
            occurred_at=occurred_at,
            type=data.type,
            amount_cents=data.amount_cents,
            category=data.category.strip(),
            description=data.description.strip(),
        )
        self.session.add(txn)
        if commit:
            self.session.commit()
            self.session.refresh(txn)
            logger.info(
                f"transaction_created: id={txn.id} type={txn.type.value} "
                f"category={txn.category}"
            )
        return txn

    def get(self, transaction_id: int) -> Transaction:
        txn = self.session.get(Transaction, transaction_id)
        if not txn or txn.user_id != self.user_id:
            raise NotFoundError("Transaction not found")
        return txn

    def list(self, filters: Optional[TransactionFilters] = None) -> list[Transaction]:
        filters = filters or TransactionFilters()
        stmt = select(Transaction).where(Transaction.user_id == self.user_id)
        if filters.start:
            stmt = stmt.where(Transaction.date >= filters.start)
        if filters.end:
            stmt = stmt.where(Transaction.date <= filters.end)
        if filters.category:
            stmt = stmt.where(Transaction.category == filters.category)
        if filters.type:
            stmt = stmt.where(Transaction.type == filters.type)
        stmt = stmt.order_by(
            Transaction.date.desc(),
            Transaction.occurred_at.desc(),
            Transaction.id.desc(),
        )
        return list(self.session.scalars(stmt).all())

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()
        logger.info(f"transaction_deleted: id={transaction_id}")


class BudgetService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list(self) -> list[Budget]:
        stmt = (
            select(Budget)
            .where(Budget.user_id == self.user_id)
            .order_by(Budget.start_date.desc(), Budget.id.desc())
        )
        return list(self.session.scalars(stmt).all())

    def create(self, data: BudgetIn) -> Budget:
        if data.start_date > data.end_date:
            raise ValidationError("Start date must be before end date")
        budget = Budget(
            user_id=self.user_id,
            category=data.category.strip(),
            amount_cents=data.amount_cents,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        return budget

    def delete(self, budget_id: int) -> None:
        budget = self.session.get(Budget, budget_id)
        if not budget or budget.user_id != self.user_id:
            raise NotFoundError("Budget not found")
        self.session.delete(budget)
        self.session.commit()


class GoalService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list(self) -> list[Goal]:
        stmt = (
            select(Goal)
            .where(Goal.user_id == self.user_id)
            .order_by(Goal.created_at.desc(), Goal.id.desc())
        )
        return list(self.session.scalars(stmt).all())

    def get(self, goal_id: int) -> Goal:
        goal = self.session.get(Goal, goal_id)
        if not goal or goal.user_id != self.user_id:
            raise NotFoundError("Goal not found")
        return goal

    def create(self, data: GoalIn) -> Goal:
        goal = Goal(
            user_id=self.user_id,
            name=data.name.strip(),
            target_cents=data.target_cents,
            current_cents=data.current_cents,
            deadline=data.deadline,
            status=GoalStatus.active,
        )
        self._complete_if_reached(goal)
        self.session.add(goal)
        self.session.commit()
        self.session.refresh(goal)
        return goal

    def update_progress(self, goal_id: int, data: GoalProgressIn) -> Goal:
        goal = self.get(goal_id)
        goal.current_cents = data.current_cents
        if data.status is not None:
            goal.status = data.status
        self._complete_if_reached(goal)
        self.session.commit()
        self.session.refresh(goal)
        return goal

    def delete(self, goal_id: int) -> None:
        goal = self.get(goal_id)
        self.session.delete(goal)
        self.session.commit()

    @staticmethod
    def _complete_if_reached(goal: Goal) -> None:
        if goal.status == GoalStatus.active and goal.current_cents >= goal.target_cents:
            goal.status = GoalStatus.completed

    @staticmethod
    def progress_percent(goal: Goal) -> float:
        if goal.target_cents <= 0:
            return 100.0
        return round(min(100.0, goal.current_cents * 100 / goal.target_cents), 1)


class ExpenseLimitService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list(self) -> list[ExpenseLimit]:
        stmt = (
            select(ExpenseLimit)
            .where(ExpenseLimit.user_id == self.user_id)
            .order_by(ExpenseLimit.start_date.desc(), ExpenseLimit.id.asc())
        )
        return list(self.session.scalars(stmt).all())

    def upsert(self, data: ExpenseLimitIn) -> ExpenseLimit:
        try:
            start, end = limit_window(
                data.period_type,
                period_start=data.period_start,
                start=data.start_date,
                end=data.end_date,
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        category = data.category.strip()

        stmt = select(ExpenseLimit).where(
            ExpenseLimit.user_id == self.user_id,
            ExpenseLimit.category == category,
            ExpenseLimit.start_date == start,
            ExpenseLimit.end_date == end,
        )
        existing = self.session.scalar(stmt)
        if existing:
            existing.limit_cents = data.limit_cents
            existing.period_type = data.period_type
            self.session.commit()
            self.session.refresh(existing)
            logger.info(
                f"expense_limit_replaced: id={existing.id} category={category} "
                f"start={start.isoformat()} end={end.isoformat()}"
            )
            return existing

        limit = ExpenseLimit(
            user_id=self.user_id,
            category=category,
            limit_cents=data.limit_cents,
            period_type=data.period_type,
            start_date=start,
            end_date=end,
        )
        self.session.add(limit)
        self.session.commit()
        self.session.refresh(limit)
        return limit

    def delete(self, limit_id: int) -> None:
        limit = self.session.get(ExpenseLimit, limit_id)
        if not limit or limit.user_id != self.user_id:
            raise NotFoundError("Expense limit not found")
        self.session.delete(limit)
        self.session.commit()

    def _expense_snapshot(self) -> list[Transaction]:
        return TransactionService(self.session, self.user_id).list(
            TransactionFilters(type=TransactionType.expense)
        )

    def statuses(self) -> list[LimitStatus]:
        return compute_limit_statuses(self.list(), self._expense_snapshot())

    def exceeded_transactions(self) -> list[ExceededTransaction]:
        return compute_exceeded_transactions(self.list(), self._expense_snapshot())


class DebtService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list(self) -> list[Debt]:
        stmt = (
            select(Debt)
            .where(Debt.user_id == self.user_id)
            .order_by(Debt.created_date.desc(), Debt.id.desc())
        )
        return list(self.session.scalars(stmt).all())

    def get(self, debt_id: int) -> Debt:
        debt = self.session.get(Debt, debt_id)
        if not debt or debt.user_id != self.user_id:
            raise NotFoundError("Debt not found")
        return debt

    def create(self, data: DebtIn) -> Debt:
        created = data.created_date or local_today()
        if data.due_date and data.due_date < created:
            raise ValidationError("Due date cannot be before the created date")
        debt = Debt(
            user_id=self.user_id,
            person_name=data.person_name.strip(),
            amount_cents=data.amount_cents,
            description=data.description,
            type=data.type,
            status=DebtStatus.pending,
            created_date=created,
            due_date=data.due_date,
        )
        self.session.add(debt)
        self.session.commit()
        self.session.refresh(debt)
        return debt

    def set_status(self, debt_id: int, status: DebtStatus) -> Debt:
        debt = self.get(debt_id)
        debt.status = status
        self.session.commit()
        self.session.refresh(debt)
        return debt

    def delete(self, debt_id: int) -> None:
        debt = self.get(debt_id)
        self.session.delete(debt)
        self.session.commit()

    def summary(self, today: Optional[date] = None) -> dict[str, object]:
        today = today or local_today()
        debts = self.list()
        pending = [d for d in debts if d.status == DebtStatus.pending]
        i_owe = sum(d.amount_cents for d in pending if d.type == DebtType.owe)
        owed_to_me = sum(d.amount_cents for d in pending if d.type == DebtType.owed)

        people: dict[tuple[str, DebtType], dict[str, object]] = {}
        for debt in sorted(pending, key=lambda d: (d.created_date, d.id)):
            key = (debt.person_name, debt.type)
            entry = people.get(key)
            if entry is None:
                entry = {
                    "person_name": debt.person_name,
                    "type": debt.type.value,
                    "pending_cents": 0,
                    "pending_count": 0,
                    "oldest_created_date": debt.created_date,
                    "days_outstanding": (today - debt.created_date).days,
                    "oldest_due_date": debt.due_date,
                }
                people[key] = entry
            entry["pending_cents"] += debt.amount_cents
            entry["pending_count"] += 1

        return {
            "i_owe_cents": i_owe,
            "owed_to_me_cents": owed_to_me,
            "net_balance_cents": owed_to_me - i_owe,
            "total_debts": len(debts),
            "pending_debts": len(pending),
            "people_i_owe": [
                p for (_, kind), p in people.items() if kind == DebtType.owe
            ],
            "people_who_owe_me": [
                p for (_, kind), p in people.items() if kind == DebtType.owed
            ],
        }


class SubscriptionService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list(self) -> list[Subscription]:
        stmt = (
            select(Subscription)
            .where(Subscription.user_id == self.user_id)
            .order_by(Subscription.next_billing_date.asc(), Subscription.id.asc())
        )
        return list(self.session.scalars(stmt).all())

    def get(self, subscription_id: int) -> Subscription:
        sub = self.session.get(Subscription, subscription_id)
        if not sub or sub.user_id != self.user_id:
            raise NotFoundError("Subscription not found")
        return sub

    def create(self, data: SubscriptionIn) -> Subscription:
        sub = Subscription(user_id=self.user_id)
        self._apply(sub, data)
        self.session.add(sub)
        self.session.commit()
        self.session.refresh(sub)
        return sub

    def update(self, subscription_id: int, data: SubscriptionIn) -> Subscription:
        sub = self.get(subscription_id)
        self._apply(sub, data)
        self.session.commit()
        self.session.refresh(sub)
        return sub

    def delete(self, subscription_id: int) -> None:
        sub = self.get(subscription_id)
        self.session.delete(sub)
        self.session.commit()

    def summary(self, today: Optional[date] = None) -> SubscriptionSummary:
        return compute_subscription_summary(self.list(), today or local_today())

    def roll_forward_due(self, today: Optional[date] = None) -> int:
        count = BillingEngine(self.session, self.user_id).roll_forward_due(today)
        self.session.commit()
        return count

    @staticmethod
    def _apply(sub: Subscription, data: SubscriptionIn) -> None:
        sub.name = data.name.strip()
        sub.cost_cents = data.cost_cents
        sub.billing_cycle = data.billing_cycle
        sub.next_billing_date = data.next_billing_date
        sub.category = data.category.strip() if data.category else None
        sub.description = data.description
        sub.status = data.status


class MetricsService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def _totals(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> tuple[int, int]:
        def total_of(txn_type: TransactionType):
            return func.coalesce(
                func.sum(
                    case(
                        (Transaction.type == txn_type, Transaction.amount_cents),
                        else_=0,
                    )
                ),
                0,
            )

        stmt = select(
            total_of(TransactionType.income).label("income"),
            total_of(TransactionType.expense).label("expenses"),
        ).where(Transaction.user_id == self.user_id)
        if start:
            stmt = stmt.where(Transaction.date >= start)
        if end:
            stmt = stmt.where(Transaction.date <= end)
        row = self.session.execute(stmt).one()
        return int(row.income or 0), int(row.expenses or 0)

    def monthly_stats(self, today: Optional[date] = None) -> dict[str, int]:
        today = today or local_today()
        start = today.replace(day=1)
        income, expenses = self._totals(start, month_end(today.year, today.month))
        total_income, total_expenses = self._totals()
        return {
            "income_cents": income,
            "expenses_cents": expenses,
            "balance_cents": total_income - total_expenses,
        }


class ReportService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.transactions = TransactionService(session, self.user_id)

    def gather_data(self, period: Period) -> dict[str, object]:
        txns = self.transactions.list(
            TransactionFilters(start=period.start, end=period.end)
        )
        income = sum(t.amount_cents for t in txns if t.type == TransactionType.income)
        expenses = sum(
            t.amount_cents for t in txns if t.type == TransactionType.expense
        )

        daily: dict[date, dict[str, int]] = {}
        by_category: dict[str, int] = {}
        for txn in txns:
            day = daily.setdefault(txn.date, {"income_cents": 0, "expense_cents": 0})
            if txn.type == TransactionType.income:
                day["income_cents"] += txn.amount_cents
            else:
                day["expense_cents"] += txn.amount_cents
                by_category[txn.category] = (
                    by_category.get(txn.category, 0) + txn.amount_cents
                )

        distribution = [
            {
                "category": name,
                "amount_cents": amount,
                "share": round(amount / expenses, 4) if expenses else 0.0,
            }
            for name, amount in by_category.items()
        ]
        distribution.sort(key=lambda row: row["amount_cents"], reverse=True)

        return {
            "period": period,
            "total_income_cents": income,
            "total_expenses_cents": expenses,
            "net_balance_cents": income - expenses,
            "daily": [
                {"date": day, **values} for day, values in sorted(daily.items())
            ],
            "category_distribution": distribution,
            "transactions": txns,
        }


class CSVService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def export(self, transactions: list[Transaction]) -> str:
        return export_transactions(transactions)

    def commit(self, content: str) -> int:
        rows, errors = parse_csv(content)
        if errors:
            raise ValidationError("; ".join(errors))
        txn_service = TransactionService(self.session, self.user_id)
        for row in rows:
            txn_service.create(
                TransactionIn(
                    amount_cents=row.amount_cents,
                    description=row.description,
                    category=row.category,
                    type=row.type,
                    date=row.date,
                ),
                commit=False,
            )
        self.session.commit()
        logger.info(f"csv_import: rows={len(rows)}")
        return len(rows)


class DataService:
    """Whole-account operations: JSON backup and clearing all data."""

    def __init__(
        self,
        session: Session,
        user_id: Optional[int] = None,
        preferences: Optional[PreferencesStore] = None,
    ) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.preferences = preferences or SQLPreferencesStore(session, self.user_id)

    def export_backup(self) -> dict[str, object]:
        prefs = self.preferences.load()
        txns = TransactionService(self.session, self.user_id).list()
        return {
            "transactions": txns,
            "categories": list(prefs.categories),
            "settings": {"currency": prefs.currency, "theme": prefs.theme},
        }

    def clear_all(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for model in (
            Transaction,
            Budget,
            Goal,
            ExpenseLimit,
            Debt,
            Subscription,
        ):
            result = self.session.execute(
                delete(model).where(model.user_id == self.user_id)
            )
            counts[model.__tablename__] = result.rowcount or 0
        counts["preferences"] = self.preferences.reset()
        self.session.commit()
        logger.warning(f"clear_all: user={self.user_id} deleted={counts}")
        return counts
