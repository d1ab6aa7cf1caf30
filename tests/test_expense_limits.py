from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from models import PeriodType, TransactionType
from schemas import ExpenseLimitIn, TransactionIn
from services import ExpenseLimitService, TransactionService, ValidationError


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine)


def _expense(session: Session, amount_cents: int, day: date, category="Food"):
    return TransactionService(session).create(
        TransactionIn(
            amount_cents=amount_cents,
            description=f"{category} on {day.isoformat()}",
            category=category,
            type=TransactionType.expense,
            date=day,
        )
    )


def test_upsert_derives_monthly_window_from_period_start():
    with _session() as session:
        limit = ExpenseLimitService(session).upsert(
            ExpenseLimitIn(
                category="Food",
                limit_cents=20_000,
                period_type=PeriodType.monthly,
                period_start=date(2025, 2, 1),
            )
        )
        assert limit.start_date == date(2025, 2, 1)
        assert limit.end_date == date(2025, 2, 28)


def test_upsert_replaces_limit_for_same_category_and_window():
    with _session() as session:
        service = ExpenseLimitService(session)
        payload = dict(
            category="Food",
            period_type=PeriodType.custom,
            start_date=date(2025, 1, 1),
            end_date=date(2025, 1, 31),
        )
        first = service.upsert(ExpenseLimitIn(limit_cents=10_000, **payload))
        second = service.upsert(ExpenseLimitIn(limit_cents=15_000, **payload))

        assert second.id == first.id
        [stored] = service.list()
        assert stored.limit_cents == 15_000

        service.upsert(
            ExpenseLimitIn(
                category="Food",
                limit_cents=1_000,
                period_type=PeriodType.custom,
                start_date=date(2025, 1, 1),
                end_date=date(2025, 1, 15),
            )
        )
        assert len(service.list()) == 2


def test_upsert_rejects_inverted_or_missing_window():
    with _session() as session:
        service = ExpenseLimitService(session)
        with pytest.raises(ValidationError):
            service.upsert(
                ExpenseLimitIn(
                    category="Food",
                    limit_cents=1_000,
                    period_type=PeriodType.custom,
                    start_date=date(2025, 2, 1),
                    end_date=date(2025, 1, 1),
                )
            )
        with pytest.raises(ValidationError):
            service.upsert(
                ExpenseLimitIn(
                    category="Food", limit_cents=1_000, period_type=PeriodType.yearly
                )
            )
        assert service.list() == []


def test_statuses_and_overages_from_stored_rows():
    with _session() as session:
        service = ExpenseLimitService(session)
        limit = service.upsert(
            ExpenseLimitIn(
                category="Food",
                limit_cents=5_000,
                period_type=PeriodType.monthly,
                period_start=date(2025, 1, 1),
            )
        )
        _expense(session, 3_000, date(2025, 1, 5))
        crossing = _expense(session, 3_000, date(2025, 1, 10))
        _expense(session, 9_000, date(2025, 2, 1))
        _expense(session, 9_000, date(2025, 1, 10), category="Bills")

        [status] = service.statuses()
        assert status.id == limit.id
        assert status.spent_cents == 6_000
        assert status.exceeded
        assert status.exceeded_by_cents == 1_000

        [flagged] = service.exceeded_transactions()
        assert flagged.transaction_id == crossing.id
        assert flagged.exceeded_by_cents == 1_000
        assert flagged.limit_id == limit.id
