from datetime import date

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from models import BillingCycle, SubscriptionStatus
from recurrence import billing_date_after, next_billing_on_or_after
from schemas import SubscriptionIn
from services import SubscriptionService


def test_monthly_billing_snaps_to_month_end_without_drifting():
    anchor = date(2025, 1, 31)
    assert billing_date_after(anchor, BillingCycle.monthly, 1) == date(2025, 2, 28)
    assert billing_date_after(anchor, BillingCycle.monthly, 2) == date(2025, 3, 31)
    assert billing_date_after(anchor, BillingCycle.quarterly, 1) == date(2025, 4, 30)


def test_weekly_and_yearly_billing_dates():
    assert billing_date_after(date(2025, 1, 1), BillingCycle.weekly, 2) == date(
        2025, 1, 15
    )
    assert billing_date_after(date(2024, 2, 29), BillingCycle.yearly, 1) == date(
        2025, 2, 28
    )


def test_next_billing_on_or_after_today():
    assert next_billing_on_or_after(
        date(2025, 1, 31), BillingCycle.monthly, date(2025, 3, 1)
    ) == date(2025, 3, 31)
    assert next_billing_on_or_after(
        date(2025, 1, 10), BillingCycle.weekly, date(2025, 1, 24)
    ) == date(2025, 1, 24)
    future = date(2025, 9, 1)
    assert next_billing_on_or_after(future, BillingCycle.yearly, date(2025, 1, 1)) == (
        future
    )


def test_roll_forward_only_advances_active_overdue_subscriptions():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = SubscriptionService(session)
        overdue = service.create(
            SubscriptionIn(
                name="Streaming",
                cost_cents=1_299,
                billing_cycle=BillingCycle.monthly,
                next_billing_date=date(2025, 1, 10),
                category="Entertainment",
            )
        )
        paused = service.create(
            SubscriptionIn(
                name="Gym",
                cost_cents=4_000,
                billing_cycle=BillingCycle.monthly,
                next_billing_date=date(2025, 1, 10),
                status=SubscriptionStatus.paused,
            )
        )
        due_today = service.create(
            SubscriptionIn(
                name="Cloud",
                cost_cents=299,
                billing_cycle=BillingCycle.monthly,
                next_billing_date=date(2025, 3, 5),
            )
        )

        count = service.roll_forward_due(date(2025, 3, 5))

        assert count == 1
        assert service.get(overdue.id).next_billing_date == date(2025, 3, 10)
        assert service.get(paused.id).next_billing_date == date(2025, 1, 10)
        assert service.get(due_today.id).next_billing_date == date(2025, 3, 5)
