from contextlib import contextmanager
from datetime import date

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from models import BillingCycle, Subscription
from scheduler import SchedulerManager


def test_run_once_rolls_subscriptions_forward_and_commits():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        session.add(
            Subscription(
                user_id=1,
                name="Newspaper",
                cost_cents=900,
                billing_cycle=BillingCycle.weekly,
                next_billing_date=date(2025, 1, 1),
            )
        )
        session.commit()

    @contextmanager
    def factory():
        with Session(engine) as session:
            yield session
            session.commit()

    manager = SchedulerManager(session_factory=factory)
    assert manager.run_once(today=date(2025, 1, 10)) == 1
    assert manager.run_once(today=date(2025, 1, 10)) == 0

    with Session(engine) as session:
        sub = session.query(Subscription).one()
        assert sub.next_billing_date == date(2025, 1, 15)
