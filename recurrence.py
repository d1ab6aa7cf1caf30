import logging
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from config import get_settings
from models import BillingCycle, Subscription, SubscriptionStatus

logger = logging.getLogger(__name__)

CYCLE_MONTHS = {
    BillingCycle.monthly: 1,
    BillingCycle.quarterly: 3,
    BillingCycle.yearly: 12,
}


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def add_months(base: date, months: int, *, desired_day: Optional[int] = None) -> date:
    total_months = base.month - 1 + months
    year = base.year + total_months // 12
    month = total_months % 12 + 1
    day = desired_day or base.day
    return date(year, month, min(day, days_in_month(year, month)))


def billing_date_after(anchor: date, cycle: BillingCycle, periods: int) -> date:
    """Billing date ``periods`` cycles after ``anchor``.

    Month-based cycles are computed from the anchor each time so that a
    subscription billed on the 31st snaps to shorter month ends without
    drifting to the 28th for good.
    """
    cycle = BillingCycle(cycle)
    if cycle == BillingCycle.weekly:
        return anchor + timedelta(weeks=periods)
    return add_months(anchor, CYCLE_MONTHS[cycle] * periods, desired_day=anchor.day)


def next_billing_on_or_after(anchor: date, cycle: BillingCycle, today: date) -> date:
    if anchor >= today:
        return anchor
    periods = 1
    max_periods = 2000  # ~38 years of weekly billing
    candidate = billing_date_after(anchor, cycle, periods)
    while candidate < today and periods < max_periods:
        periods += 1
        candidate = billing_date_after(anchor, cycle, periods)
    return candidate


class BillingEngine:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id

    def roll_forward_due(self, today: Optional[date] = None) -> int:
        today = today or local_today()
        stmt = (
            select(Subscription)
            .where(
                Subscription.status == SubscriptionStatus.active,
                Subscription.next_billing_date < today,
            )
            .order_by(Subscription.next_billing_date)
        )
        if self.user_id is not None:
            stmt = stmt.where(Subscription.user_id == self.user_id)
        count = 0
        for sub in self.session.scalars(stmt).all():
            previous = sub.next_billing_date
            sub.next_billing_date = next_billing_on_or_after(
                previous, sub.billing_cycle, today
            )
            logger.info(
                f"billing_roll_forward: subscription={sub.id} "
                f"from={previous.isoformat()} to={sub.next_billing_date.isoformat()}"
            )
            count += 1
        self.session.flush()
        return count
