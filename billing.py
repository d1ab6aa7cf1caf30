from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from fractions import Fraction
from typing import Iterable

from models import BillingCycle, Subscription, SubscriptionStatus

# 4.33 is the average number of weeks per month used for weekly plans.
MONTHLY_FACTORS: dict[BillingCycle, Fraction] = {
    BillingCycle.weekly: Fraction(433, 100),
    BillingCycle.monthly: Fraction(1),
    BillingCycle.quarterly: Fraction(1, 3),
    BillingCycle.yearly: Fraction(1, 12),
}

UPCOMING_WEEK_DAYS = 7
UPCOMING_MONTH_DAYS = 30
UNCATEGORIZED = "Other"


def monthly_equivalent(cost_cents: int, cycle: BillingCycle) -> Fraction:
    return cost_cents * MONTHLY_FACTORS[BillingCycle(cycle)]


def yearly_equivalent(cost_cents: int, cycle: BillingCycle) -> Fraction:
    return monthly_equivalent(cost_cents, cycle) * 12


def round_cents(value: Fraction) -> int:
    exact = Decimal(value.numerator) / Decimal(value.denominator)
    return int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class CategoryCost:
    count: int
    monthly_cost_cents: int


@dataclass(frozen=True)
class SubscriptionSummary:
    total_active: int
    monthly_cost_cents: int
    yearly_cost_cents: int
    upcoming_this_week: int
    upcoming_this_month: int
    by_category: dict[str, CategoryCost] = field(default_factory=dict)


def compute_subscription_summary(
    subscriptions: Iterable[Subscription], today: date
) -> SubscriptionSummary:
    active = [s for s in subscriptions if s.status == SubscriptionStatus.active]
    week_end = today + timedelta(days=UPCOMING_WEEK_DAYS)
    month_end = today + timedelta(days=UPCOMING_MONTH_DAYS)

    monthly_total = Fraction(0)
    counts: dict[str, int] = {}
    per_category: dict[str, Fraction] = {}
    for sub in active:
        monthly = monthly_equivalent(sub.cost_cents, sub.billing_cycle)
        monthly_total += monthly
        category = sub.category or UNCATEGORIZED
        counts[category] = counts.get(category, 0) + 1
        per_category[category] = per_category.get(category, Fraction(0)) + monthly

    return SubscriptionSummary(
        total_active=len(active),
        monthly_cost_cents=round_cents(monthly_total),
        yearly_cost_cents=round_cents(monthly_total * 12),
        upcoming_this_week=sum(1 for s in active if s.next_billing_date <= week_end),
        upcoming_this_month=sum(
            1 for s in active if s.next_billing_date <= month_end
        ),
        by_category={
            name: CategoryCost(
                count=counts[name], monthly_cost_cents=round_cents(total)
            )
            for name, total in sorted(per_category.items())
        },
    )
