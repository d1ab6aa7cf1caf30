from datetime import date, timedelta
from fractions import Fraction

from billing import (
    compute_subscription_summary,
    monthly_equivalent,
    round_cents,
    yearly_equivalent,
)
from models import BillingCycle, Subscription, SubscriptionStatus

TODAY = date(2025, 6, 1)


def _sub(
    sub_id: int,
    cost_cents: int,
    cycle: BillingCycle,
    next_in_days: int,
    category: str | None = None,
    status: SubscriptionStatus = SubscriptionStatus.active,
) -> Subscription:
    return Subscription(
        id=sub_id,
        user_id=1,
        name=f"sub {sub_id}",
        cost_cents=cost_cents,
        billing_cycle=cycle,
        next_billing_date=TODAY + timedelta(days=next_in_days),
        category=category,
        status=status,
    )


def test_monthly_equivalent_per_cycle():
    assert monthly_equivalent(1_000, BillingCycle.weekly) == 4_330
    assert monthly_equivalent(1_000, BillingCycle.monthly) == 1_000
    assert monthly_equivalent(9_000, BillingCycle.quarterly) == 3_000
    assert monthly_equivalent(12_000, BillingCycle.yearly) == 1_000


def test_yearly_and_quarterly_costs_round_trip_exactly():
    assert yearly_equivalent(12_000, BillingCycle.yearly) == 12_000
    assert monthly_equivalent(10_000, BillingCycle.quarterly) == Fraction(10_000, 3)
    assert yearly_equivalent(10_000, BillingCycle.quarterly) == 40_000


def test_round_cents_is_half_up():
    assert round_cents(Fraction(1, 2)) == 1
    assert round_cents(Fraction(10_000, 3)) == 3_333
    assert round_cents(Fraction(5)) == 5


def test_summary_counts_active_subscriptions_only():
    paused = SubscriptionStatus.paused
    subs = [
        _sub(1, 1_599, BillingCycle.monthly, 7, "Entertainment"),
        _sub(2, 12_000, BillingCycle.yearly, 8, "Health"),
        _sub(3, 1_000, BillingCycle.weekly, 31),
        _sub(4, 500, BillingCycle.monthly, 1, "Entertainment", paused),
        _sub(5, 500, BillingCycle.monthly, 1, "News", SubscriptionStatus.cancelled),
    ]

    summary = compute_subscription_summary(subs, TODAY)

    assert summary.total_active == 3
    assert summary.monthly_cost_cents == 1_599 + 1_000 + 4_330
    assert summary.yearly_cost_cents == (1_599 + 1_000 + 4_330) * 12
    assert summary.upcoming_this_week == 1
    assert summary.upcoming_this_month == 2
    assert summary.by_category["Entertainment"].count == 1
    assert summary.by_category["Entertainment"].monthly_cost_cents == 1_599
    assert summary.by_category["Other"].monthly_cost_cents == 4_330
    assert "News" not in summary.by_category


def test_yearly_cost_is_not_built_from_rounded_monthly_cost():
    summary = compute_subscription_summary(
        [_sub(1, 1_000, BillingCycle.quarterly, 40)], TODAY
    )
    assert summary.monthly_cost_cents == 333
    assert summary.yearly_cost_cents == 4_000


def test_upcoming_windows_are_inclusive_and_include_overdue():
    subs = [
        _sub(1, 100, BillingCycle.monthly, 7),
        _sub(2, 100, BillingCycle.monthly, -3),
        _sub(3, 100, BillingCycle.monthly, 30),
        _sub(4, 100, BillingCycle.monthly, 31),
    ]

    summary = compute_subscription_summary(subs, TODAY)
    assert summary.upcoming_this_week == 2
    assert summary.upcoming_this_month == 3


def test_summary_of_nothing_is_zero():
    summary = compute_subscription_summary([], TODAY)
    assert summary.total_active == 0
    assert summary.monthly_cost_cents == 0
    assert summary.yearly_cost_cents == 0
    assert summary.by_category == {}
