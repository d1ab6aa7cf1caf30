import datetime as dt
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from models import (
    BillingCycle,
    DebtStatus,
    DebtType,
    GoalStatus,
    PeriodType,
    SubscriptionStatus,
    TransactionType,
)


class StrippedModel(BaseModel):
    """Strips surrounding whitespace before length bounds are checked."""

    model_config = ConfigDict(str_strip_whitespace=True)


class TransactionIn(StrippedModel):
    amount_cents: int = Field(..., ge=0)
    description: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=50)
    type: TransactionType
    date: Optional[dt.date] = None
    occurred_at: Optional[datetime] = None


class BudgetIn(StrippedModel):
    category: str = Field(..., min_length=1, max_length=50)
    amount_cents: int = Field(..., ge=0)
    start_date: date
    end_date: date


class GoalIn(StrippedModel):
    name: str = Field(..., min_length=1, max_length=255)
    target_cents: int = Field(..., ge=0)
    current_cents: int = Field(default=0, ge=0)
    deadline: Optional[date] = None


class GoalProgressIn(BaseModel):
    current_cents: int = Field(..., ge=0)
    status: Optional[GoalStatus] = None


class ExpenseLimitIn(StrippedModel):
    """Either an explicit window (custom) or a period_start to derive it from."""

    category: str = Field(..., min_length=1, max_length=50)
    limit_cents: int = Field(..., ge=0)
    period_type: PeriodType = PeriodType.monthly
    period_start: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class DebtIn(StrippedModel):
    person_name: str = Field(..., min_length=1, max_length=120)
    amount_cents: int = Field(..., ge=0)
    description: Optional[str] = Field(default=None, max_length=500)
    type: DebtType
    created_date: Optional[date] = None
    due_date: Optional[date] = None


class DebtStatusIn(BaseModel):
    status: DebtStatus


class SubscriptionIn(StrippedModel):
    name: str = Field(..., min_length=1, max_length=120)
    cost_cents: int = Field(..., ge=0)
    billing_cycle: BillingCycle
    next_billing_date: date
    category: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    status: SubscriptionStatus = SubscriptionStatus.active


class PreferencesIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    currency: Literal["USD", "EUR", "GBP", "INR"] = "USD"
    theme: Literal["light", "dark"] = "light"
    privacy_mode: bool = False
    categories: list[str] = Field(default_factory=list, max_length=100)


class CSVRow(StrippedModel):
    date: date
    type: TransactionType
    amount_cents: int = Field(..., ge=0)
    category: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=255)


class CategoryIn(StrippedModel):
    name: str = Field(..., min_length=1, max_length=50)
