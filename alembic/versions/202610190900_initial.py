"""initial schema

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column(
            "type", sa.Enum("income", "expense", name="transactiontype"), nullable=False
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_positive"),
    )
    op.create_index("ix_transactions_user_date", "transactions", ["user_id", "date"])
    op.create_index(
        "ix_transactions_user_category_date",
        "transactions",
        ["user_id", "category", "date"],
    )

    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("amount_cents >= 0", name="ck_budget_amount_positive"),
        sa.CheckConstraint("start_date <= end_date", name="ck_budget_period_order"),
    )

    op.create_table(
        "expense_limits",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("limit_cents", sa.Integer(), nullable=False),
        sa.Column(
            "period_type",
            sa.Enum("monthly", "yearly", "custom", name="periodtype"),
            nullable=False,
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id",
            "category",
            "start_date",
            "end_date",
            name="uq_expense_limit_scope",
        ),
        sa.CheckConstraint("limit_cents >= 0", name="ck_expense_limit_amount_positive"),
        sa.CheckConstraint(
            "start_date <= end_date", name="ck_expense_limit_period_order"
        ),
    )

    op.create_table(
        "goals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("target_cents", sa.Integer(), nullable=False),
        sa.Column("current_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("deadline", sa.Date()),
        sa.Column(
            "status",
            sa.Enum("active", "completed", "cancelled", name="goalstatus"),
            nullable=False,
        ),
        *_timestamps(),
        sa.CheckConstraint("target_cents >= 0", name="ck_goal_target_positive"),
        sa.CheckConstraint("current_cents >= 0", name="ck_goal_current_positive"),
    )

    op.create_table(
        "debts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("person_name", sa.String(length=120), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("type", sa.Enum("owe", "owed", name="debttype"), nullable=False),
        sa.Column(
            "status", sa.Enum("pending", "paid", name="debtstatus"), nullable=False
        ),
        sa.Column("created_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date()),
        *_timestamps(),
        sa.CheckConstraint("amount_cents >= 0", name="ck_debt_amount_positive"),
    )
    op.create_index("ix_debts_user_status", "debts", ["user_id", "status"])

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("cost_cents", sa.Integer(), nullable=False),
        sa.Column(
            "billing_cycle",
            sa.Enum("weekly", "monthly", "quarterly", "yearly", name="billingcycle"),
            nullable=False,
        ),
        sa.Column("next_billing_date", sa.Date(), nullable=False),
        sa.Column("category", sa.String(length=50)),
        sa.Column("description", sa.Text()),
        sa.Column(
            "status",
            sa.Enum("active", "paused", "cancelled", name="subscriptionstatus"),
            nullable=False,
        ),
        *_timestamps(),
        sa.CheckConstraint("cost_cents >= 0", name="ck_subscription_cost_positive"),
    )
    op.create_index(
        "ix_subscriptions_user_status", "subscriptions", ["user_id", "status"]
    )

    op.create_table(
        "preferences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("key", sa.String(length=50), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "key", name="uq_preference_user_key"),
    )


def downgrade():
    op.drop_table("preferences")
    op.drop_index("ix_subscriptions_user_status", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_index("ix_debts_user_status", table_name="debts")
    op.drop_table("debts")
    op.drop_table("goals")
    op.drop_table("expense_limits")
    op.drop_table("budgets")
    op.drop_index("ix_transactions_user_category_date", table_name="transactions")
    op.drop_index("ix_transactions_user_date", table_name="transactions")
    op.drop_table("transactions")
