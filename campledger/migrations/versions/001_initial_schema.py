"""Initial schema — members, budget expenses and their payments.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  1. members
  2. budget_expenses
  3. budget_payments (FK → budget_expenses)
  4. Indexes

ON DELETE policies:
  budget_payments.expense_id → CASCADE (payments are owned by their expense)

Member ids on expenses and payments (who_paid) are deliberately not foreign
keys: the payer name is a snapshot, and history must survive a member being
removed from the directory.

cost_category is a VARCHAR(50) holding the enum value, not a PostgreSQL enum
type, so new categories need no ALTER TYPE.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration, no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:

    # ── Step 1: members ────────────────────────────────────────────────────

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "is_approved",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_members"),
        sa.UniqueConstraint("email", name="uq_members_email"),
    )

    # ── Step 2: budget_expenses ────────────────────────────────────────────

    op.create_table(
        "budget_expenses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("cost_category", sa.String(50), nullable=False),
        sa.Column("item", sa.String(200), nullable=False),
        sa.Column(
            "quantity",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("1"),
        ),
        sa.Column("cost_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "date_of_expense",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "already_paid",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column("who_paid", sa.Integer(), nullable=True),
        sa.Column("who_paid_name", sa.String(201), nullable=True),
        sa.Column(
            "money_returned",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_budget_expenses"),
        sa.CheckConstraint(
            "cost_amount >= 0",
            name="ck_budget_expenses_cost_nonnegative",
        ),
        sa.CheckConstraint(
            "quantity >= 0",
            name="ck_budget_expenses_quantity_nonnegative",
        ),
    )

    # ── Step 3: budget_payments ────────────────────────────────────────────
    # FK: expense_id ON DELETE CASCADE

    op.create_table(
        "budget_payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "expense_id",
            sa.Integer(),
            sa.ForeignKey(
                "budget_expenses.id",
                ondelete="CASCADE",
                name="fk_budget_payments_expense",
            ),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("who_paid", sa.Integer(), nullable=False),
        sa.Column(
            "who_paid_name",
            sa.String(201),
            nullable=False,
            server_default=sa.text("''"),
        ),
        sa.Column("date_paid", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "money_returned",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "notes",
            sa.String(200),
            nullable=False,
            server_default=sa.text("''"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_budget_payments"),
        sa.CheckConstraint(
            "amount > 0",
            name="ck_budget_payments_amount_positive",
        ),
    )

    # ── Step 4: Indexes ────────────────────────────────────────────────────

    op.create_index("idx_members_name", "members", ["last_name", "first_name"])
    op.create_index("idx_budget_expenses_category", "budget_expenses", ["cost_category"])
    op.create_index("idx_budget_expenses_date", "budget_expenses", ["date_of_expense"])
    op.create_index("idx_budget_expenses_created", "budget_expenses", ["created_at"])
    op.create_index("ix_budget_payments_expense_id", "budget_payments", ["expense_id"])
    op.create_index("ix_budget_payments_who_paid", "budget_payments", ["who_paid"])


def downgrade() -> None:
    """
    Drop all objects created in upgrade(), in reverse dependency order.

    For local development resets only. Prefer a corrective migration over a
    downgrade on shared databases.
    """
    op.drop_index("ix_budget_payments_who_paid",   table_name="budget_payments")
    op.drop_index("ix_budget_payments_expense_id", table_name="budget_payments")
    op.drop_index("idx_budget_expenses_created",   table_name="budget_expenses")
    op.drop_index("idx_budget_expenses_date",      table_name="budget_expenses")
    op.drop_index("idx_budget_expenses_category",  table_name="budget_expenses")
    op.drop_index("idx_members_name",              table_name="members")

    op.drop_table("budget_payments")
    op.drop_table("budget_expenses")
    op.drop_table("members")
