"""
models/payment.py — Payment table definition.

A payment is one contribution toward a budget expense, attributed to a payer.
No business logic. No imports from services or routes.

Key design points:
  - `amount` uses Numeric(12, 2) — never Float. CHECK(amount > 0).
  - expense_id is ON DELETE CASCADE — payments are owned by their expense.
  - `position` keeps entry order; it is maintained by the ordering_list
    collection on BudgetExpense.payments and never set by hand.
  - `who_paid_name` is a snapshot of the payer's name taken when the payment
    was written. It is historical and is NOT kept in sync with the members
    table; renaming a member does not rewrite past payments.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campledger.app.extensions import db


class Payment(db.Model):
    __tablename__ = "budget_payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_budget_payments_amount_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    expense_id: Mapped[int] = mapped_column(
        ForeignKey("budget_expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    # Member id of the payer. Resolved against the directory when written.
    who_paid: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    who_paid_name: Mapped[str] = mapped_column(
        String(201),
        nullable=False,
        default="",
    )

    date_paid: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    money_returned: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    notes: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        default="",
    )

    # ── Relationships ──────────────────────────────────────────────────────

    expense: Mapped["BudgetExpense"] = relationship(  # noqa: F821
        "BudgetExpense",
        back_populates="payments",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Payment id={self.id} "
            f"expense_id={self.expense_id} "
            f"amount={self.amount} "
            f"who_paid={self.who_paid}>"
        )
