"""
models/expense.py — Budget expense table definition.

No business logic. No imports from services or routes.

Key design points:
  - Money columns use Numeric(12, 2) — never Float.
  - `payments` is an ordered, owned collection: insertion order is entry
    order (kept in budget_payments.position), and deleting an expense
    deletes its payments. Payments are never addressed without their expense.
  - already_paid / who_paid / who_paid_name / money_returned are the legacy
    single-payment fields. They are kept so pre-multi-payment rows still
    read correctly; ledger_service.upgrade_legacy_payment() turns them into
    a payment entry on save.
  - totalPaid / remainingAmount are NOT columns. They are computed on every
    read by ledger_service.
  - CostCategory is a Python enum so it can be imported by schemas and
    services without repeating string literals.
"""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campledger.app.extensions import db


# ── Enum Definitions ───────────────────────────────────────────────────────

class CostCategory(str, enum.Enum):
    FOOD_AND_BEVERAGES   = "Food & Beverages"
    TRANSPORTATION       = "Transportation"
    EQUIPMENT_SUPPLIES   = "Equipment & Supplies"
    ART_DECORATIONS      = "Art & Decorations"
    INFRASTRUCTURE       = "Infrastructure"
    EMERGENCY_MEDICAL    = "Emergency/Medical"
    GIFT                 = "Gift"
    OTHER                = "Other"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g. 'Gift'), not names ('GIFT')."""
    return [member.value for member in enum_cls]


# ── Model ──────────────────────────────────────────────────────────────────

class BudgetExpense(db.Model):
    __tablename__ = "budget_expenses"

    __table_args__ = (
        CheckConstraint("cost_amount >= 0", name="ck_budget_expenses_cost_nonnegative"),
        CheckConstraint("quantity >= 0", name="ck_budget_expenses_quantity_nonnegative"),
        Index("idx_budget_expenses_category", "cost_category"),
        Index("idx_budget_expenses_date", "date_of_expense"),
        Index("idx_budget_expenses_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    cost_category: Mapped[CostCategory] = mapped_column(
        Enum(
            CostCategory,
            name="cost_category_enum",
            native_enum=False,
            length=50,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=CostCategory.OTHER,
    )

    item: Mapped[str] = mapped_column(String(200), nullable=False)

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default="1",
    )

    cost_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    date_of_expense: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Legacy single-payment fields ───────────────────────────────────────
    already_paid: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    # Member id as stored by the old single-payer form. Not a FK: old rows may
    # point at members that were removed since.
    who_paid: Mapped[int | None] = mapped_column(Integer, nullable=True)

    who_paid_name: Mapped[str | None] = mapped_column(String(201), nullable=True)

    money_returned: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    payments: Mapped[list["Payment"]] = relationship(  # noqa: F821
        "Payment",
        back_populates="expense",
        order_by="Payment.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<BudgetExpense id={self.id} "
            f"item={self.item!r} "
            f"cost_amount={self.cost_amount} "
            f"payments={len(self.payments)}>"
        )
