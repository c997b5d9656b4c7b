"""
services/expense_service.py — Budget expense CRUD.

Rules enforced here:
  - EXPENSE_NOT_FOUND (404) for any id that does not resolve.
  - Full-record writes (create, update) re-resolve the legacy payer name
    when whoPaid is set. An unknown legacy payer leaves the name empty
    rather than failing: old rows reference members that may be gone.
  - Every save runs ledger_service.upgrade_legacy_payment().
  - Delete is a hard delete. The deleted expense (payments loaded) is
    returned so the caller can show or restore it.

Authorization is not checked here. Every route that calls this module is
wrapped in @require_admin.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives plain ints and dicts; returns ORM objects or raises AppError.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from campledger.app.errors import AppError, ErrorCode
from campledger.app.models.expense import BudgetExpense
from campledger.app.models.payment import Payment
from campledger.app.services import ledger_service, member_service

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def get_expense_or_404(expense_id: int, session: Session) -> BudgetExpense:
    """Returns the BudgetExpense or raises EXPENSE_NOT_FOUND (404)."""
    expense = session.get(BudgetExpense, expense_id)
    if expense is None:
        raise AppError(
            ErrorCode.EXPENSE_NOT_FOUND,
            f"Budget expense {expense_id} does not exist.",
            404,
        )
    return expense


def _apply_fields(expense: BudgetExpense, data: dict, session: Session) -> None:
    """Copies validated ExpenseSchema fields onto the row."""
    expense.cost_category = data["cost_category"]
    expense.item = data["item"]
    expense.quantity = data["quantity"]
    expense.cost_amount = data["cost_amount"]
    expense.notes = data.get("notes")
    expense.already_paid = data["already_paid"]
    expense.money_returned = data["money_returned"]
    expense.who_paid = data.get("who_paid")
    expense.who_paid_name = member_service.find_display_name(expense.who_paid, session) or ""

    if data.get("date_of_expense") is not None:
        expense.date_of_expense = data["date_of_expense"]
    elif expense.date_of_expense is None:
        expense.date_of_expense = datetime.now(timezone.utc)


def _filtered_query(filters: dict):
    """SELECT for GET /budget with the category / paid / returned filters applied."""
    stmt = select(BudgetExpense)

    if filters.get("category") is not None:
        stmt = stmt.where(BudgetExpense.cost_category == filters["category"])

    # paid/returned filters match the legacy flags, as the dashboard's
    # filter dropdowns always have.
    if filters.get("paid_status") == "paid":
        stmt = stmt.where(BudgetExpense.already_paid.is_(True))
    elif filters.get("paid_status") == "unpaid":
        stmt = stmt.where(BudgetExpense.already_paid.is_(False))

    if filters.get("returned_status") == "returned":
        stmt = stmt.where(BudgetExpense.money_returned.is_(True))
    elif filters.get("returned_status") == "not-returned":
        stmt = stmt.where(BudgetExpense.money_returned.is_(False))

    return stmt


# ── Public service functions ───────────────────────────────────────────────

def create_expense(data: dict, session: Session) -> BudgetExpense:
    """
    Records a new budget expense.

    Args:
        data: Validated dict from ExpenseSchema.

    Returns:
        The new BudgetExpense, with a materialised payment if the legacy
        fields recorded one.
    """
    expense = BudgetExpense()
    _apply_fields(expense, data, session)
    ledger_service.upgrade_legacy_payment(expense)

    session.add(expense)
    session.flush()
    logger.info(
        "Created budget expense %s (%s, cost=%s)",
        expense.id, expense.item, expense.cost_amount,
    )
    return expense


def list_expenses(filters: dict, session: Session) -> dict:
    """
    Returns one page of expenses plus dashboard aggregates.

    Ordered by date_of_expense desc, then created_at desc. statistics and
    categoryStats cover every expense matching the filters, not just the page.

    Returns:
        {"expenses": [...], "pagination": {...}, "statistics": {...},
         "category_stats": [...]}
    """
    page: int = filters.get("page", 1)
    limit: int = filters.get("limit", 50)

    base = _filtered_query(filters)

    total = session.execute(
        select(func.count()).select_from(base.subquery())
    ).scalar_one()

    page_stmt = (
        base.options(selectinload(BudgetExpense.payments))
        .order_by(BudgetExpense.date_of_expense.desc(), BudgetExpense.created_at.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    expenses = list(session.execute(page_stmt).scalars().all())

    matching = list(
        session.execute(base.options(selectinload(BudgetExpense.payments))).scalars().all()
    )

    return {
        "expenses": expenses,
        "pagination": {
            "current": page,
            "pages": math.ceil(total / limit),
            "total": total,
            "limit": limit,
        },
        "statistics": ledger_service.summarize(matching),
        "category_stats": ledger_service.category_breakdown(matching),
    }


def get_expense(expense_id: int, session: Session) -> BudgetExpense:
    """Returns a single expense including its payments."""
    return get_expense_or_404(expense_id, session)


def update_expense(expense_id: int, data: dict, session: Session) -> BudgetExpense:
    """
    Full-record update of an expense.

    The payment sequence is not touched; use the payment endpoints for that.
    updated_at is set on every successful update.

    Args:
        data: Validated dict from ExpenseSchema (same rules as create).
    """
    expense = get_expense_or_404(expense_id, session)
    _apply_fields(expense, data, session)
    ledger_service.upgrade_legacy_payment(expense)

    expense.updated_at = datetime.now(timezone.utc)
    session.flush()
    logger.info("Updated budget expense %s", expense.id)
    return expense


def delete_expense(expense_id: int, session: Session) -> BudgetExpense:
    """
    Hard-deletes an expense and its payments.

    Returns the deleted expense. Its payments are loaded before the delete so
    the caller can still serialise it.
    """
    expense = get_expense_or_404(expense_id, session)
    payments: list[Payment] = list(expense.payments)

    session.delete(expense)
    session.flush()
    logger.info(
        "Deleted budget expense %s (%s) with %d payment(s)",
        expense_id, expense.item, len(payments),
    )
    return expense
