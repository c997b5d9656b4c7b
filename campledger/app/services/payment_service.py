"""
services/payment_service.py — Adding, editing, removing and replacing payments.

Every operation loads the whole expense, changes its payment sequence in
memory and flushes the expense back. There is no row lock or version
column: two admins appending to the same expense at the same moment can
lose one of the writes. This matches the single-operator use of the
dashboard and is a known limitation.

Rules enforced here:
  - EXPENSE_NOT_FOUND (404) — the expense id does not resolve.
  - PAYMENT_NOT_FOUND (404) — the payment id is not in that expense's sequence.
  - MEMBER_NOT_FOUND  (404) — a payer id does not resolve. Checked before any
                               mutation, so a failed call changes nothing.
  - amount > 0 and the array shape are schema rules (400), see payment_schema.py.

Every save re-runs the legacy upgrade (see _touch), so an expense paid under
the old single-payer fields never ends up with an empty payment sequence.

The payer's display name is looked up when the payment is written and stored
on the payment. It is a snapshot, never refreshed from the member later.

Layer rules:
  - No Flask imports. Receives plain ints and dicts; returns ORM objects or
    raises AppError.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from campledger.app.errors import AppError, ErrorCode
from campledger.app.models.expense import BudgetExpense
from campledger.app.models.payment import Payment
from campledger.app.services import ledger_service, member_service
from campledger.app.services.expense_service import get_expense_or_404

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _find_payment(expense: BudgetExpense, payment_id: int) -> Payment:
    """Returns the payment with payment_id from expense.payments, or raises PAYMENT_NOT_FOUND."""
    for payment in expense.payments:
        if payment.id == payment_id:
            return payment
    raise AppError(
        ErrorCode.PAYMENT_NOT_FOUND,
        f"Payment {payment_id} does not exist on budget expense {expense.id}.",
        404,
    )


def _touch(expense: BudgetExpense, session: Session) -> None:
    """
    Saves the expense: re-materialises a legacy payment the sequence has lost,
    stamps updated_at and writes the expense back.
    """
    ledger_service.upgrade_legacy_payment(expense)
    expense.updated_at = datetime.now(timezone.utc)
    session.flush()


# ── Public service functions ───────────────────────────────────────────────

def add_payment(expense_id: int, data: dict, session: Session) -> BudgetExpense:
    """
    Appends a payment to the end of an expense's payment sequence.

    Args:
        data: Validated dict from AddPaymentSchema.

    Order of checks: expense exists, then payer exists. Both happen before
    the sequence is touched.

    A legacy single payment is materialised first so it keeps counting
    toward total_paid once real payments exist.
    """
    expense = get_expense_or_404(expense_id, session)
    who_paid_name = member_service.resolve_payer_name(data["who_paid"], session)

    ledger_service.upgrade_legacy_payment(expense)

    payment = Payment(
        amount=data["amount"],
        who_paid=data["who_paid"],
        who_paid_name=who_paid_name,
        date_paid=data.get("date_paid") or datetime.now(timezone.utc),
        money_returned=data.get("money_returned", False),
        notes=data.get("notes") or "",
    )
    expense.payments.append(payment)

    _touch(expense, session)
    logger.info(
        "Added payment %s of %s by member %s to budget expense %s",
        payment.id, payment.amount, payment.who_paid, expense.id,
    )
    return expense


def update_payment(
        expense_id: int,
        payment_id: int,
        data: dict,
        session: Session,
) -> BudgetExpense:
    """
    Shallow-merges the provided fields into one payment.

    Args:
        data: Validated partial dict from UpdatePaymentSchema. Absent keys
              keep their stored values.

    If whoPaid changes to a different member, whoPaidName is re-resolved and
    any whoPaidName in the body is ignored. Otherwise a supplied whoPaidName
    is stored as given.
    """
    expense = get_expense_or_404(expense_id, session)
    payment = _find_payment(expense, payment_id)

    changes = dict(data)
    new_payer = changes.get("who_paid")
    if new_payer is not None and new_payer != payment.who_paid:
        changes["who_paid_name"] = member_service.resolve_payer_name(new_payer, session)

    for attribute, value in changes.items():
        setattr(payment, attribute, value)

    _touch(expense, session)
    logger.info(
        "Updated payment %s on budget expense %s (%s)",
        payment_id, expense.id, ", ".join(sorted(changes)) or "no fields",
    )
    return expense


def delete_payment(expense_id: int, payment_id: int, session: Session) -> BudgetExpense:
    """
    Removes exactly one payment from an expense.

    Raises PAYMENT_NOT_FOUND if nothing was removed, so deleting the same
    payment twice succeeds once and then returns 404.
    """
    expense = get_expense_or_404(expense_id, session)

    before = len(expense.payments)
    for payment in list(expense.payments):
        if payment.id == payment_id:
            expense.payments.remove(payment)
            break

    if len(expense.payments) == before:
        raise AppError(
            ErrorCode.PAYMENT_NOT_FOUND,
            f"Payment {payment_id} does not exist on budget expense {expense_id}.",
            404,
        )

    _touch(expense, session)
    logger.info("Deleted payment %s from budget expense %s", payment_id, expense.id)
    return expense


def replace_payments(
        expense_id: int,
        payments: list[dict],
        session: Session,
) -> BudgetExpense:
    """
    Replaces the whole payment sequence of an expense.

    Args:
        payments: Validated list from ReplacePaymentsSchema, in entry order.

    All payers are resolved before the sequence is swapped, so an unknown
    member leaves the stored payments untouched. A whoPaidName carried in an
    element is kept as the historical snapshot; otherwise the current name is
    looked up. The new entries get fresh ids.

    Replacing with an empty list on an expense whose legacy fields record a
    payment brings that legacy payment back on save.
    """
    expense = get_expense_or_404(expense_id, session)

    new_payments: list[Payment] = []
    for entry in payments:
        name = entry.get("who_paid_name")
        resolved = member_service.resolve_payer_name(entry["who_paid"], session, field="payments")
        new_payments.append(
            Payment(
                amount=entry["amount"],
                who_paid=entry["who_paid"],
                who_paid_name=name if name else resolved,
                date_paid=entry.get("date_paid") or datetime.now(timezone.utc),
                money_returned=entry.get("money_returned", False),
                notes=entry.get("notes") or "",
            )
        )

    expense.payments = new_payments
    _touch(expense, session)
    logger.info(
        "Replaced payments on budget expense %s (%d entries)",
        expense.id, len(expense.payments),
    )
    return expense
