"""
services/ledger_service.py — Derived ledger figures and the legacy upgrade.

This file is the SINGLE SOURCE OF TRUTH for how an expense's paid and
remaining amounts are computed. Nothing stores these figures; every read
recomputes them from the payment sequence, so they can never drift.

    total_paid       = sum(p.amount for p in payments)        if payments
                     = cost_amount if already_paid else 0     otherwise (legacy)
    remaining_amount = cost_amount - total_paid               (never clamped)

Layer rules:
  - No Flask imports and no database access.
  - Works on anything shaped like a BudgetExpense (ORM rows in production,
    SimpleNamespace objects in unit tests).
  - Returns Decimals and plain dicts.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from campledger.app.models.payment import Payment


_ZERO = Decimal("0")


# ── Per-expense figures ────────────────────────────────────────────────────

def total_paid(expense) -> Decimal:
    """
    Sum of all payment amounts.

    Rows written before multi-payer tracking have no payments; for those the
    legacy flag decides: fully paid (cost_amount) or nothing.
    """
    if expense.payments:
        return sum((Decimal(p.amount) for p in expense.payments), _ZERO)
    return Decimal(expense.cost_amount) if expense.already_paid else _ZERO


def remaining_amount(expense) -> Decimal:
    """cost_amount - total_paid. Negative means the expense was overpaid."""
    return Decimal(expense.cost_amount) - total_paid(expense)


def total_returned(expense) -> Decimal:
    """Sum of payments whose money has been returned to the payer."""
    if expense.payments:
        return sum(
            (Decimal(p.amount) for p in expense.payments if p.money_returned),
            _ZERO,
        )
    if expense.already_paid and expense.money_returned:
        return Decimal(expense.cost_amount)
    return _ZERO


def payment_status(expense) -> str:
    """'paid' once total_paid covers the cost, 'partial' if anything was paid, else 'unpaid'."""
    paid = total_paid(expense)
    if paid >= Decimal(expense.cost_amount):
        return "paid"
    if paid > _ZERO:
        return "partial"
    return "unpaid"


def unreturned_payments(expense) -> dict:
    """
    Count and total of payments still owed back to their payers.

    Returns: {"count": int, "total": Decimal}
    """
    if expense.payments:
        pending = [p for p in expense.payments if not p.money_returned]
        return {
            "count": len(pending),
            "total": sum((Decimal(p.amount) for p in pending), _ZERO),
        }
    if expense.already_paid and not expense.money_returned:
        return {"count": 1, "total": Decimal(expense.cost_amount)}
    return {"count": 0, "total": _ZERO}


# ── Legacy upgrade ─────────────────────────────────────────────────────────

def has_legacy_payment(expense) -> bool:
    """True when the legacy scalar fields record a payment the sequence lacks."""
    return bool(
        expense.already_paid
        and expense.who_paid is not None
        and not expense.payments
    )


def upgrade_legacy_payment(expense) -> Payment | None:
    """
    Materialises the legacy single payment as a real payment entry.

    Called by the services before every save. When already_paid is set with a
    payer and the payment sequence is empty, one payment is appended:
    amount = cost_amount, dated date_of_expense, carrying the legacy payer,
    cached name and money_returned flag. The legacy fields themselves are
    left untouched so old readers keep working.

    A zero-cost expense is not upgraded: a payment amount must be positive.

    Returns the new Payment, or None when nothing was upgraded.
    """
    if not has_legacy_payment(expense):
        return None
    if Decimal(expense.cost_amount) <= _ZERO:
        return None

    payment = Payment(
        amount=Decimal(expense.cost_amount),
        who_paid=expense.who_paid,
        who_paid_name=expense.who_paid_name or "",
        date_paid=expense.date_of_expense,
        money_returned=bool(expense.money_returned),
        notes="",
    )
    expense.payments.append(payment)
    return payment


# ── Aggregates over many expenses ──────────────────────────────────────────

def summarize(expenses: list) -> dict:
    """
    Budget-wide statistics for the admin dashboard.

    paidExpenses counts expenses whose total_paid covers the cost;
    partiallyPaidExpenses counts 0 < total_paid < cost and is a subset of
    unpaidExpenses.
    """
    stats = {
        "totalExpenses": 0,
        "totalAmount": _ZERO,
        "paidAmount": _ZERO,
        "unpaidAmount": _ZERO,
        "returnedAmount": _ZERO,
        "paidExpenses": 0,
        "unpaidExpenses": 0,
        "partiallyPaidExpenses": 0,
    }
    for expense in expenses:
        cost = Decimal(expense.cost_amount)
        paid = total_paid(expense)

        stats["totalExpenses"] += 1
        stats["totalAmount"] += cost
        stats["paidAmount"] += paid
        stats["unpaidAmount"] += cost - paid
        stats["returnedAmount"] += total_returned(expense)

        if paid >= cost:
            stats["paidExpenses"] += 1
        else:
            stats["unpaidExpenses"] += 1
            if paid > _ZERO:
                stats["partiallyPaidExpenses"] += 1
    return stats


def category_breakdown(expenses: list) -> list[dict]:
    """Per-category count, cost and paid totals, largest cost first."""
    buckets: dict[str, dict] = defaultdict(
        lambda: {"count": 0, "totalAmount": _ZERO, "paidAmount": _ZERO}
    )
    for expense in expenses:
        category = getattr(expense.cost_category, "value", expense.cost_category)
        bucket = buckets[category]
        bucket["count"] += 1
        bucket["totalAmount"] += Decimal(expense.cost_amount)
        bucket["paidAmount"] += total_paid(expense)

    rows = [{"category": name, **values} for name, values in buckets.items()]
    rows.sort(key=lambda row: row["totalAmount"], reverse=True)
    return rows
