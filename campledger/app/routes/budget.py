"""
routes/budget.py — Budget expense and payment route handlers.

Layer rules:
  - @require_admin runs first: no body parsing or DB access before the token
    is verified.
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.
  - _serialize_expense() is a pure data-shape helper; the derived figures come
    from ledger_service.

Endpoints (url_prefix=/api/budget):
  GET    /budget                               → 200  list + statistics
  POST   /budget                               → 201  create expense
  GET    /budget/:id                           → 200  expense + payments
  PUT    /budget/:id                           → 200  full-record update
  DELETE /budget/:id                           → 200  hard delete, returns record
  POST   /budget/:id/payments                  → 201  add payment
  PUT    /budget/:id/payments                  → 200  replace all payments
  PUT    /budget/:id/payments/:paymentId       → 200  update one payment
  DELETE /budget/:id/payments/:paymentId       → 200  delete one payment
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from campledger.app.extensions import db
from campledger.app.middleware.auth_middleware import require_admin
from campledger.app.models.expense import BudgetExpense
from campledger.app.models.payment import Payment
from campledger.app.schemas.expense_schema import ExpenseQuerySchema, ExpenseSchema
from campledger.app.schemas.payment_schema import (
    AddPaymentSchema,
    ReplacePaymentsSchema,
    UpdatePaymentSchema,
)
from campledger.app.services import expense_service, ledger_service, payment_service

budget_bp = Blueprint("budget", __name__)


# ── Serialization helpers ──────────────────────────────────────────────────
# Pure data-shaping, no DB access. Amounts stay Decimal; the app's JSON
# provider writes them as strings.

def _isoformat(value):
    return value.isoformat() if value is not None else None


def _serialize_payment(payment: Payment) -> dict:
    return {
        "id": payment.id,
        "amount": payment.amount,
        "whoPaid": payment.who_paid,
        "whoPaidName": payment.who_paid_name,
        "datePaid": _isoformat(payment.date_paid),
        "moneyReturned": payment.money_returned,
        "notes": payment.notes,
    }


def _serialize_expense(expense: BudgetExpense) -> dict:
    """Converts a BudgetExpense to camelCase JSON with its derived figures."""
    return {
        "id": expense.id,
        "costCategory": expense.cost_category.value,
        "item": expense.item,
        "quantity": expense.quantity,
        "costAmount": expense.cost_amount,
        "dateOfExpense": _isoformat(expense.date_of_expense),
        "notes": expense.notes,
        "payments": [_serialize_payment(p) for p in expense.payments],
        "totalPaid": ledger_service.total_paid(expense),
        "remainingAmount": ledger_service.remaining_amount(expense),
        "totalReturned": ledger_service.total_returned(expense),
        "paymentStatus": ledger_service.payment_status(expense),
        "unreturnedPayments": ledger_service.unreturned_payments(expense),
        # Legacy single-payment fields, for older dashboard builds.
        "alreadyPaid": expense.already_paid,
        "whoPaid": expense.who_paid,
        "whoPaidName": expense.who_paid_name,
        "moneyReturned": expense.money_returned,
        "createdAt": _isoformat(expense.created_at),
        "updatedAt": _isoformat(expense.updated_at),
    }


def _json_body() -> dict:
    return request.get_json(force=True, silent=True) or {}


# ── Expense routes ─────────────────────────────────────────────────────────

@budget_bp.route("", methods=["GET"])
@require_admin
def list_expenses():
    """GET /budget — Filtered, paginated expenses with dashboard statistics."""
    filters = ExpenseQuerySchema().load(request.args)
    result = expense_service.list_expenses(filters=filters, session=db.session)
    return jsonify({
        "success": True,
        "data": [_serialize_expense(e) for e in result["expenses"]],
        "pagination": result["pagination"],
        "statistics": result["statistics"],
        "categoryStats": result["category_stats"],
    }), 200


@budget_bp.route("", methods=["POST"])
@require_admin
def create_expense():
    """POST /budget — Record a new budget expense."""
    data = ExpenseSchema().load(_json_body())
    expense = expense_service.create_expense(data=data, session=db.session)
    db.session.commit()
    return jsonify({
        "success": True,
        "message": "Budget expense created successfully",
        "data": _serialize_expense(expense),
    }), 201


@budget_bp.route("/<int:expense_id>", methods=["GET"])
@require_admin
def get_expense(expense_id: int):
    """GET /budget/:id — Expense detail including payments."""
    expense = expense_service.get_expense(expense_id=expense_id, session=db.session)
    return jsonify({"success": True, "data": _serialize_expense(expense)}), 200


@budget_bp.route("/<int:expense_id>", methods=["PUT"])
@require_admin
def update_expense(expense_id: int):
    """PUT /budget/:id — Full-record update, re-validated against ExpenseSchema."""
    data = ExpenseSchema().load(_json_body())
    expense = expense_service.update_expense(
        expense_id=expense_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "success": True,
        "message": "Budget expense updated successfully",
        "data": _serialize_expense(expense),
    }), 200


@budget_bp.route("/<int:expense_id>", methods=["DELETE"])
@require_admin
def delete_expense(expense_id: int):
    """
    DELETE /budget/:id — Hard delete.
    The deleted record is returned so the dashboard can offer an undo.
    """
    expense = expense_service.delete_expense(expense_id=expense_id, session=db.session)
    payload = _serialize_expense(expense)
    db.session.commit()
    return jsonify({
        "success": True,
        "message": "Budget expense deleted successfully",
        "data": payload,
    }), 200


# ── Payment routes ─────────────────────────────────────────────────────────

@budget_bp.route("/<int:expense_id>/payments", methods=["POST"])
@require_admin
def add_payment(expense_id: int):
    """POST /budget/:id/payments — Append a payment."""
    data = AddPaymentSchema().load(_json_body())
    expense = payment_service.add_payment(
        expense_id=expense_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "success": True,
        "message": "Payment added successfully",
        "data": _serialize_expense(expense),
    }), 201


@budget_bp.route("/<int:expense_id>/payments", methods=["PUT"])
@require_admin
def replace_payments(expense_id: int):
    """PUT /budget/:id/payments — Replace the whole payment sequence."""
    data = ReplacePaymentsSchema().load(_json_body())
    expense = payment_service.replace_payments(
        expense_id=expense_id,
        payments=data["payments"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "success": True,
        "message": "Payments updated successfully",
        "data": _serialize_expense(expense),
    }), 200


@budget_bp.route("/<int:expense_id>/payments/<int:payment_id>", methods=["PUT"])
@require_admin
def update_payment(expense_id: int, payment_id: int):
    """PUT /budget/:id/payments/:paymentId — Merge fields into one payment."""
    data = UpdatePaymentSchema().load(_json_body())
    expense = payment_service.update_payment(
        expense_id=expense_id,
        payment_id=payment_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "success": True,
        "message": "Payment updated successfully",
        "data": _serialize_expense(expense),
    }), 200


@budget_bp.route("/<int:expense_id>/payments/<int:payment_id>", methods=["DELETE"])
@require_admin
def delete_payment(expense_id: int, payment_id: int):
    """DELETE /budget/:id/payments/:paymentId — Remove one payment."""
    expense = payment_service.delete_payment(
        expense_id=expense_id,
        payment_id=payment_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "success": True,
        "message": "Payment deleted successfully",
        "data": _serialize_expense(expense),
    }), 200
