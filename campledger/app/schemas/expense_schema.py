"""
schemas/expense_schema.py — Marshmallow schemas for budget expense endpoints.

Validation responsibility:
  - This file: field types, string caps, enum values, non-negative numbers,
    decimal precision, and "whoPaid is required when alreadyPaid is true".
  - services/expense_service.py: anything that needs the database
    (expense existence, payer name lookup).

JSON keys are camelCase (data_key); loaded dicts use the model's
snake_case attribute names so services can apply them directly.

Unknown keys are excluded rather than rejected: the admin UI sends the whole
expense back on edit, including read-only fields such as id, payments,
totalPaid and remainingAmount. Payments are only changed through the
payment endpoints.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
           See extensions.py for the full explanation.
"""

from __future__ import annotations

from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    post_load,
    pre_load,
    validate,
    validates_schema,
)

from campledger.app.errors import ErrorCode
from campledger.app.models.expense import CostCategory
from campledger.app.schemas.validators import (
    validate_cost_amount,
    validate_non_empty_after_trim,
)

# Upper bound for ?limit= on GET /budget.
MAX_PAGE_LIMIT = 500


class ExpenseSchema(Schema):
    """
    POST /budget and PUT /budget/:id

    PUT is a full-record write: the same schema runs for create and update,
    so every required field must be present on update too.
    """

    class Meta:
        unknown = EXCLUDE

    cost_category = fields.Enum(
        CostCategory,
        data_key="costCategory",
        required=True,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )

    item = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=200,
                error="Item description must be between 1 and 200 characters.",
            ),
            validate_non_empty_after_trim,
        ],
    )

    quantity = fields.Int(
        load_default=1,
        validate=validate.Range(min=0, error="Quantity cannot be negative."),
    )

    cost_amount = fields.Decimal(
        data_key="costAmount",
        required=True,
        validate=validate_cost_amount,
    )

    date_of_expense = fields.DateTime(
        data_key="dateOfExpense",
        load_default=None,
    )

    notes = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=500, error="Notes must be less than 500 characters."),
    )

    # ── Legacy single-payment fields ───────────────────────────────────────

    already_paid = fields.Bool(data_key="alreadyPaid", load_default=False)

    who_paid = fields.Int(
        data_key="whoPaid",
        load_default=None,
        allow_none=True,
        validate=validate.Range(min=1, error="whoPaid must be a positive member id."),
    )

    money_returned = fields.Bool(data_key="moneyReturned", load_default=False)

    @pre_load
    def drop_empty_payer(self, data, **kwargs):
        """The admin form posts whoPaid: "" when no payer is selected."""
        if isinstance(data, dict) and data.get("whoPaid") == "":
            data = {**data, "whoPaid": None}
        return data

    @validates_schema
    def validate_legacy_payer(self, data: dict, **kwargs) -> None:
        """whoPaid is required whenever alreadyPaid is true."""
        if data.get("already_paid") and data.get("who_paid") is None:
            raise ValidationError(
                {"whoPaid": ["whoPaid is required when alreadyPaid is true."]}
            )

    @post_load
    def trim_strings(self, data: dict, **kwargs) -> dict:
        data["item"] = data["item"].strip()
        if data.get("notes") is not None:
            data["notes"] = data["notes"].strip()
        return data


class ExpenseQuerySchema(Schema):
    """
    GET /budget query string.

    Empty values ("?category=") mean "no filter", as the admin UI always
    sends every filter key.
    """

    class Meta:
        unknown = EXCLUDE

    category = fields.Enum(
        CostCategory,
        by_value=True,
        load_default=None,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )

    paid_status = fields.Str(
        data_key="paidStatus",
        load_default=None,
        validate=validate.OneOf(["paid", "unpaid"]),
    )

    returned_status = fields.Str(
        data_key="returnedStatus",
        load_default=None,
        validate=validate.OneOf(["returned", "not-returned"]),
    )

    page = fields.Int(
        load_default=1,
        validate=validate.Range(min=1, error="page must be 1 or greater."),
    )

    limit = fields.Int(
        load_default=50,
        validate=validate.Range(
            min=1,
            max=MAX_PAGE_LIMIT,
            error=f"limit must be between 1 and {MAX_PAGE_LIMIT}.",
        ),
    )

    @pre_load
    def drop_empty_values(self, data, **kwargs):
        return {key: value for key, value in data.items() if value != ""}
