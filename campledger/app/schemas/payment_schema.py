"""
schemas/payment_schema.py — Marshmallow schemas for the payment endpoints.

Validation responsibility:
  - This file: amount > 0 with max 2 dp, whoPaid present, notes ≤ 200 chars,
    and "payments must be an array" for the bulk replace.
  - services/payment_service.py: expense/payment existence and payer lookup
    (MEMBER_NOT_FOUND), which need the database.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate

from campledger.app.errors import ErrorCode
from campledger.app.schemas.validators import validate_payment_amount


_NOTES_LENGTH = validate.Length(max=200, error="Payment notes must be at most 200 characters.")
_PAYER_ID = validate.Range(min=1, error="whoPaid must be a positive member id.")


class AddPaymentSchema(Schema):
    """
    POST /budget/:id/payments — {amount, whoPaid, datePaid?, moneyReturned?, notes?}

    Server-side keys a client echoes back (id, whoPaidName) are dropped.
    """

    class Meta:
        unknown = EXCLUDE

    amount = fields.Decimal(required=True, validate=validate_payment_amount)

    who_paid = fields.Int(data_key="whoPaid", required=True, validate=_PAYER_ID)

    # None → the service stamps the current time.
    date_paid = fields.DateTime(data_key="datePaid", load_default=None)

    money_returned = fields.Bool(data_key="moneyReturned", load_default=False)

    notes = fields.Str(load_default="", validate=_NOTES_LENGTH)


class UpdatePaymentSchema(Schema):
    """
    PUT /budget/:id/payments/:paymentId

    Every field is optional. Only the keys present in the body are merged
    into the stored payment; the rest keep their values.
    Unknown keys such as id are dropped.
    """

    class Meta:
        unknown = EXCLUDE

    amount = fields.Decimal(validate=validate_payment_amount)

    who_paid = fields.Int(data_key="whoPaid", validate=_PAYER_ID)

    # Trusted as-is unless whoPaid changes, in which case the service
    # overwrites it with the new payer's name.
    who_paid_name = fields.Str(
        data_key="whoPaidName",
        validate=validate.Length(max=201),
    )

    date_paid = fields.DateTime(data_key="datePaid")

    money_returned = fields.Bool(data_key="moneyReturned")

    notes = fields.Str(validate=_NOTES_LENGTH)


class PaymentInputSchema(Schema):
    """
    One element of the bulk-replace payments array.

    Clients send back payments they previously read, so server-side keys
    (id, _id) are ignored rather than rejected. Ids are not preserved: the
    replaced sequence gets fresh payment ids.
    """

    class Meta:
        unknown = EXCLUDE

    amount = fields.Decimal(required=True, validate=validate_payment_amount)

    who_paid = fields.Int(data_key="whoPaid", required=True, validate=_PAYER_ID)

    who_paid_name = fields.Str(
        data_key="whoPaidName",
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=201),
    )

    date_paid = fields.DateTime(data_key="datePaid", load_default=None)

    money_returned = fields.Bool(data_key="moneyReturned", load_default=False)

    notes = fields.Str(load_default="", validate=_NOTES_LENGTH)


class ReplacePaymentsSchema(Schema):
    """PUT /budget/:id/payments — {payments: [...]}"""

    payments = fields.List(
        fields.Nested(PaymentInputSchema),
        required=True,
        error_messages={"invalid": ErrorCode.INVALID_PAYMENTS},
    )
