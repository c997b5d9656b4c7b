"""
schemas/validators.py — Field validators shared by the expense and payment schemas.

Monetary amounts are Decimals with at most 2 decimal places. Input with more
precision is REJECTED with INVALID_AMOUNT_PRECISION, never rounded.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import ValidationError

from campledger.app.errors import ErrorCode


def _check_precision(value: Decimal) -> None:
    # Decimal("10.123").as_tuple().exponent == -3  → 3 dp → reject
    # Decimal("10.12").as_tuple().exponent  == -2  → 2 dp → accept
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def validate_payment_amount(value: Decimal) -> None:
    """Payment amounts: strictly positive, max 2 dp."""
    if value <= Decimal("0"):
        raise ValidationError("Payment amount must be greater than zero.")
    _check_precision(value)


def validate_cost_amount(value: Decimal) -> None:
    """Expense cost: zero allowed (donated items), never negative, max 2 dp."""
    if value < Decimal("0"):
        raise ValidationError("Cost amount cannot be negative.")
    _check_precision(value)


def validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or whitespace only.
    validate.Length(min=1) alone accepts "   ".
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")
