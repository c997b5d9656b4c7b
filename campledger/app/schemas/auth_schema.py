"""
schemas/auth_schema.py — Marshmallow schema for the admin login endpoint.

Password correctness is checked by the CredentialGate
(INVALID_CREDENTIALS, 401), not here.

IMPORTANT: All schemas inherit from marshmallow.Schema directly.
           Do NOT use ma.Schema — it requires an active Flask app context
           and breaks unit tests. See extensions.py for the full explanation.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class LoginSchema(Schema):
    """POST /auth/login — {password}."""

    password = fields.Str(
        required=True,
        load_only=True,
        validate=validate.Length(min=1, error="Password is required."),
    )
