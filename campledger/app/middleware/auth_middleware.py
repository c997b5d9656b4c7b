"""
middleware/auth_middleware.py — Admin token decorator.

The @require_admin decorator:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Verifies the token with the app's CredentialGate
     (signature, expiry, isAdmin claim)
  3. Attaches the decoded claims to flask.g.admin_claims
  4. Raises the appropriate 401 AppError if any step fails

It runs before the view reads the request body or touches the database, so
an unauthenticated request never reaches the ledger.

Error codes:
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (401) — malformed header, bad signature, or non-admin token
  TOKEN_EXPIRED  (401) — valid token but exp claim is in the past
"""

from __future__ import annotations

import functools
from typing import Callable

from flask import current_app, g, request

from campledger.app.errors import AppError, ErrorCode
from campledger.app.services.auth_service import CredentialGate


def get_gate() -> CredentialGate:
    """The CredentialGate registered on the current app by create_app()."""
    return current_app.extensions["credential_gate"]


def require_admin(f: Callable) -> Callable:
    """
    Route decorator that enforces a valid admin token.

    Raises AppError for all auth failures — the global error handler converts
    these to the failure envelope. Routes never catch AppError.

    Usage:
        @budget_bp.route("/budget/<int:expense_id>")
        @require_admin
        def get_expense(expense_id):
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def _authenticate_request() -> None:
    """
    Performs the full admin authentication sequence and sets flask.g.admin_claims.

    Separated from the decorator wrapper so it can be called directly in
    tests inside a test_request_context.
    """
    auth_header = request.headers.get("Authorization", "")

    # ── Step 1: Require Authorization header ──────────────────────────────
    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Unauthorized. Provide a Bearer token in the Authorization header.",
            401,
        )

    # ── Step 2: Parse "Bearer <token>" format ─────────────────────────────
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )

    # ── Step 3: Verify with the gate ──────────────────────────────────────
    g.admin_claims = get_gate().decode(parts[1])
