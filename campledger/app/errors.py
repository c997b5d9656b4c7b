"""
errors.py — Application error type and error code registry.

AppError is the single exception type raised by services and middleware.
The global handler in app/__init__.py turns it into the standard failure
envelope:

    {"success": false, "error": {"code": ..., "message": ..., "field": ...}}

Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a contract with the admin UI. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Every authorization failure is a 401. There are no per-admin roles, so
    403 is never produced.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
            details: list | str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field    # which request field caused the error
        self.details     = details  # field-level errors or diagnostic text

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return {"success": False, "error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    INVALID_CATEGORY           = "INVALID_CATEGORY"
    INVALID_PAYMENTS           = "INVALID_PAYMENTS"       # payments body is not an array

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    EXPENSE_NOT_FOUND          = "EXPENSE_NOT_FOUND"
    PAYMENT_NOT_FOUND          = "PAYMENT_NOT_FOUND"
    MEMBER_NOT_FOUND           = "MEMBER_NOT_FOUND"

    # ── Auth Errors (401) ──────────────────────────────────────────────────
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # wrong admin password
    TOKEN_MISSING              = "TOKEN_MISSING"          # no Authorization header
    TOKEN_INVALID              = "TOKEN_INVALID"          # malformed, tampered or non-admin
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"

    # ── System Errors (5xx) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"         # 500
    DATABASE_TIMEOUT           = "DATABASE_TIMEOUT"       # 503
