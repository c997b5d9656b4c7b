"""
routes/auth.py — Admin login route.

Layer rules:
  - Parse request body
  - Validate with the schema (raises ValidationError on bad input)
  - Call the CredentialGate
  - Return the standard envelope: {"success": true, "data": {...}, "message": ...}

AppError propagates to the global error handler in app/__init__.py — routes
never catch it.

Endpoints (url_prefix=/api/auth):
  POST   /auth/login     → 200 {token}

There is no logout endpoint: tokens are stateless and expire on their own.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from campledger.app.middleware.auth_middleware import get_gate
from campledger.app.schemas.auth_schema import LoginSchema

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Exchange the admin password for a token. (No auth required.)"""
    data = LoginSchema().load(request.get_json(force=True, silent=True) or {})
    token = get_gate().issue(data["password"])
    return jsonify({
        "success": True,
        "message": "Login successful",
        "data": {"token": token},
    }), 200
