"""
routes/members.py — Member directory route.

Endpoints (url_prefix=/api/members):
  GET    /members/approved   → 200  approved members as {id, name, email}

Public: the payer pickers on the forms and dashboard load this list before
the admin has logged in.
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from campledger.app.extensions import db
from campledger.app.services import member_service

members_bp = Blueprint("members", __name__)


@members_bp.route("/approved", methods=["GET"])
def list_approved():
    """GET /members/approved — Approved members sorted by name."""
    members = member_service.list_approved_members(session=db.session)
    return jsonify({
        "success": True,
        "data": members,
        "total": len(members),
    }), 200
