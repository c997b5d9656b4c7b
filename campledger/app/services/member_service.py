"""
services/member_service.py — Member directory lookups.

The ledger only needs members to turn a payer id into a display name. The
name is copied onto the payment when it is written and never re-read, so
this module has no write operations.

Layer rules:
  - No Flask imports. Receives plain ints and a session.
  - Raises AppError, never returns HTTP responses.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from campledger.app.errors import AppError, ErrorCode
from campledger.app.models.member import Member


def find_display_name(member_id: int | None, session: Session) -> str | None:
    """Returns "First Last" for member_id, or None if there is no such member."""
    if member_id is None:
        return None
    member = session.get(Member, member_id)
    if member is None:
        return None
    return member.display_name


def resolve_payer_name(
        member_id: int,
        session: Session,
        field: str = "whoPaid",
) -> str:
    """
    Returns the display name of the member who paid.

    Raises:
      AppError(MEMBER_NOT_FOUND, 404) — no member with that id.
    """
    name = find_display_name(member_id, session)
    if name is None:
        raise AppError(
            ErrorCode.MEMBER_NOT_FOUND,
            f"Member {member_id} does not exist.",
            404,
            field=field,
        )
    return name


def list_approved_members(session: Session) -> list[dict]:
    """Approved members as {id, name, email}, sorted by last then first name."""
    stmt = (
        select(Member)
        .where(Member.is_approved.is_(True))
        .order_by(Member.last_name, Member.first_name)
    )
    return [
        {
            "id": member.id,
            "name": member.display_name,
            "email": member.email,
        }
        for member in session.execute(stmt).scalars().all()
    ]
