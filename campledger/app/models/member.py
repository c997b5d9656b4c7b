"""
models/member.py — Member table definition.

Camp members are registered by the public forms (not part of this service).
The ledger only reads them to resolve a payer id into a display name.
No business logic. No imports from services or routes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from campledger.app.extensions import db


class Member(db.Model):
    __tablename__ = "members"

    __table_args__ = (
        # Directory listings sort by last name, then first name.
        Index("idx_members_name", "last_name", "first_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name:  Mapped[str] = mapped_column(String(100), nullable=False)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    is_approved: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    @property
    def display_name(self) -> str:
        """"First Last" — the label cached on payments."""
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Member id={self.id} name={self.display_name!r}>"
