"""
Fabtrack Backend — Form SQLAlchemy Model
=========================================

What:  ORM model representing the `forms` table.
Why:   Maps textile production records to database rows.
How:   Inherits from SQLAlchemy's DeclarativeBase; `Database.connect` creates
       the table from this definition.
Who:   Used by FormService for every CRUD operation.

Table Design:
    - UUID primary key allocated in Python before the INSERT, because the QR
      code embeds the id and must be generated before the row is written
    - warp_details / weft_details: JSON arrays of line items, stored as given
    - code: data URI of the QR symbol, written once on create
    - warp_rate / weft_rate: only touched by the rates update path
    - created_at / updated_at: UTC, maintained on every write

    Index on created_at DESC serves the history listing (newest first).
"""

import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import JSON, DateTime, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fabtrack.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Form(Base):
    """
    One submitted production form.

    Lifecycle:
        1. Created by POST /submit-form with its QR code already attached
        2. Header/detail fields replaced by PUT /forms/{id}
        3. Rates set by PUT /edit/{id}
        4. Hard-deleted by DELETE /forms/{id}
    """

    __tablename__ = "forms"

    # ── Primary Key ───────────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Header Fields ─────────────────────────────────────────────────────
    aretical_no: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[str] = mapped_column(Text, nullable=False)

    # ── Line Items ────────────────────────────────────────────────────────
    # Shape is owned by the frontend; any JSON array is accepted
    warp_details: Mapped[List[Any]] = mapped_column(JSON, nullable=False)
    weft_details: Mapped[List[Any]] = mapped_column(JSON, nullable=False)

    # ── Mill Details ──────────────────────────────────────────────────────
    dying_mill_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    fabrics_shortage: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # ── QR Code ───────────────────────────────────────────────────────────
    # data:image/png;base64,... (a few KB per row)
    code: Mapped[str] = mapped_column(Text, nullable=False)

    # ── Rates ─────────────────────────────────────────────────────────────
    weft_rate: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    warp_rate: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("idx_forms_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Form(id={self.id}, aretical_no='{self.aretical_no}')>"
