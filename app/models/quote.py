#app/models/quote.py
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    String,
    Text,
    DateTime,
    Integer,
    ForeignKey,
    UniqueConstraint,
    Index,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Quote(Base):
    """
    A lawyer's offer on a case. One row per (case_id, lawyer_id): later
    submissions update it in place while it is still `proposed`.
    """
    __tablename__ = "quotes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    lawyer_id: Mapped[str] = mapped_column(String(128), nullable=False)

    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    days: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=text("'proposed'")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("case_id", "lawyer_id", name="uq_quote_case_lawyer"),
        Index("ix_quote_case_status", "case_id", "status"),
    )
