#app/models/payment.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, Integer, ForeignKey, Index, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Payment(Base):
    """
    A settlement attempt for one quote.

    - At most one non-failed row per quote (partial unique index).
    - provider_session_id / provider_payment_intent are the external
      correlation ids; once written they are never changed.
    - initiated -> settled happens once, inside the settlement transaction.
    """
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[str] = mapped_column(String(128), nullable=False)

    provider: Mapped[str] = mapped_column(String(20), nullable=False, server_default=text("'mock'"))
    provider_session_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    provider_payment_intent: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)

    # cents, copied from the quote when the attempt is created
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=text("'initiated'")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index(
            "ux_payment_quote_active",
            "quote_id",
            unique=True,
            postgresql_where=text("status <> 'failed'"),
            sqlite_where=text("status <> 'failed'"),
        ),
    )
