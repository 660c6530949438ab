#app/models/case.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, Uuid, Index, func, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Case(Base):
    """
    The resource lawyers bid on.

    accepted_quote_id / accepted_lawyer_id / engaged_at are set together,
    by settlement only, and only while leaving `open`. They are non-null
    exactly when status is engaged or closed.
    """
    __tablename__ = "cases"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    client_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))

    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default=text("'open'"))

    accepted_quote_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    accepted_lawyer_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    engaged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_cases_status", "status"),
    )
