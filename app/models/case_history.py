#app/models/case_history.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Text, DateTime, Index, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class CaseHistory(Base):
    """
    Append-only audit trail of case status transitions (never UPDATE).
    """
    __tablename__ = "case_histories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    case_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    actor_id: Mapped[str] = mapped_column(String(128), nullable=False)

    action: Mapped[str] = mapped_column(String(50), nullable=False)  # e.g. engaged
    old_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    new_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))

    # python-side default keeps sub-second ordering on every backend
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_case_history_case_created", "case_id", "created_at"),
        Index("ix_case_history_actor", "actor_id"),
    )
