from __future__ import annotations

import uuid

from pydantic import BaseModel, Field


class UpsertQuoteRequest(BaseModel):
    """
    Lawyer quote payload. Amount in cents: min 1, max 100,000,000
    (S$1,000,000).
    """
    case_id: uuid.UUID
    amount_cents: int = Field(..., ge=1, le=100_000_000)
    days: int = Field(..., ge=1, le=365)
    note: str = Field(default="", max_length=500)


class QuoteResponse(BaseModel):
    id: str
    case_id: str
    status: str
    amount_cents: int
    days: int
    note: str
