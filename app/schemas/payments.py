from __future__ import annotations

import uuid

from pydantic import BaseModel


class CheckoutResponse(BaseModel):
    payment_id: str
    redirect_url: str
    provider: str


class MockCompleteRequest(BaseModel):
    payment_id: uuid.UUID


class SettlementResponse(BaseModel):
    ok: bool = True
    already_settled: bool
    message: str
