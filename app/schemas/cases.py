from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CreateCaseRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    category: str = Field(..., min_length=2, max_length=100)
    description: str = Field(default="", max_length=2000)


class CaseActionRequest(BaseModel):
    """Optional comment, recorded as the history reason."""
    comment: str = Field(default="", max_length=500)


class CaseResponse(BaseModel):
    id: str
    status: str
    accepted_quote_id: Optional[str] = None
    accepted_lawyer_id: Optional[str] = None
    engaged_at: Optional[datetime] = None


class CaseHistoryItem(BaseModel):
    id: str
    action: str
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    reason: str = ""
    actor_id: str
    created_at: datetime


class CaseHistoryResponse(BaseModel):
    case_id: str
    items: List[CaseHistoryItem]
