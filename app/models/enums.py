#app/models/enums.py
from __future__ import annotations
from enum import Enum


class ParticipantRole(str, Enum):
    CLIENT = "client"
    LAWYER = "lawyer"


class CaseStatus(str, Enum):
    # open -> engaged -> closed, or open -> cancelled
    open = "open"
    engaged = "engaged"
    closed = "closed"
    cancelled = "cancelled"


class QuoteStatus(str, Enum):
    proposed = "proposed"
    accepted = "accepted"
    rejected = "rejected"


class PaymentStatus(str, Enum):
    initiated = "initiated"
    settled = "settled"
    failed = "failed"


class PaymentProvider(str, Enum):
    mock = "mock"
    stripe = "stripe"


class CaseHistoryAction(str, Enum):
    created = "created"
    engaged = "engaged"
    cancelled = "cancelled"
    closed = "closed"
