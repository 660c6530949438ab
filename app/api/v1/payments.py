# app/api/v1/payments.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.core.auth_deps import get_current_principal
from app.core.config import get_settings
from app.core.errors import DomainError, to_http
from app.db.session import get_db
from app.policies.rbac import ACTION_START_CHECKOUT, Principal, require_action
from app.schemas.payments import CheckoutResponse, MockCompleteRequest, SettlementResponse
from app.services.payment_provider import (
    StripeCheckoutProvider,
    get_checkout_provider,
    verify_stripe_event,
)
from app.services.payment_service import PaymentService
from app.services.settlement_service import SettlementService

log = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------
# POST /checkout/{quote_id}  (Client owner)
# ---------------------------------------------------------------------


@router.post("/checkout/{quote_id}", status_code=201, response_model=CheckoutResponse)
def create_checkout(
    quote_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        require_action(principal, ACTION_START_CHECKOUT)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))

    provider = get_checkout_provider(get_settings())
    try:
        pay, session = PaymentService().checkout(
            db,
            quote_id=quote_id,
            payer_id=principal.participant_id,
            provider=provider,
        )
    except DomainError as e:
        raise to_http(e)

    return {
        "payment_id": str(pay.id),
        "redirect_url": session.redirect_url,
        "provider": provider.name.value,
    }


# ---------------------------------------------------------------------
# POST /payments/mock/complete  (dev-only direct completion)
# ---------------------------------------------------------------------


@router.post("/payments/mock/complete", response_model=SettlementResponse)
def mock_complete(
    payload: MockCompleteRequest,
    x_dev_secret: Optional[str] = Header(default=None, alias="X-Dev-Secret"),
    db: Session = Depends(get_db),
):
    settings = get_settings()
    if not settings.mock_payments_enabled:
        raise HTTPException(status_code=404, detail="Not found.")
    if not x_dev_secret or x_dev_secret != settings.dev_payment_secret:
        raise HTTPException(status_code=401, detail="Missing/invalid X-Dev-Secret.")

    try:
        outcome = SettlementService().attempt_settlement(
            db,
            payment_id=payload.payment_id,
            reason="payment completed (mock)",
        )
    except DomainError as e:
        raise to_http(e)

    return {
        "ok": True,
        "already_settled": outcome.already_settled,
        "message": "already paid (idempotent)" if outcome.already_settled else "paid",
    }


# ---------------------------------------------------------------------
# POST /payments/stripe/webhook  (provider callback, no bearer auth)
# ---------------------------------------------------------------------


def _reference_of(session_obj: Dict[str, Any]) -> Optional[str]:
    metadata = session_obj.get("metadata") or {}
    return metadata.get("payment_id") or session_obj.get("client_reference_id") or None


def _intent_of(session_obj: Dict[str, Any]) -> Optional[str]:
    pi = session_obj.get("payment_intent")
    if isinstance(pi, dict):
        return pi.get("id")
    return pi or None


def _settlement_reason(payment_intent: Optional[str]) -> str:
    # receipt lookup is a provider round-trip; done before any row lock
    receipt = StripeCheckoutProvider(get_settings()).receipt_number(payment_intent) if payment_intent else None
    if receipt:
        return f"payment completed (stripe: {receipt})"
    return "payment completed (stripe)"


def _handle_session_event(db: Session, event_type: str, session_obj: Dict[str, Any]) -> Dict[str, Any]:
    settlement = SettlementService()
    payment_id = settlement.resolve_payment_id(
        db,
        correlation_id=session_obj.get("id"),
        reference_id=_reference_of(session_obj),
    )

    if event_type == "checkout.session.expired":
        PaymentService().mark_failed(db, payment_id=payment_id)
        return {"status": "ok"}

    payment_intent = _intent_of(session_obj)
    outcome = settlement.attempt_settlement(
        db,
        payment_id=payment_id,
        payment_intent=payment_intent,
        reason=_settlement_reason(payment_intent),
    )
    return {"status": "already_processed" if outcome.already_settled else "ok"}


@router.post("/payments/stripe/webhook")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    sig = request.headers.get("stripe-signature", "")
    settings = get_settings()

    try:
        event = verify_stripe_event(payload, sig, settings.stripe_webhook_secret)
    except DomainError as e:
        raise to_http(e)

    event_type = event.get("type", "")
    if event_type not in {"checkout.session.completed", "checkout.session.expired"}:
        log.debug("unhandled stripe event", extra={"event_type": event_type})
        return {"status": "ignored"}

    session_obj = (event.get("data") or {}).get("object") or {}
    try:
        # row locks block; keep them off the event loop
        return await run_in_threadpool(_handle_session_event, db, event_type, session_obj)
    except DomainError as e:
        raise to_http(e)
