# app/api/v1/quotes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.auth_deps import get_current_principal
from app.core.errors import DomainError, to_http
from app.db.session import get_db
from app.policies.rbac import ACTION_SUBMIT_QUOTE, Principal, require_action
from app.schemas.quotes import QuoteResponse, UpsertQuoteRequest
from app.services.quote_service import QuoteService

router = APIRouter(prefix="/quotes")


# ---------------------------------------------------------------------
# POST /quotes  (Lawyer submit or update)
# ---------------------------------------------------------------------


@router.post("", status_code=201, response_model=QuoteResponse)
def upsert_quote(
    payload: UpsertQuoteRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    One active quote per case per lawyer. 409 when the case is no longer
    open or the quote was already accepted/rejected.
    """
    try:
        require_action(principal, ACTION_SUBMIT_QUOTE)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))

    try:
        q = QuoteService().submit_or_update(
            db,
            case_id=payload.case_id,
            lawyer_id=principal.participant_id,
            amount_cents=payload.amount_cents,
            days=payload.days,
            note=payload.note,
        )
    except DomainError as e:
        raise to_http(e)

    return {
        "id": str(q.id),
        "case_id": str(q.case_id),
        "status": q.status,
        "amount_cents": q.amount_cents,
        "days": q.days,
        "note": q.note,
    }
