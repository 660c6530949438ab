# app/api/v1/cases.py
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.auth_deps import get_current_principal
from app.core.errors import DomainError, to_http
from app.db.session import get_db
from app.policies.rbac import (
    ACTION_CANCEL_CASE,
    ACTION_CLOSE_CASE,
    ACTION_CREATE_CASE,
    Principal,
    require_action,
)
from app.schemas.cases import (
    CaseActionRequest,
    CaseHistoryResponse,
    CaseResponse,
    CreateCaseRequest,
)
from app.services.case_service import CaseService

router = APIRouter(prefix="/cases")


def _require(principal: Principal, action: str) -> None:
    try:
        require_action(principal, action)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


def _case_out(cs) -> dict:
    return {
        "id": str(cs.id),
        "status": cs.status,
        "accepted_quote_id": str(cs.accepted_quote_id) if cs.accepted_quote_id else None,
        "accepted_lawyer_id": cs.accepted_lawyer_id,
        "engaged_at": cs.engaged_at,
    }


@router.post("", status_code=201, response_model=CaseResponse)
def create_case(
    payload: CreateCaseRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    _require(principal, ACTION_CREATE_CASE)
    try:
        cs = CaseService().create_case(
            db,
            client_id=principal.participant_id,
            title=payload.title,
            category=payload.category,
            description=payload.description,
        )
    except DomainError as e:
        raise to_http(e)
    return _case_out(cs)


@router.post("/{case_id}/cancel", response_model=CaseResponse)
def cancel_case(
    case_id: uuid.UUID,
    payload: Optional[CaseActionRequest] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    _require(principal, ACTION_CANCEL_CASE)
    try:
        cs = CaseService().cancel_case(
            db,
            case_id=case_id,
            actor_id=principal.participant_id,
            comment=payload.comment if payload else "",
        )
    except DomainError as e:
        raise to_http(e)
    return _case_out(cs)


@router.post("/{case_id}/close", response_model=CaseResponse)
def close_case(
    case_id: uuid.UUID,
    payload: Optional[CaseActionRequest] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    _require(principal, ACTION_CLOSE_CASE)
    try:
        cs = CaseService().close_case(
            db,
            case_id=case_id,
            actor_id=principal.participant_id,
            comment=payload.comment if payload else "",
        )
    except DomainError as e:
        raise to_http(e)
    return _case_out(cs)


@router.get("/{case_id}/history", response_model=CaseHistoryResponse)
def get_case_history(
    case_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        rows = CaseService().list_history(
            db,
            case_id=case_id,
            participant_id=principal.participant_id,
            role=principal.role,
        )
    except DomainError as e:
        raise to_http(e)

    return {
        "case_id": str(case_id),
        "items": [
            {
                "id": str(r.id),
                "action": r.action,
                "old_status": r.old_status,
                "new_status": r.new_status,
                "reason": r.reason,
                "actor_id": r.actor_id,
                "created_at": r.created_at,
            }
            for r in rows
        ],
    }
