#app/core/auth_deps.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from app.core.security import decode_token
from app.models.enums import ParticipantRole
from app.policies.rbac import Principal

bearer = HTTPBearer(auto_error=True)


def principal_from_claims(claims: Dict[str, Any]) -> Principal:
    """
    sub -> participant id, role -> ParticipantRole.
    Raises 401 when either is missing or the role is unknown.
    """
    sub = claims.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Token missing subject.")

    try:
        role = ParticipantRole(claims.get("role"))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid role in token.")

    return Principal(participant_id=str(sub), role=role)


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Principal:
    # the identity is trusted verbatim past this point; ownership checks
    # happen in the services
    try:
        claims = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token.")

    principal = principal_from_claims(claims)
    request.state.principal = principal
    return principal
