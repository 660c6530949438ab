# app/core/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from jose import jwt

from app.core.config import get_settings
from app.models.enums import ParticipantRole


def create_access_token(
    participant_id: str,
    role: Union[ParticipantRole, str],
    *,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Bearer token in the shape get_current_principal expects:
    sub = participant id, role = client | lawyer.

    Issuance belongs to the identity provider; this is for tooling and tests.
    """
    settings = get_settings()
    ttl = timedelta(minutes=expires_minutes or settings.jwt_access_token_minutes)
    now = datetime.now(timezone.utc)
    payload = {
        "sub": participant_id,
        "role": role.value if isinstance(role, ParticipantRole) else role,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    # raises jose.JWTError (bad signature, expired, malformed)
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
