#app/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Set

from app.models.enums import ParticipantRole


@dataclass(frozen=True)
class Principal:
    participant_id: str
    role: ParticipantRole


# --- Core action constants ---
ACTION_CREATE_CASE = "CREATE_CASE"
ACTION_CANCEL_CASE = "CANCEL_CASE"
ACTION_CLOSE_CASE = "CLOSE_CASE"
ACTION_START_CHECKOUT = "START_CHECKOUT"
ACTION_SUBMIT_QUOTE = "SUBMIT_QUOTE"


def allowed_actions(role: ParticipantRole) -> Set[str]:
    """
    Pure RBAC: which actions a role may attempt.
    Resource ownership is checked by the services, not here.
    """

    if role == ParticipantRole.CLIENT:
        return {
            ACTION_CREATE_CASE,
            ACTION_CANCEL_CASE,
            ACTION_CLOSE_CASE,
            ACTION_START_CHECKOUT,
        }

    if role == ParticipantRole.LAWYER:
        return {ACTION_SUBMIT_QUOTE}

    return set()


def require_action(principal: Principal, action: str) -> None:
    if action not in allowed_actions(principal.role):
        raise PermissionError(
            f"Role {principal.role.value} not permitted for action {action}."
        )
