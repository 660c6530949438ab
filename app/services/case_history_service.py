from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select, asc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.case_history import CaseHistory
from app.models.enums import CaseHistoryAction, CaseStatus

log = logging.getLogger(__name__)


def record_case_history(
    db: Session,
    *,
    case_id: uuid.UUID,
    actor_id: str,
    action: CaseHistoryAction,
    old_status: Optional[CaseStatus],
    new_status: Optional[CaseStatus],
    reason: str = "",
) -> Optional[CaseHistory]:
    """
    Append-only audit insert, best-effort.

    Runs inside a SAVEPOINT of the caller's transaction: the entry commits
    with the status change it describes, but a failed insert only rolls
    back the savepoint. The caller's transaction stays usable and the
    failure is logged rather than dropped.
    """
    row = CaseHistory(
        case_id=case_id,
        actor_id=actor_id,
        action=action.value,
        old_status=old_status.value if old_status else None,
        new_status=new_status.value if new_status else None,
        reason=(reason or "").strip(),
    )
    try:
        with db.begin_nested():
            db.add(row)
    except SQLAlchemyError:
        log.warning(
            "case history write failed",
            exc_info=True,
            extra={"case_id": str(case_id), "action": action.value},
        )
        return None
    return row


class CaseHistoryService:
    def list_for_case(self, db: Session, case_id: uuid.UUID) -> List[CaseHistory]:
        return list(
            db.execute(
                select(CaseHistory)
                .where(CaseHistory.case_id == case_id)
                .order_by(asc(CaseHistory.created_at))
            )
            .scalars()
            .all()
        )
