# app/services/case_service.py
from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import Conflict, DomainError, Forbidden, Internal, NotFound
from app.models.case import Case
from app.models.case_history import CaseHistory
from app.models.enums import CaseHistoryAction, CaseStatus, ParticipantRole
from app.services.case_history_service import CaseHistoryService, record_case_history

log = logging.getLogger(__name__)


class CaseService:
    # ---------------------------
    # READS
    # ---------------------------

    def get_case(self, db: Session, case_id: uuid.UUID) -> Optional[Case]:
        return db.execute(select(Case).where(Case.id == case_id)).scalar_one_or_none()

    def get_case_for_update(self, db: Session, case_id: uuid.UUID) -> Optional[Case]:
        """
        Lock the case row (FOR UPDATE) for the rest of the transaction.
        populate_existing so a stale identity-map copy never hides the
        committed status.
        """
        return (
            db.execute(
                select(Case)
                .where(Case.id == case_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            .scalars()
            .one_or_none()
        )

    def list_history(
        self,
        db: Session,
        *,
        case_id: uuid.UUID,
        participant_id: str,
        role: ParticipantRole,
    ) -> List[CaseHistory]:
        """
        Visible to the owning client, or to the lawyer whose quote won.
        """
        cs = self.get_case(db, case_id)
        if not cs:
            raise NotFound("Case not found.")

        if role == ParticipantRole.CLIENT:
            allowed = cs.client_id == participant_id
        elif role == ParticipantRole.LAWYER:
            allowed = cs.accepted_lawyer_id is not None and cs.accepted_lawyer_id == participant_id
        else:
            allowed = False
        if not allowed:
            raise Forbidden("Not allowed to view this case history.")

        return CaseHistoryService().list_for_case(db, case_id)

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def create_case(
        self,
        db: Session,
        *,
        client_id: str,
        title: str,
        category: str,
        description: str = "",
    ) -> Case:
        cs = Case(
            client_id=client_id,
            title=title.strip(),
            category=category.strip(),
            description=(description or "").strip(),
            status=CaseStatus.open.value,
        )
        try:
            db.add(cs)
            db.flush()
            record_case_history(
                db,
                case_id=cs.id,
                actor_id=client_id,
                action=CaseHistoryAction.created,
                old_status=None,
                new_status=CaseStatus.open,
                reason="case created",
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise Internal("Could not create case.") from e

        db.refresh(cs)
        log.info("case created", extra={"case_id": str(cs.id)})
        return cs

    def cancel_case(
        self,
        db: Session,
        *,
        case_id: uuid.UUID,
        actor_id: str,
        comment: str = "",
    ) -> Case:
        """open -> cancelled, owner only."""
        return self._transition(
            db,
            case_id=case_id,
            actor_id=actor_id,
            expected=CaseStatus.open,
            target=CaseStatus.cancelled,
            action=CaseHistoryAction.cancelled,
            conflict_message="Case cannot be cancelled.",
            comment=comment,
        )

    def close_case(
        self,
        db: Session,
        *,
        case_id: uuid.UUID,
        actor_id: str,
        comment: str = "",
    ) -> Case:
        """engaged -> closed, owner only."""
        return self._transition(
            db,
            case_id=case_id,
            actor_id=actor_id,
            expected=CaseStatus.engaged,
            target=CaseStatus.closed,
            action=CaseHistoryAction.closed,
            conflict_message="Only engaged cases can be closed.",
            comment=comment,
        )

    def _transition(
        self,
        db: Session,
        *,
        case_id: uuid.UUID,
        actor_id: str,
        expected: CaseStatus,
        target: CaseStatus,
        action: CaseHistoryAction,
        conflict_message: str,
        comment: str,
    ) -> Case:
        # Read-status-then-write-status under the row lock, so a concurrent
        # settlement cannot interleave between the check and the write.
        try:
            cs = self.get_case_for_update(db, case_id)
            if not cs:
                raise NotFound("Case not found.")
            if cs.client_id != actor_id:
                raise Forbidden("Only the case owner can do this.")
            if cs.status != expected.value:
                raise Conflict(conflict_message)

            cs.status = target.value
            db.flush()

            record_case_history(
                db,
                case_id=cs.id,
                actor_id=actor_id,
                action=action,
                old_status=expected,
                new_status=target,
                reason=comment,
            )
            db.commit()
        except DomainError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise Internal("Could not update case.") from e

        db.refresh(cs)
        log.info(
            "case status changed",
            extra={"case_id": str(cs.id), "old_status": expected.value, "new_status": target.value},
        )
        return cs
