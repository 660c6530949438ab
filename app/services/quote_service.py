#app/services/quote_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import Conflict, DomainError, Internal, NotFound
from app.models.enums import CaseStatus, QuoteStatus
from app.models.quote import Quote
from app.services.case_service import CaseService

log = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


class QuoteService:
    def get_quote(self, db: Session, quote_id: uuid.UUID) -> Optional[Quote]:
        return db.execute(select(Quote).where(Quote.id == quote_id)).scalar_one_or_none()

    def _get_for_pair(
        self, db: Session, case_id: uuid.UUID, lawyer_id: str
    ) -> Optional[Quote]:
        return (
            db.execute(
                select(Quote)
                .where(
                    Quote.case_id == case_id,
                    Quote.lawyer_id == lawyer_id,
                )
                .execution_options(populate_existing=True)
            )
            .scalars()
            .one_or_none()
        )

    def submit_or_update(
        self,
        db: Session,
        *,
        case_id: uuid.UUID,
        lawyer_id: str,
        amount_cents: int,
        days: int,
        note: str = "",
    ) -> Quote:
        """
        One active quote per (case, lawyer), mutable only while the case is
        open and the quote is still proposed.

        The case row is locked first: settlement takes the same lock, so a
        submission either lands before the winner is picked (and is swept
        to rejected) or observes the case is no longer open.
        """
        note = (note or "").strip()
        try:
            cs = CaseService().get_case_for_update(db, case_id)
            if not cs:
                raise NotFound("Case not found.")
            if cs.status != CaseStatus.open.value:
                raise Conflict("Case is not open.")

            q = self._get_for_pair(db, case_id, lawyer_id)

            if q is None:
                q = Quote(
                    case_id=case_id,
                    lawyer_id=lawyer_id,
                    amount_cents=amount_cents,
                    days=days,
                    note=note,
                    status=QuoteStatus.proposed.value,
                    created_at=_now(),
                    updated_at=_now(),
                )
                db.add(q)
            else:
                if q.status != QuoteStatus.proposed.value:
                    raise Conflict("Quote is immutable (already accepted/rejected).")
                # the lookup is scoped by lawyer_id; reaching here means the
                # uniqueness invariant on (case_id, lawyer_id) is broken
                if q.lawyer_id != lawyer_id:
                    log.error(
                        "quote ownership invariant violated",
                        extra={"quote_id": str(q.id), "case_id": str(case_id)},
                    )
                    raise Internal("Quote ownership invariant violated.")

                q.amount_cents = amount_cents
                q.days = days
                q.note = note
                q.updated_at = _now()

            db.commit()
        except DomainError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise Internal("Could not store quote.") from e

        db.refresh(q)
        log.info(
            "quote stored",
            extra={"quote_id": str(q.id), "case_id": str(case_id), "amount_cents": q.amount_cents},
        )
        return q
