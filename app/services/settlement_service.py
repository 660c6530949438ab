# app/services/settlement_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import BadRequest, Conflict, DomainError, Internal, NotFound
from app.models.enums import CaseHistoryAction, CaseStatus, PaymentStatus, QuoteStatus
from app.models.payment import Payment
from app.models.quote import Quote
from app.services.case_history_service import record_case_history
from app.services.case_service import CaseService

log = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SettlementOutcome:
    payment_id: uuid.UUID
    # the record was already settled when this call took the lock
    already_settled: bool
    # this call moved the case open -> engaged
    engaged: bool


class SettlementService:
    """
    Single entry point that finalises a payment and picks the case winner.

    Both completion triggers (direct completion and provider callback)
    resolve their payment first and then call attempt_settlement; all
    correctness comes from row locks taken inside one transaction:

      payment row (FOR UPDATE)  -> serialises retries of the same attempt
      case row    (FOR UPDATE)  -> serialises attempts on sibling quotes
    """

    # ─────────────────────────────────────────────
    # Internal helpers
    # ─────────────────────────────────────────────

    def _get_payment_for_update(self, db: Session, payment_id: uuid.UUID) -> Optional[Payment]:
        return (
            db.execute(
                select(Payment)
                .where(Payment.id == payment_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            .scalars()
            .one_or_none()
        )

    def _accept_and_sweep(self, db: Session, *, case_id: uuid.UUID, quote: Quote, now: datetime) -> None:
        quote.status = QuoteStatus.accepted.value
        quote.updated_at = now
        # rows already accepted/rejected by an earlier partial run stay as they are
        db.execute(
            update(Quote)
            .where(
                Quote.case_id == case_id,
                Quote.id != quote.id,
                Quote.status == QuoteStatus.proposed.value,
            )
            .values(status=QuoteStatus.rejected.value, updated_at=now)
        )

    # ─────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────

    def resolve_payment_id(
        self,
        db: Session,
        *,
        correlation_id: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> uuid.UUID:
        """
        Provider correlation id first (checkout session / payment intent),
        then the caller-supplied reference (our payment id).
        """
        if not correlation_id and not reference_id:
            raise BadRequest("Missing payment reference.")

        if correlation_id:
            pid = (
                db.execute(
                    select(Payment.id).where(
                        or_(
                            Payment.provider_session_id == correlation_id,
                            Payment.provider_payment_intent == correlation_id,
                        )
                    )
                )
                .scalars()
                .first()
            )
            if pid:
                return pid

        if reference_id:
            try:
                ref = uuid.UUID(str(reference_id))
            except ValueError:
                raise BadRequest("Invalid payment reference.")
            pid = db.execute(select(Payment.id).where(Payment.id == ref)).scalar_one_or_none()
            if pid:
                return pid

        raise NotFound("Payment not found.")

    def attempt_settlement(
        self,
        db: Session,
        *,
        payment_id: Optional[uuid.UUID] = None,
        correlation_id: Optional[str] = None,
        payment_intent: Optional[str] = None,
        reason: str = "payment completed",
    ) -> SettlementOutcome:
        """
        Finalise one payment atomically.

        - Already settled: success, no writes (duplicate clicks, provider retries).
        - Amount differs from the quote's current amount: Conflict, nothing written.
        - Case still open: quote accepted, other proposed quotes rejected,
          case engaged, history entry appended.
        - Case already decided: payment is still marked settled and the call
          succeeds. A second settled payment on the same case is left for
          reconciliation/refund outside this service.
        """
        if (payment_id is None) == (correlation_id is None):
            raise BadRequest("Pass exactly one of payment_id or correlation_id.")
        if payment_id is None:
            payment_id = self.resolve_payment_id(db, correlation_id=correlation_id)

        try:
            pay = self._get_payment_for_update(db, payment_id)
            if not pay:
                raise NotFound("Payment not found.")

            if pay.status == PaymentStatus.settled.value:
                db.rollback()
                log.info("payment already settled", extra={"payment_id": str(payment_id)})
                return SettlementOutcome(payment_id=payment_id, already_settled=True, engaged=False)

            if pay.status == PaymentStatus.failed.value:
                raise Conflict("Payment attempt has failed; start a new checkout.")

            cs = CaseService().get_case_for_update(db, pay.case_id)
            if not cs:
                raise Internal("Case missing for payment.")

            q = db.get(Quote, pay.quote_id, populate_existing=True)
            if not q:
                raise Internal("Quote missing for payment.")

            if pay.amount_cents != q.amount_cents:
                log.warning(
                    "settlement amount mismatch",
                    extra={
                        "payment_id": str(pay.id),
                        "quote_id": str(q.id),
                        "payment_amount_cents": pay.amount_cents,
                        "quote_amount_cents": q.amount_cents,
                    },
                )
                raise Conflict("Amount mismatch.")

            now = _now()
            engaged = False
            if cs.status == CaseStatus.open.value:
                self._accept_and_sweep(db, case_id=cs.id, quote=q, now=now)
                cs.status = CaseStatus.engaged.value
                cs.engaged_at = now
                cs.accepted_quote_id = q.id
                cs.accepted_lawyer_id = q.lawyer_id
                engaged = True
            else:
                log.info(
                    "case already decided, recording payment only",
                    extra={
                        "payment_id": str(pay.id),
                        "case_id": str(cs.id),
                        "case_status": cs.status,
                        "accepted_quote_id": str(cs.accepted_quote_id) if cs.accepted_quote_id else None,
                    },
                )

            pay.status = PaymentStatus.settled.value
            pay.updated_at = now
            if payment_intent and not pay.provider_payment_intent:
                pay.provider_payment_intent = payment_intent
            db.flush()

            if engaged:
                record_case_history(
                    db,
                    case_id=cs.id,
                    actor_id=cs.client_id,
                    action=CaseHistoryAction.engaged,
                    old_status=CaseStatus.open,
                    new_status=CaseStatus.engaged,
                    reason=reason,
                )

            db.commit()
        except DomainError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise Internal("Settlement failed.") from e

        log.info(
            "payment settled",
            extra={"payment_id": str(payment_id), "engaged": engaged},
        )
        return SettlementOutcome(payment_id=payment_id, already_settled=False, engaged=engaged)
