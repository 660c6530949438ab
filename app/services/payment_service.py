# app/services/payment_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import Conflict, DomainError, Forbidden, Internal, NotFound
from app.models.enums import CaseStatus, PaymentStatus
from app.models.payment import Payment
from app.services.case_service import CaseService
from app.services.payment_provider import CheckoutSession
from app.services.quote_service import QuoteService

log = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


class PaymentService:
    def get_payment(self, db: Session, payment_id: uuid.UUID) -> Optional[Payment]:
        return db.execute(select(Payment).where(Payment.id == payment_id)).scalar_one_or_none()

    def _active_for_quote(self, db: Session, quote_id: uuid.UUID) -> Optional[Payment]:
        return (
            db.execute(
                select(Payment)
                .where(
                    Payment.quote_id == quote_id,
                    Payment.status != PaymentStatus.failed.value,
                )
                .execution_options(populate_existing=True)
            )
            .scalars()
            .first()
        )

    def start_settlement(
        self,
        db: Session,
        *,
        quote_id: uuid.UUID,
        payer_id: str,
        provider: str,
    ) -> Payment:
        """
        Create or reuse the initiated payment for a quote. Bookkeeping only:
        no winner is picked here.
        """
        try:
            q = QuoteService().get_quote(db, quote_id)
            if not q:
                raise NotFound("Quote not found.")
            cs = CaseService().get_case(db, q.case_id)
            if not cs:
                raise Internal("Case missing for quote.")
            if cs.client_id != payer_id:
                raise Forbidden("Only the case owner can pay for a quote.")
            if cs.status != CaseStatus.open.value:
                raise Conflict("Case is not open.")

            pay = self._active_for_quote(db, q.id)
            if pay and pay.status == PaymentStatus.settled.value:
                raise Conflict("Quote already paid.")
            if pay and pay.amount_cents == q.amount_cents:
                db.commit()
                return pay
            if pay:
                # quote re-priced since this attempt started; the record could
                # never pass the settlement amount check, so retire it
                log.info(
                    "stale payment amount, replacing",
                    extra={
                        "payment_id": str(pay.id),
                        "payment_amount_cents": pay.amount_cents,
                        "quote_amount_cents": q.amount_cents,
                    },
                )
                pay.status = PaymentStatus.failed.value
                pay.updated_at = _now()
                db.flush()

            pay = Payment(
                case_id=cs.id,
                quote_id=q.id,
                client_id=cs.client_id,
                provider=provider,
                amount_cents=q.amount_cents,
                status=PaymentStatus.initiated.value,
                created_at=_now(),
                updated_at=_now(),
            )
            db.add(pay)
            db.commit()
        except DomainError:
            db.rollback()
            raise
        except IntegrityError:
            # a concurrent checkout for the same quote inserted first
            db.rollback()
            pay = self._active_for_quote(db, quote_id)
            if not pay:
                raise Internal("Could not create payment.")
            if pay.status == PaymentStatus.settled.value:
                raise Conflict("Quote already paid.")
            db.commit()
            return pay
        except SQLAlchemyError as e:
            db.rollback()
            raise Internal("Could not create payment.") from e

        db.refresh(pay)
        log.info(
            "payment initiated",
            extra={"payment_id": str(pay.id), "quote_id": str(quote_id), "amount_cents": pay.amount_cents},
        )
        return pay

    def checkout(
        self,
        db: Session,
        *,
        quote_id: uuid.UUID,
        payer_id: str,
        provider,
    ) -> Tuple[Payment, CheckoutSession]:
        """
        start_settlement + provider checkout session.

        Correlation ids are write-once: a record whose session expired is
        failed and replaced instead of being re-pointed. A completed session
        is left alone until its completion callback settles the record.
        """
        provider_name = provider.name.value
        pay = self.start_settlement(db, quote_id=quote_id, payer_id=payer_id, provider=provider_name)

        if pay.provider_session_id:
            existing = provider.retrieve_session(pay.provider_session_id)
            if existing and existing.is_open:
                return pay, existing
            if existing and existing.status == "complete":
                # paid at the provider; the completion callback settles this record
                raise Conflict("Payment already completed; awaiting confirmation.")
            self.mark_failed(db, payment_id=pay.id)
            pay = self.start_settlement(db, quote_id=quote_id, payer_id=payer_id, provider=provider_name)

        q = QuoteService().get_quote(db, pay.quote_id)
        cs = CaseService().get_case(db, pay.case_id)
        session = provider.create_session(payment=pay, quote=q, case=cs)

        if session.session_id:
            try:
                res = db.execute(
                    update(Payment)
                    .where(
                        Payment.id == pay.id,
                        Payment.provider_session_id.is_(None),
                    )
                    .values(provider_session_id=session.session_id, updated_at=_now())
                )
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise Internal("Could not store checkout session.") from e

            if res.rowcount == 0:
                # another request attached its session first; hand out that one
                db.refresh(pay)
                log.warning(
                    "checkout session already attached",
                    extra={"payment_id": str(pay.id), "discarded_session_id": session.session_id},
                )
                existing = provider.retrieve_session(pay.provider_session_id)
                if existing and existing.is_open:
                    return pay, existing
                raise Conflict("Checkout session no longer open; retry checkout.")

            db.refresh(pay)

        return pay, session

    def mark_failed(self, db: Session, *, payment_id: uuid.UUID) -> Payment:
        """
        initiated -> failed. Settled and failed records are left untouched.
        """
        try:
            pay = (
                db.execute(
                    select(Payment)
                    .where(Payment.id == payment_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                .scalars()
                .one_or_none()
            )
            if not pay:
                raise NotFound("Payment not found.")
            if pay.status == PaymentStatus.initiated.value:
                pay.status = PaymentStatus.failed.value
                pay.updated_at = _now()
                log.info("payment failed", extra={"payment_id": str(pay.id)})
            db.commit()
        except DomainError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise Internal("Could not update payment.") from e

        db.refresh(pay)
        return pay
