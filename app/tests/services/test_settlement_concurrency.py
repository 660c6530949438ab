import os
import threading

import pytest

from app.core.errors import Conflict
from app.db.session import SessionLocal
from app.models.case import Case
from app.models.case_history import CaseHistory
from app.models.enums import CaseStatus, PaymentStatus, QuoteStatus
from app.models.payment import Payment
from app.models.quote import Quote
from app.services.case_service import CaseService
from app.services.payment_service import PaymentService
from app.services.quote_service import QuoteService
from app.services.settlement_service import SettlementService

# SQLite has no row locks; these need a real PostgreSQL
pytestmark = [
    pytest.mark.postgres,
    pytest.mark.skipif(
        not (os.environ.get("TEST_DATABASE_URL") or "").startswith("postgresql"),
        reason="TEST_DATABASE_URL (PostgreSQL) not set",
    ),
]


def run_concurrently(*fns):
    barrier = threading.Barrier(len(fns))
    results = [None] * len(fns)

    def worker(i, fn):
        session = SessionLocal()
        try:
            barrier.wait()
            results[i] = fn(session)
        except Exception as e:  # collected for assertions
            results[i] = e
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(i, fn)) for i, fn in enumerate(fns)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results


def setup_race(db):
    cs = CaseService().create_case(db, client_id="client-1", title="Race", category="test")
    qa = QuoteService().submit_or_update(db, case_id=cs.id, lawyer_id="lawyer-a", amount_cents=500, days=5)
    qb = QuoteService().submit_or_update(db, case_id=cs.id, lawyer_id="lawyer-b", amount_cents=700, days=3)
    pa = PaymentService().start_settlement(db, quote_id=qa.id, payer_id="client-1", provider="mock")
    pb = PaymentService().start_settlement(db, quote_id=qb.id, payer_id="client-1", provider="mock")
    return cs.id, pa.id, pb.id


def test_sibling_settlements_produce_one_winner(db):
    case_id, pa, pb = setup_race(db)
    db.close()

    results = run_concurrently(
        lambda s: SettlementService().attempt_settlement(s, payment_id=pa),
        lambda s: SettlementService().attempt_settlement(s, payment_id=pb),
    )

    assert not any(isinstance(r, Exception) for r in results), results
    assert sum(1 for r in results if r.engaged) == 1

    with SessionLocal() as s:
        cs = s.get(Case, case_id)
        assert cs.status == CaseStatus.engaged.value
        quotes = s.query(Quote).filter(Quote.case_id == case_id).all()
        assert sorted(q.status for q in quotes) == [QuoteStatus.accepted.value, QuoteStatus.rejected.value]
        accepted = next(q for q in quotes if q.status == QuoteStatus.accepted.value)
        assert cs.accepted_quote_id == accepted.id
        assert s.query(CaseHistory).filter(
            CaseHistory.case_id == case_id, CaseHistory.action == "engaged"
        ).count() == 1


def test_duplicate_completion_settles_once(db):
    case_id, pa, _ = setup_race(db)
    db.close()

    results = run_concurrently(
        *[lambda s: SettlementService().attempt_settlement(s, payment_id=pa) for _ in range(4)]
    )

    assert not any(isinstance(r, Exception) for r in results), results
    assert sum(1 for r in results if r.engaged) == 1
    assert sum(1 for r in results if r.already_settled) == 3

    with SessionLocal() as s:
        assert s.get(Payment, pa).status == PaymentStatus.settled.value
        assert s.query(CaseHistory).filter(
            CaseHistory.case_id == case_id, CaseHistory.action == "engaged"
        ).count() == 1


def test_cancel_races_settlement(db):
    case_id, pa, _ = setup_race(db)
    db.close()

    results = run_concurrently(
        lambda s: SettlementService().attempt_settlement(s, payment_id=pa),
        lambda s: CaseService().cancel_case(s, case_id=case_id, actor_id="client-1"),
    )

    settled, cancelled = results
    with SessionLocal() as s:
        cs = s.get(Case, case_id)
        if isinstance(cancelled, Conflict):
            # settlement won the lock
            assert cs.status == CaseStatus.engaged.value
            assert settled.engaged is True
        else:
            # cancel won; the payment is recorded but nothing is engaged
            assert cs.status == CaseStatus.cancelled.value
            assert cs.accepted_quote_id is None
            assert settled.engaged is False


def test_submission_races_settlement(db):
    case_id, pa, _ = setup_race(db)
    db.close()

    results = run_concurrently(
        lambda s: SettlementService().attempt_settlement(s, payment_id=pa),
        lambda s: QuoteService().submit_or_update(
            s, case_id=case_id, lawyer_id="lawyer-b", amount_cents=650, days=4
        ),
    )

    settled, submitted = results
    assert settled.engaged is True
    # either the update landed first and was swept, or it saw a decided case
    assert isinstance(submitted, (Quote, Conflict))

    with SessionLocal() as s:
        qb = s.query(Quote).filter(Quote.case_id == case_id, Quote.lawyer_id == "lawyer-b").one()
        assert qb.status == QuoteStatus.rejected.value
