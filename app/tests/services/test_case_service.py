import uuid

import pytest

from app.core.errors import Conflict, Forbidden, NotFound
from app.models.case import Case
from app.models.case_history import CaseHistory
from app.models.enums import CaseHistoryAction, CaseStatus, ParticipantRole
from app.services.case_history_service import record_case_history
from app.services.case_service import CaseService
from app.services.payment_service import PaymentService
from app.services.quote_service import QuoteService
from app.services.settlement_service import SettlementService


def create_case(db, client_id="client-1"):
    return CaseService().create_case(
        db, client_id=client_id, title="Employment claim", category="employment", description="unpaid wages"
    )


def engage(db, cs, lawyer_id="lawyer-a"):
    q = QuoteService().submit_or_update(db, case_id=cs.id, lawyer_id=lawyer_id, amount_cents=30_000, days=10)
    pay = PaymentService().start_settlement(db, quote_id=q.id, payer_id=cs.client_id, provider="mock")
    SettlementService().attempt_settlement(db, payment_id=pay.id)
    db.refresh(cs)
    return q


def test_create_case_records_history(db):
    cs = create_case(db)

    assert cs.status == CaseStatus.open.value
    assert cs.accepted_quote_id is None

    rows = db.query(CaseHistory).filter(CaseHistory.case_id == cs.id).all()
    assert len(rows) == 1
    assert rows[0].action == CaseHistoryAction.created.value
    assert rows[0].old_status is None
    assert rows[0].new_status == CaseStatus.open.value
    assert rows[0].actor_id == "client-1"


def test_cancel_open_case(db):
    svc = CaseService()
    cs = create_case(db)

    cs = svc.cancel_case(db, case_id=cs.id, actor_id="client-1", comment="settled out of court")

    assert cs.status == CaseStatus.cancelled.value
    last = svc.list_history(db, case_id=cs.id, participant_id="client-1", role=ParticipantRole.CLIENT)[-1]
    assert last.action == CaseHistoryAction.cancelled.value
    assert last.old_status == CaseStatus.open.value
    assert last.new_status == CaseStatus.cancelled.value
    assert last.reason == "settled out of court"


def test_cancel_requires_owner(db):
    cs = create_case(db)
    with pytest.raises(Forbidden):
        CaseService().cancel_case(db, case_id=cs.id, actor_id="client-2")


def test_cancel_unknown_case(db):
    with pytest.raises(NotFound):
        CaseService().cancel_case(db, case_id=uuid.uuid4(), actor_id="client-1")


def test_cannot_cancel_engaged_case(db):
    cs = create_case(db)
    engage(db, cs)

    with pytest.raises(Conflict):
        CaseService().cancel_case(db, case_id=cs.id, actor_id="client-1")

    db.refresh(cs)
    assert cs.status == CaseStatus.engaged.value


def test_close_requires_engaged(db):
    cs = create_case(db)
    with pytest.raises(Conflict) as exc:
        CaseService().close_case(db, case_id=cs.id, actor_id="client-1")
    assert "engaged" in exc.value.message


def test_close_engaged_case_keeps_winner(db):
    cs = create_case(db)
    q = engage(db, cs)

    cs = CaseService().close_case(db, case_id=cs.id, actor_id="client-1")

    assert cs.status == CaseStatus.closed.value
    assert cs.accepted_quote_id == q.id
    assert cs.accepted_lawyer_id == "lawyer-a"


def test_history_is_ordered(db):
    cs = create_case(db)
    engage(db, cs)
    CaseService().close_case(db, case_id=cs.id, actor_id="client-1")

    rows = CaseService().list_history(db, case_id=cs.id, participant_id="client-1", role=ParticipantRole.CLIENT)
    assert [r.action for r in rows] == ["created", "engaged", "closed"]


def test_history_visibility(db):
    svc = CaseService()
    cs = create_case(db)
    QuoteService().submit_or_update(db, case_id=cs.id, lawyer_id="lawyer-b", amount_cents=90_000, days=2)
    engage(db, cs, lawyer_id="lawyer-a")

    assert svc.list_history(db, case_id=cs.id, participant_id="lawyer-a", role=ParticipantRole.LAWYER)

    with pytest.raises(Forbidden):
        svc.list_history(db, case_id=cs.id, participant_id="lawyer-b", role=ParticipantRole.LAWYER)
    with pytest.raises(Forbidden):
        svc.list_history(db, case_id=cs.id, participant_id="client-2", role=ParticipantRole.CLIENT)
    with pytest.raises(NotFound):
        svc.list_history(db, case_id=uuid.uuid4(), participant_id="client-1", role=ParticipantRole.CLIENT)


def test_history_write_failure_does_not_break_caller(db):
    cs = Case(client_id="client-1", title="Probate", category="estate", status=CaseStatus.open.value)
    db.add(cs)
    db.flush()

    # actor_id is NOT NULL; the insert fails inside its savepoint
    row = record_case_history(
        db,
        case_id=cs.id,
        actor_id=None,
        action=CaseHistoryAction.created,
        old_status=None,
        new_status=CaseStatus.open,
    )
    assert row is None

    db.commit()
    assert db.get(Case, cs.id) is not None
    assert db.query(CaseHistory).filter(CaseHistory.case_id == cs.id).count() == 0
