from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from app import models
from app.core.config import settings
from app.models import (
    BookingStatus,
    ContractStatus,
    NotificationType,
    SignatureStatus,
    SignerKind,
    UserRole,
)
from app.models.contract import CONTRACT_TRANSITIONS
from app.services import contract_renderer, contract_service, participation_service, signature_service
from app.utils.errors import (
    Forbidden,
    InvalidTransition,
    NotFound,
    PreconditionFailed,
    ValidationFailed,
)
from app.utils.timeutils import utcnow

from conftest import (
    accepted_participation,
    create_booking,
    make_user,
    notifications_of,
    sent_contract,
)


def test_create_contract_for_accepted_participation(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    before = utcnow()

    contract = contract_service.create_contract(db, booking.id, participation.id, admin.id)

    assert contract.status == ContractStatus.DRAFT
    assert contract.version == 1
    assert contract.title == "Contract - Spring Campaign"
    assert booking.code in contract.content
    assert "Talent Tester" in contract.content
    assert contract.signatures == []
    expected_due = before + timedelta(days=7)
    assert abs((contract.due_date - expected_due).total_seconds()) < 60


def test_create_contract_requires_accepted_participation(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = participation_service.invite_talent(db, booking.id, talent.id, admin.id)

    with pytest.raises(PreconditionFailed):
        contract_service.create_contract(db, booking.id, participation.id, admin.id)


def test_create_contract_participation_must_belong_to_booking(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    other_booking = create_booking(db, admin, client_user, title="Other")
    participation = accepted_participation(db, admin, booking, talent)

    with pytest.raises(PreconditionFailed):
        contract_service.create_contract(db, other_booking.id, participation.id, admin.id)


def test_only_admin_creates_contracts(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)

    with pytest.raises(Forbidden):
        contract_service.create_contract(db, booking.id, participation.id, client_user.id)


def test_due_date_must_be_in_the_future(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)

    with pytest.raises(ValidationFailed):
        contract_service.create_contract(
            db, booking.id, participation.id, admin.id, due_date=utcnow() - timedelta(days=1)
        )


def test_one_active_contract_per_participation(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    first = contract_service.create_contract(db, booking.id, participation.id, admin.id)

    with pytest.raises(PreconditionFailed):
        contract_service.create_contract(db, booking.id, participation.id, admin.id)

    contract_service.cancel_contract(db, first.id, admin.id)
    replacement = contract_service.create_contract(db, booking.id, participation.id, admin.id)
    assert replacement.id != first.id


def test_active_contract_index_rejects_raw_duplicate(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract_service.create_contract(db, booking.id, participation.id, admin.id)

    db.add(
        models.Contract(
            booking_id=booking.id,
            booking_talent_id=participation.id,
            title="dup",
            content="dup",
            created_by=admin.id,
        )
    )
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_send_spawns_talent_signature_and_cascades_booking(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)

    contract = sent_contract(db, admin, booking, participation)

    assert contract.status == ContractStatus.SENT
    assert contract.sent_at is not None
    assert contract.version == 2
    assert [(s.signer_id, s.signer_kind, s.status) for s in contract.signatures] == [
        (talent.id, SignerKind.TALENT, SignatureStatus.PENDING)
    ]
    db.refresh(booking)
    # inquiry -> proposed -> contract_sent
    assert booking.status == BookingStatus.CONTRACT_SENT
    sent = notifications_of(db, NotificationType.CONTRACT_SENT)
    assert [n.user_id for n in sent] == [talent.id]
    assert sent[0].link == f"/contracts/{contract.id}"


def test_send_adds_guardian_for_minor(db, admin, client_user, minor_talent, guardian):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, minor_talent)

    contract = sent_contract(db, admin, booking, participation)

    kinds = {s.signer_id: s.signer_kind for s in contract.signatures}
    assert kinds == {minor_talent.id: SignerKind.TALENT, guardian.id: SignerKind.GUARDIAN}
    assert {n.user_id for n in notifications_of(db, NotificationType.CONTRACT_SENT)} == {
        minor_talent.id,
        guardian.id,
    }


def test_guardian_cosign_can_be_disabled(db, admin, client_user, minor_talent, monkeypatch):
    monkeypatch.setattr(settings, "REQUIRE_GUARDIAN_COSIGN", False)
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, minor_talent)

    contract = sent_contract(db, admin, booking, participation)

    assert [s.signer_id for s in contract.signatures] == [minor_talent.id]


def test_client_and_explicit_cosigners(db, admin, client_user, talent, monkeypatch):
    monkeypatch.setattr(settings, "REQUIRE_CLIENT_COSIGN", True)
    agent = make_user(db, "agent@example.com", UserRole.ADMIN)
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = contract_service.create_contract(db, booking.id, participation.id, admin.id)

    # the client appears twice; one signature row per user
    contract = contract_service.send_contract(
        db, contract.id, admin.id, co_signer_ids=[agent.id, client_user.id]
    )

    assert [(s.signer_id, s.signer_kind) for s in contract.signatures] == [
        (talent.id, SignerKind.TALENT),
        (client_user.id, SignerKind.CLIENT),
        (agent.id, SignerKind.CO_SIGNER),
    ]


def test_send_twice_is_invalid(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = sent_contract(db, admin, booking, participation)

    with pytest.raises(InvalidTransition):
        contract_service.send_contract(db, contract.id, admin.id)
    assert db.query(models.Signature).count() == 1


def test_send_unknown_contract(db, admin):
    with pytest.raises(NotFound):
        contract_service.send_contract(db, 404, admin.id)


def test_cancel_sent_contract_keeps_signatures(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = sent_contract(db, admin, booking, participation)

    cancelled = contract_service.cancel_contract(db, contract.id, admin.id)

    assert cancelled.status == ContractStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert [s.status for s in cancelled.signatures] == [SignatureStatus.PENDING]
    with pytest.raises(InvalidTransition):
        contract_service.cancel_contract(db, contract.id, admin.id)
    with pytest.raises(InvalidTransition):
        contract_service.send_contract(db, contract.id, admin.id)


def test_cancel_draft_contract(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = contract_service.create_contract(db, booking.id, participation.id, admin.id)

    assert contract_service.cancel_contract(db, contract.id, admin.id).status == ContractStatus.CANCELLED


def test_check_expiry_expires_overdue_contract_and_pending_signatures(db, admin, client_user, minor_talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, minor_talent)
    contract = sent_contract(db, admin, booking, participation)
    later = contract.due_date + timedelta(minutes=1)

    expired = contract_service.check_expiry(db, contract.id, now=later)

    assert expired.status == ContractStatus.EXPIRED
    assert {s.status for s in expired.signatures} == {SignatureStatus.EXPIRED}
    version = expired.version

    again = contract_service.check_expiry(db, contract.id, now=later)
    assert again.status == ContractStatus.EXPIRED
    assert again.version == version


def test_check_expiry_before_due_date_is_a_no_op(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = sent_contract(db, admin, booking, participation)

    checked = contract_service.check_expiry(db, contract.id)

    assert checked.status == ContractStatus.SENT
    assert checked.version == 2


def test_draft_contracts_never_expire(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = contract_service.create_contract(db, booking.id, participation.id, admin.id)

    checked = contract_service.check_expiry(db, contract.id, now=contract.due_date + timedelta(days=1))
    assert checked.status == ContractStatus.DRAFT


def test_expiry_sweep(db, admin, client_user, talent):
    other = make_user(db, "second.talent@example.com", UserRole.TALENT)
    booking = create_booking(db, admin, client_user)
    overdue = sent_contract(db, admin, booking, accepted_participation(db, admin, booking, talent))
    fresh = sent_contract(
        db,
        admin,
        booking,
        accepted_participation(db, admin, booking, other),
        due_date=utcnow() + timedelta(days=30),
    )

    expired = contract_service.expire_overdue_contracts(db, now=overdue.due_date + timedelta(hours=1))

    assert expired == [overdue.id]
    db.refresh(fresh)
    assert fresh.status == ContractStatus.SENT


def test_reads_apply_lazy_expiry(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = sent_contract(db, admin, booking, participation)
    contract.due_date = utcnow() - timedelta(minutes=5)
    db.commit()

    listed = contract_service.list_contracts_for_user(db, talent.id)
    assert [c.status for c in listed] == [ContractStatus.EXPIRED]
    assert contract_service.get_contract(db, contract.id, talent.id).status == ContractStatus.EXPIRED


def test_contract_visibility(db, admin, client_user, talent):
    stranger = make_user(db, "stranger@example.com", UserRole.TALENT)
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = sent_contract(db, admin, booking, participation)

    assert contract_service.get_contract(db, contract.id, client_user.id).id == contract.id
    assert contract_service.list_contracts_for_booking(db, booking.id, stranger.id) == []
    with pytest.raises(Forbidden):
        contract_service.get_contract(db, contract.id, stranger.id)


def test_due_date_with_utc_offset_is_stored_as_naive_utc(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    due = datetime(2030, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))

    contract = contract_service.create_contract(db, booking.id, participation.id, admin.id, due_date=due)

    assert contract.due_date == datetime(2030, 1, 1, 0, 0)
    assert contract.due_date.tzinfo is None


def test_past_due_date_with_utc_offset_is_rejected(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)

    with pytest.raises(ValidationFailed):
        contract_service.create_contract(
            db,
            booking.id,
            participation.id,
            admin.id,
            due_date=datetime(2020, 1, 1, tzinfo=timezone.utc),
        )


def test_expiry_accepts_offset_aware_now(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = sent_contract(db, admin, booking, participation)

    later = (contract.due_date + timedelta(hours=1)).replace(tzinfo=timezone.utc)
    assert contract_service.check_expiry(db, contract.id, now=later).status == ContractStatus.EXPIRED


def test_contract_transition_table():
    assert CONTRACT_TRANSITIONS[ContractStatus.DRAFT] == {ContractStatus.SENT, ContractStatus.CANCELLED}
    assert CONTRACT_TRANSITIONS[ContractStatus.SENT] == {
        ContractStatus.SIGNED,
        ContractStatus.EXPIRED,
        ContractStatus.CANCELLED,
    }
    for terminal in (ContractStatus.SIGNED, ContractStatus.EXPIRED, ContractStatus.CANCELLED):
        assert CONTRACT_TRANSITIONS[terminal] == frozenset()


def test_signed_contract_cannot_be_sent_or_cancelled(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = sent_contract(db, admin, booking, participation)
    signature_service.sign_signature(db, contract.signatures[0].id, talent.id)

    with pytest.raises(InvalidTransition):
        contract_service.send_contract(db, contract.id, admin.id)
    with pytest.raises(InvalidTransition, match="Cannot cancel a signed contract"):
        contract_service.cancel_contract(db, contract.id, admin.id)
    db.refresh(contract)
    assert contract.status == ContractStatus.SIGNED


def test_expired_contract_cannot_be_sent_or_cancelled(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = sent_contract(db, admin, booking, participation)
    contract_service.check_expiry(db, contract.id, now=contract.due_date + timedelta(days=1))

    with pytest.raises(InvalidTransition):
        contract_service.send_contract(db, contract.id, admin.id)
    with pytest.raises(InvalidTransition, match="Cannot cancel a expired contract"):
        contract_service.cancel_contract(db, contract.id, admin.id)


def test_cancelled_contract_cannot_be_sent(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = contract_service.create_contract(db, booking.id, participation.id, admin.id)
    contract_service.cancel_contract(db, contract.id, admin.id)

    with pytest.raises(InvalidTransition, match="Only draft contracts can be sent"):
        contract_service.send_contract(db, contract.id, admin.id)


@pytest.mark.parametrize(
    "template_id, heading, section",
    [
        ("modeling-standard", "PROFESSIONAL MODELING AGREEMENT", "SCOPE OF MODELING SERVICES"),
        ("acting-standard", "PROFESSIONAL ACTING AGREEMENT", "ROLE & PERFORMANCE REQUIREMENTS"),
        ("commercial-standard", "COMMERCIAL ADVERTISEMENT AGREEMENT", "USAGE RIGHTS & MEDIA DISTRIBUTION"),
        ("event-standard", "LIVE EVENT PERFORMANCE AGREEMENT", "TECHNICAL REQUIREMENTS & LOGISTICS"),
    ],
)
def test_contract_from_template(db, admin, client_user, talent, template_id, heading, section):
    booking = create_booking(db, admin, client_user, deliverables="Three looks", notes="Bring heels")
    participation = accepted_participation(db, admin, booking, talent)

    contract = contract_service.create_contract(
        db, booking.id, participation.id, admin.id, template_id=template_id
    )

    template = contract_renderer.get_template(template_id)
    assert contract.title == f"{template.name} - Spring Campaign"
    assert contract.content.startswith(heading)
    assert section in contract.content
    assert template.notes_heading in contract.content
    assert "Three looks" in contract.content
    assert booking.code in contract.content
    assert "Talent Tester" in contract.content


def test_default_template_is_the_general_agreement(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)

    contract = contract_service.create_contract(db, booking.id, participation.id, admin.id)

    assert contract.title == "Contract - Spring Campaign"
    assert contract.content.startswith("PROFESSIONAL TALENT AGREEMENT")


def test_unknown_template_is_rejected(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)

    with pytest.raises(ValidationFailed) as exc:
        contract_service.create_contract(
            db, booking.id, participation.id, admin.id, template_id="wedding-standard"
        )

    assert exc.value.field == "template_id"
    assert db.query(models.Contract).count() == 0


def test_template_catalogue():
    ids = [t.id for t in contract_renderer.get_all_templates()]
    assert ids == [
        "general-standard",
        "modeling-standard",
        "acting-standard",
        "commercial-standard",
        "event-standard",
    ]
    assert [t.id for t in contract_renderer.get_templates_by_category("event")] == ["event-standard"]
    assert contract_renderer.get_templates_by_category("music") == []
