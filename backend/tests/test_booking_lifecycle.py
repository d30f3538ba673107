from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app import models
from app.models import BookingStatus, ContractStatus, NotificationType, UserRole
from app.models.booking_status import BOOKING_TRANSITIONS, next_booking_status, precedes
from app.services import booking_lifecycle, contract_service, participation_service
from app.utils.errors import Forbidden, InvalidTransition, ValidationFailed
from app.utils.timeutils import utcnow

from conftest import (
    accepted_participation,
    create_booking,
    make_user,
    notifications_of,
    sent_contract,
)


def test_transition_table_is_a_single_forward_path():
    assert next_booking_status(BookingStatus.INQUIRY) == BookingStatus.PROPOSED
    assert next_booking_status(BookingStatus.PAID) == BookingStatus.COMPLETED
    assert next_booking_status(BookingStatus.COMPLETED) is None
    assert BOOKING_TRANSITIONS[BookingStatus.COMPLETED] == frozenset()
    assert BOOKING_TRANSITIONS[BookingStatus.CANCELLED] == frozenset()
    assert BookingStatus.CANCELLED in BOOKING_TRANSITIONS[BookingStatus.INVOICED]
    assert precedes(BookingStatus.INQUIRY, BookingStatus.SIGNED)
    assert not precedes(BookingStatus.SIGNED, BookingStatus.CONTRACT_SENT)


def test_create_booking_allocates_sequential_codes(db, admin, client_user):
    first = create_booking(db, admin, client_user)
    second = create_booking(db, admin, client_user, title="Summer Lookbook")

    year = utcnow().year
    assert first.code == f"BK-{year}-0001"
    assert second.code == f"BK-{year}-0002"
    assert first.status == BookingStatus.INQUIRY
    assert first.rate == Decimal("1500.00")
    assert first.created_by == admin.id


def test_create_booking_notifies_client_and_admins(db, admin, client_user):
    booking = create_booking(db, admin, client_user)

    created = notifications_of(db, NotificationType.BOOKING_STATUS_CHANGED)
    assert {n.user_id for n in created} == {admin.id, client_user.id}
    assert created[0].title == "Booking created"
    assert created[0].data["booking_id"] == booking.id
    assert created[0].data["to_status"] == "inquiry"


def test_client_can_book_for_themselves(db, client_user):
    booking = booking_lifecycle.create_booking(
        db,
        client_user.id,
        client_user.id,
        title="Headshots",
        start_date=datetime(2025, 3, 1, 10),
        end_date=datetime(2025, 3, 1, 12),
    )
    assert booking.client_id == client_user.id
    assert booking.rate is None


def test_client_cannot_book_for_someone_else(db, client_user):
    other = make_user(db, "other@example.com", UserRole.CLIENT)
    with pytest.raises(Forbidden):
        booking_lifecycle.create_booking(
            db,
            client_user.id,
            other.id,
            title="Headshots",
            start_date=datetime(2025, 3, 1, 10),
            end_date=datetime(2025, 3, 1, 12),
        )


def test_create_booking_rejects_end_before_start(db, admin, client_user):
    with pytest.raises(ValidationFailed) as exc:
        create_booking(
            db,
            admin,
            client_user,
            start_date=datetime(2025, 1, 12),
            end_date=datetime(2025, 1, 10),
        )
    assert exc.value.field == "end_date"
    assert db.query(models.Booking).count() == 0


def test_create_booking_rejects_negative_rate(db, admin, client_user):
    with pytest.raises(ValidationFailed) as exc:
        create_booking(db, admin, client_user, rate="-1")
    assert exc.value.field == "rate"


def test_create_booking_requires_client_role(db, admin, talent):
    with pytest.raises(ValidationFailed):
        create_booking(db, admin, talent)


def test_booking_code_is_immutable(db, admin, client_user):
    booking = create_booking(db, admin, client_user)
    with pytest.raises(ValueError):
        booking.code = "BK-0000-9999"


def test_admin_advances_one_step_at_a_time(db, admin, client_user):
    booking = create_booking(db, admin, client_user)

    booking = booking_lifecycle.advance_booking(db, booking.id, "proposed", admin.id)
    assert booking.status == BookingStatus.PROPOSED

    changed = notifications_of(db, NotificationType.BOOKING_STATUS_CHANGED, client_user.id)
    assert changed[-1].data["from_status"] == "inquiry"
    assert changed[-1].data["to_status"] == "proposed"


def test_advance_cannot_skip_states(db, admin, client_user):
    booking = create_booking(db, admin, client_user)
    with pytest.raises(InvalidTransition):
        booking_lifecycle.advance_booking(db, booking.id, BookingStatus.INVOICED, admin.id)
    db.refresh(booking)
    assert booking.status == BookingStatus.INQUIRY


def test_signed_is_never_directly_requestable(db, admin, client_user):
    booking = create_booking(db, admin, client_user)
    booking_lifecycle.advance_booking(db, booking.id, "proposed", admin.id)
    booking_lifecycle.advance_booking(db, booking.id, "contract_sent", admin.id)
    with pytest.raises(InvalidTransition):
        booking_lifecycle.advance_booking(db, booking.id, "signed", admin.id)


def test_client_cannot_advance(db, admin, client_user):
    booking = create_booking(db, admin, client_user)
    with pytest.raises(InvalidTransition):
        booking_lifecycle.advance_booking(db, booking.id, "proposed", client_user.id)


def test_unknown_status_is_an_invalid_transition(db, admin, client_user):
    booking = create_booking(db, admin, client_user)
    with pytest.raises(InvalidTransition):
        booking_lifecycle.advance_booking(db, booking.id, "archived", admin.id)


def test_entering_contract_sent_dispatches_contracts(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    booking_lifecycle.advance_booking(db, booking.id, "proposed", admin.id)

    booking = booking_lifecycle.advance_booking(db, booking.id, "contract_sent", admin.id)

    assert booking.status == BookingStatus.CONTRACT_SENT
    contracts = db.query(models.Contract).filter_by(booking_talent_id=participation.id).all()
    assert len(contracts) == 1
    assert contracts[0].status == ContractStatus.SENT
    assert [s.signer_id for s in contracts[0].signatures] == [talent.id]
    assert notifications_of(db, NotificationType.CONTRACT_SENT, talent.id)


def test_entering_contract_sent_skips_participations_with_contracts(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    sent_contract(db, admin, booking, participation)
    db.refresh(booking)
    assert booking.status == BookingStatus.CONTRACT_SENT

    assert db.query(models.Contract).count() == 1


def test_cancel_by_client_from_any_non_terminal_state(db, admin, client_user):
    booking = create_booking(db, admin, client_user)
    booking_lifecycle.advance_booking(db, booking.id, "proposed", admin.id)

    booking = booking_lifecycle.cancel_booking(db, booking.id, client_user.id)
    assert booking.status == BookingStatus.CANCELLED

    with pytest.raises(InvalidTransition):
        booking_lifecycle.cancel_booking(db, booking.id, admin.id)
    with pytest.raises(InvalidTransition):
        booking_lifecycle.advance_booking(db, booking.id, "contract_sent", admin.id)


def test_cancel_completed_booking_is_rejected(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    booking.status = BookingStatus.COMPLETED
    db.commit()
    with pytest.raises(InvalidTransition):
        booking_lifecycle.cancel_booking(db, booking.id, admin.id)


def test_talent_cannot_cancel(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    with pytest.raises(Forbidden):
        booking_lifecycle.cancel_booking(db, booking.id, talent.id)


def test_cancel_leaves_contracts_untouched(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = sent_contract(db, admin, booking, participation)

    booking_lifecycle.cancel_booking(db, booking.id, admin.id)

    db.refresh(contract)
    assert contract.status == ContractStatus.SENT
    assert all(s.status.value == "pending" for s in contract.signatures)


def test_late_stages_are_admin_driven(db, admin, client_user, talent):
    from app.services import signature_service

    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = sent_contract(db, admin, booking, participation)
    signature_service.sign_signature(db, contract.signatures[0].id, talent.id)

    for target in ("invoiced", "paid", "completed"):
        booking = booking_lifecycle.advance_booking(db, booking.id, target, admin.id)
    assert booking.status == BookingStatus.COMPLETED


def test_suspended_user_is_forbidden(db, admin, client_user):
    client_user.status = models.UserStatus.SUSPENDED
    db.commit()
    with pytest.raises(Forbidden):
        booking_lifecycle.create_booking(
            db,
            client_user.id,
            client_user.id,
            title="Headshots",
            start_date=datetime(2025, 3, 1, 10),
            end_date=datetime(2025, 3, 1, 12),
        )


def test_create_booking_folds_offset_dates_to_utc(db, admin, client_user):
    booking = create_booking(
        db,
        admin,
        client_user,
        start_date=datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc),
        end_date=datetime(2025, 1, 10, 12, 0, tzinfo=timezone(timedelta(hours=2))),
    )
    db.refresh(booking)
    assert booking.start_date == datetime(2025, 1, 10, 9, 0)
    assert booking.end_date == datetime(2025, 1, 10, 10, 0)


def test_create_booking_compares_mixed_offsets_in_utc(db, admin, client_user):
    with pytest.raises(ValidationFailed) as exc:
        create_booking(
            db,
            admin,
            client_user,
            start_date=datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc),
            end_date=datetime(2025, 1, 10, 11, 0),
        )
    assert exc.value.field == "end_date"


def test_sending_one_contract_dispatches_the_other_accepted_talents(db, admin, client_user, talent):
    other = make_user(db, "second.talent@example.com", UserRole.TALENT)
    undecided = make_user(db, "third.talent@example.com", UserRole.TALENT)
    booking = create_booking(db, admin, client_user)
    first = accepted_participation(db, admin, booking, talent)
    second = accepted_participation(db, admin, booking, other)
    pending = participation_service.invite_talent(db, booking.id, undecided.id, admin.id)

    sent_contract(db, admin, booking, first)

    db.refresh(booking)
    assert booking.status == BookingStatus.CONTRACT_SENT
    contracts = db.query(models.Contract).filter_by(booking_talent_id=second.id).all()
    assert [c.status for c in contracts] == [ContractStatus.SENT]
    assert contracts[0].created_by == admin.id
    assert [s.signer_id for s in contracts[0].signatures] == [other.id]
    assert notifications_of(db, NotificationType.CONTRACT_SENT, other.id)
    assert db.query(models.Contract).filter_by(booking_talent_id=pending.id).count() == 0
    assert db.query(models.Contract).count() == 2


def test_entering_contract_sent_sends_existing_drafts(db, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    draft = contract_service.create_contract(db, booking.id, participation.id, admin.id)
    booking_lifecycle.advance_booking(db, booking.id, "proposed", admin.id)

    booking_lifecycle.advance_booking(db, booking.id, "contract_sent", admin.id)

    db.refresh(draft)
    assert draft.status == ContractStatus.SENT
    assert draft.sent_at is not None
    assert [s.signer_id for s in draft.signatures] == [talent.id]
    assert db.query(models.Contract).count() == 1
    assert len(notifications_of(db, NotificationType.CONTRACT_SENT, talent.id)) == 1
