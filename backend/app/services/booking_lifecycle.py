"""Booking state machine.

Bookings walk ``inquiry -> proposed -> contract_sent -> signed -> invoiced ->
paid -> completed`` one step at a time and may be cancelled from any
non-terminal state. ``contract_sent`` and ``signed`` are also reached through
cascades from the contract pipeline (see :func:`apply_contract_sent` and
:func:`apply_contract_signed`).
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy.orm import Session

from .. import crud, models
from ..models import BookingStatus, NotificationType, UserRole
from ..models.booking_status import (
    BOOKING_TERMINAL,
    BOOKING_TRANSITIONS,
    next_booking_status,
    precedes,
)
from ..utils.errors import Forbidden, InvalidTransition, NotFound, ValidationFailed
from ..utils.timeutils import to_naive_utc
from . import identity
from .unit_of_work import (
    BookingEnteredContractSent,
    ContractFullySigned,
    ContractSent,
    UnitOfWork,
    run_in_transaction,
    subscribe,
)

logger = logging.getLogger(__name__)

# Who may request each forward step. ``signed`` is absent on purpose: it is
# only ever reached by contract completion.
ADVANCE_ROLES: dict[BookingStatus, frozenset[UserRole]] = {
    BookingStatus.PROPOSED: frozenset({UserRole.ADMIN}),
    BookingStatus.CONTRACT_SENT: frozenset({UserRole.ADMIN}),
    BookingStatus.INVOICED: frozenset({UserRole.ADMIN}),
    BookingStatus.PAID: frozenset({UserRole.ADMIN}),
    BookingStatus.COMPLETED: frozenset({UserRole.ADMIN}),
}


def _coerce_status(value: Any) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(str(value))
    except ValueError:
        raise InvalidTransition(f"Unknown booking status '{value}'.")


def _coerce_rate(rate: Any) -> Optional[Decimal]:
    if rate is None or rate == "":
        return None
    try:
        value = Decimal(str(rate))
    except (InvalidOperation, ValueError):
        raise ValidationFailed("Rate must be a number.", field="rate")
    if value < 0:
        raise ValidationFailed("Rate cannot be negative.", field="rate")
    return value.quantize(Decimal("0.01"))


def _booking_payload(booking: models.Booking, **extra: Any) -> dict[str, Any]:
    return {
        "booking_id": booking.id,
        "booking_code": booking.code,
        "booking_title": booking.title,
        **extra,
    }


def _move(uow: UnitOfWork, booking: models.Booking, target: BookingStatus) -> BookingStatus:
    """Apply one adjacency step and flush it. Returns the previous status."""
    current = booking.status
    if target not in BOOKING_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(
            f"Cannot move booking from {current.value} to {target.value}."
        )
    booking.status = target
    uow.db.flush()
    logger.info(
        "booking_status id=%s code=%s %s -> %s",
        booking.id,
        booking.code,
        current.value,
        target.value,
    )
    return current


def _notify_status_change(
    uow: UnitOfWork,
    booking: models.Booking,
    from_status: BookingStatus | None,
    extra_recipients: list[int] | None = None,
) -> None:
    recipients = [booking.client_id, booking.created_by, *(extra_recipients or [])]
    uow.notify(
        NotificationType.BOOKING_STATUS_CHANGED,
        recipients,
        **_booking_payload(
            booking,
            from_status=from_status.value if from_status else None,
            to_status=booking.status.value,
        ),
    )


# ─── Create ──────────────────────────────────────────────────────────────────


def _create_booking(
    uow: UnitOfWork,
    actor_id: int,
    client_id: int,
    title: str,
    start_date: datetime,
    end_date: datetime,
    rate: Any = None,
    location: str | None = None,
    notes: str | None = None,
    deliverables: str | None = None,
) -> models.Booking:
    db = uow.db
    actor = identity.get_user(db, actor_id)
    if actor.role != UserRole.ADMIN and actor.id != client_id:
        raise Forbidden("Clients may only create bookings for themselves.")
    client = identity.get_user(db, client_id)
    if client.role != UserRole.CLIENT:
        raise ValidationFailed(f"User {client_id} is not a client.", field="client_id")

    if not title or not title.strip():
        raise ValidationFailed("Title is required.", field="title")
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
    if start_date is None or end_date is None:
        raise ValidationFailed("Start and end dates are required.", field="start_date")
    if end_date < start_date:
        raise ValidationFailed("End date cannot be before start date.", field="end_date")

    booking = crud.booking.create_booking(
        db,
        code=crud.booking.next_code(db),
        client_id=client.id,
        title=title.strip(),
        start_date=start_date,
        end_date=end_date,
        rate=_coerce_rate(rate),
        location=location,
        notes=notes,
        deliverables=deliverables,
        created_by=actor.id,
    )
    logger.info("booking_created id=%s code=%s client_id=%s", booking.id, booking.code, client.id)
    _notify_status_change(uow, booking, None, extra_recipients=identity.admin_ids(db))
    return booking


def create_booking(db: Session, actor_id: int, client_id: int, **fields: Any) -> models.Booking:
    """Create a booking at ``inquiry`` with a freshly allocated code."""
    return run_in_transaction(db, _create_booking, actor_id, client_id, **fields)


# ─── Advance / cancel ────────────────────────────────────────────────────────


def _locked_booking(db: Session, booking_id: int) -> models.Booking:
    booking = crud.booking.get_booking_for_update(db, booking_id)
    if booking is None:
        raise NotFound(f"Booking {booking_id} not found.", field="booking_id")
    return booking


def _advance_booking(
    uow: UnitOfWork, booking_id: int, target: Any, actor_id: int
) -> models.Booking:
    db = uow.db
    role = identity.resolve_role(db, actor_id)
    target = _coerce_status(target)
    booking = _locked_booking(db, booking_id)
    current = booking.status

    if target == BookingStatus.SIGNED:
        raise InvalidTransition("Bookings become signed only when a contract is fully signed.")
    if next_booking_status(current) != target or current in BOOKING_TERMINAL:
        raise InvalidTransition(
            f"Cannot move booking from {current.value} to {target.value}."
        )
    if role not in ADVANCE_ROLES.get(target, frozenset()):
        raise InvalidTransition(
            f"Role {role.value} may not move a booking to {target.value}."
        )

    previous = _move(uow, booking, target)
    _notify_status_change(uow, booking, previous)
    if target == BookingStatus.CONTRACT_SENT:
        uow.raise_event(BookingEnteredContractSent(booking=booking, actor_id=actor_id))
    return booking


def advance_booking(db: Session, booking_id: int, target: Any, actor_id: int) -> models.Booking:
    """Move a booking to its direct successor status."""
    return run_in_transaction(db, _advance_booking, booking_id, target, actor_id)


def _cancel_booking(uow: UnitOfWork, booking_id: int, actor_id: int) -> models.Booking:
    db = uow.db
    actor = identity.get_user(db, actor_id)
    booking = _locked_booking(db, booking_id)
    if actor.role != UserRole.ADMIN and actor.id != booking.client_id:
        raise Forbidden("Only an admin or the booking's client may cancel it.")
    if booking.status in BOOKING_TERMINAL:
        raise InvalidTransition(f"Booking is already {booking.status.value}.")
    previous = _move(uow, booking, BookingStatus.CANCELLED)
    _notify_status_change(uow, booking, previous)
    return booking


def cancel_booking(db: Session, booking_id: int, actor_id: int) -> models.Booking:
    """Cancel a non-terminal booking. Contracts and signatures are left alone."""
    return run_in_transaction(db, _cancel_booking, booking_id, actor_id)


# ─── Reads ───────────────────────────────────────────────────────────────────


def can_view(db: Session, booking: models.Booking, user: models.User) -> bool:
    if user.role == UserRole.ADMIN or user.id in (booking.client_id, booking.created_by):
        return True
    return any(p.talent_id == user.id for p in booking.talents)


def get_booking(db: Session, booking_id: int, actor_id: int) -> models.Booking:
    actor = identity.get_user(db, actor_id)
    booking = crud.booking.get_booking(db, booking_id)
    if booking is None:
        raise NotFound(f"Booking {booking_id} not found.", field="booking_id")
    if not can_view(db, booking, actor):
        raise Forbidden("You do not have access to this booking.")
    return booking


def list_bookings(db: Session, actor_id: int, skip: int = 0, limit: int = 100) -> list[models.Booking]:
    actor = identity.get_user(db, actor_id)
    if actor.role == UserRole.ADMIN:
        return crud.booking.get_bookings(db, skip=skip, limit=limit)
    if actor.role == UserRole.CLIENT:
        return crud.booking.get_bookings_by_client(db, actor.id, skip=skip, limit=limit)
    return crud.booking.get_bookings_by_talent(db, actor.id, skip=skip, limit=limit)


# ─── Cascades from the contract pipeline ─────────────────────────────────────


def walk_forward(
    uow: UnitOfWork, booking: models.Booking, target: BookingStatus, actor_id: int
) -> bool:
    """Step ``booking`` forward until it reaches ``target``.

    A booking that is terminal or already at/after ``target`` is left alone.
    Stepping through ``contract_sent`` dispatches contracts to the other
    accepted talents the same way a manual advance does. Returns True when the
    booking moved.
    """
    booking = _locked_booking(uow.db, booking.id)
    if booking.status in BOOKING_TERMINAL or not precedes(booking.status, target):
        logger.info(
            "booking_cascade_skipped id=%s status=%s target=%s",
            booking.id,
            booking.status.value,
            target.value,
        )
        return False
    start = booking.status
    entered_contract_sent = False
    while booking.status != target:
        _move(uow, booking, next_booking_status(booking.status))
        if booking.status == BookingStatus.CONTRACT_SENT:
            entered_contract_sent = True
    _notify_status_change(uow, booking, start)
    if entered_contract_sent:
        uow.raise_event(BookingEnteredContractSent(booking=booking, actor_id=actor_id))
    return True


@subscribe(ContractSent)
def apply_contract_sent(uow: UnitOfWork, event: ContractSent) -> None:
    walk_forward(uow, event.booking, BookingStatus.CONTRACT_SENT, event.contract.created_by)


@subscribe(ContractFullySigned)
def apply_contract_signed(uow: UnitOfWork, event: ContractFullySigned) -> None:
    walk_forward(uow, event.booking, BookingStatus.SIGNED, event.contract.created_by)
