"""Talent invitations on a booking and their one-time accept/decline."""

from __future__ import annotations

import logging
from typing import Any, List

from sqlalchemy.orm import Session

from .. import crud, models
from ..models import NotificationType, RequestStatus, UserRole
from ..models.booking_status import BOOKING_TERMINAL
from ..utils.errors import (
    AlreadyResponded,
    DuplicatePending,
    Forbidden,
    NotFound,
    PreconditionFailed,
    ValidationFailed,
)
from . import identity
from .booking_lifecycle import can_view
from .unit_of_work import UnitOfWork, run_in_transaction

logger = logging.getLogger(__name__)

_ACTIONS = {
    "accept": RequestStatus.ACCEPTED,
    "accepted": RequestStatus.ACCEPTED,
    "decline": RequestStatus.DECLINED,
    "declined": RequestStatus.DECLINED,
}


def _invite_talent(
    uow: UnitOfWork, booking_id: int, talent_id: int, actor_id: int
) -> models.BookingTalent:
    db = uow.db
    identity.require_role(db, actor_id, [UserRole.ADMIN])
    booking = crud.booking.get_booking_for_update(db, booking_id)
    if booking is None:
        raise NotFound(f"Booking {booking_id} not found.", field="booking_id")
    if booking.status in BOOKING_TERMINAL:
        raise PreconditionFailed(
            f"Cannot invite talent to a {booking.status.value} booking.", field="booking_id"
        )
    talent = identity.get_user(db, talent_id)
    if talent.role != UserRole.TALENT:
        raise PreconditionFailed(f"User {talent_id} is not a talent.", field="talent_id")

    previous = crud.crud_booking_talent.get_rows_for_pair(db, booking.id, talent.id)
    if any(p.request_status == RequestStatus.PENDING for p in previous):
        raise DuplicatePending("This talent already has a pending invitation for the booking.")
    if any(p.request_status == RequestStatus.ACCEPTED for p in previous):
        raise PreconditionFailed(
            "This talent has already accepted the booking.", field="talent_id"
        )

    participation = crud.crud_booking_talent.create_booking_talent(db, booking.id, talent.id)
    logger.info(
        "talent_invited booking_id=%s talent_id=%s participation_id=%s",
        booking.id,
        talent.id,
        participation.id,
    )
    uow.notify(
        NotificationType.INVITATION_SENT,
        [talent.id],
        booking_id=booking.id,
        booking_code=booking.code,
        booking_title=booking.title,
        participation_id=participation.id,
    )
    return participation


def invite_talent(db: Session, booking_id: int, talent_id: int, actor_id: int) -> models.BookingTalent:
    """Invite a talent to a booking. Re-inviting is allowed after a decline."""
    return run_in_transaction(db, _invite_talent, booking_id, talent_id, actor_id)


def _respond_to_invitation(
    uow: UnitOfWork,
    participation_id: int,
    talent_id: int,
    action: Any,
    message: str | None = None,
) -> models.BookingTalent:
    db = uow.db
    status = _ACTIONS.get(str(getattr(action, "value", action)).strip().lower())
    if status is None:
        raise ValidationFailed("Action must be 'accept' or 'decline'.", field="action")

    participation = crud.crud_booking_talent.get_booking_talent(db, participation_id)
    if participation is None:
        raise NotFound(f"Booking request {participation_id} not found.", field="participation_id")
    if participation.talent_id != talent_id:
        raise Forbidden("Only the invited talent can respond to this request.")
    talent = identity.get_user(db, talent_id)
    if participation.request_status != RequestStatus.PENDING:
        raise AlreadyResponded(
            f"This request was already {participation.request_status.value}."
        )
    if not crud.crud_booking_talent.respond_if_pending(db, participation.id, status, message):
        raise AlreadyResponded("This request was answered by another session.")
    db.refresh(participation)

    booking = participation.booking
    logger.info(
        "invitation_response participation_id=%s booking_id=%s talent_id=%s status=%s",
        participation.id,
        booking.id,
        talent.id,
        status.value,
    )
    ntype = (
        NotificationType.INVITATION_ACCEPTED
        if status == RequestStatus.ACCEPTED
        else NotificationType.INVITATION_DECLINED
    )
    uow.notify(
        ntype,
        [booking.client_id, booking.created_by, *identity.admin_ids(db)],
        booking_id=booking.id,
        booking_code=booking.code,
        booking_title=booking.title,
        participation_id=participation.id,
        talent_id=talent.id,
        talent_name=talent.full_name,
        response_message=message,
    )
    return participation


def respond_to_invitation(
    db: Session,
    participation_id: int,
    talent_id: int,
    action: Any,
    message: str | None = None,
) -> models.BookingTalent:
    """Accept or decline a pending invitation exactly once."""
    return run_in_transaction(db, _respond_to_invitation, participation_id, talent_id, action, message)


def list_for_booking(db: Session, booking_id: int, actor_id: int) -> List[models.BookingTalent]:
    actor = identity.get_user(db, actor_id)
    booking = crud.booking.get_booking(db, booking_id)
    if booking is None:
        raise NotFound(f"Booking {booking_id} not found.", field="booking_id")
    if not can_view(db, booking, actor):
        raise Forbidden("You do not have access to this booking.")
    return crud.crud_booking_talent.get_for_booking(db, booking.id)


def list_requests_for_talent(
    db: Session,
    talent_id: int,
    status: RequestStatus | None = RequestStatus.PENDING,
    skip: int = 0,
    limit: int = 100,
) -> List[models.BookingTalent]:
    identity.require_role(db, talent_id, [UserRole.TALENT])
    return crud.crud_booking_talent.get_for_talent(db, talent_id, status=status, skip=skip, limit=limit)
