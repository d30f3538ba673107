from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from .. import models
from ..models import ContractStatus, RequestStatus
from ..utils.timeutils import utcnow


def get_booking_talent(db: Session, booking_talent_id: int) -> Optional[models.BookingTalent]:
    return (
        db.query(models.BookingTalent)
        .filter(models.BookingTalent.id == booking_talent_id)
        .first()
    )


def get_booking_talent_for_update(
    db: Session, booking_talent_id: int
) -> Optional[models.BookingTalent]:
    return (
        db.query(models.BookingTalent)
        .filter(models.BookingTalent.id == booking_talent_id)
        .populate_existing()
        .with_for_update()
        .first()
    )


def get_rows_for_pair(
    db: Session, booking_id: int, talent_id: int
) -> List[models.BookingTalent]:
    """All invitations ever issued to ``talent_id`` for ``booking_id``, oldest first."""
    return (
        db.query(models.BookingTalent)
        .filter(
            models.BookingTalent.booking_id == booking_id,
            models.BookingTalent.talent_id == talent_id,
        )
        .order_by(models.BookingTalent.id)
        .all()
    )


def get_for_booking(db: Session, booking_id: int) -> List[models.BookingTalent]:
    return (
        db.query(models.BookingTalent)
        .filter(models.BookingTalent.booking_id == booking_id)
        .order_by(models.BookingTalent.id)
        .all()
    )


def get_for_talent(
    db: Session,
    talent_id: int,
    status: RequestStatus | None = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.BookingTalent]:
    query = db.query(models.BookingTalent).filter(models.BookingTalent.talent_id == talent_id)
    if status is not None:
        query = query.filter(models.BookingTalent.request_status == status)
    return (
        query.order_by(models.BookingTalent.created_at.desc(), models.BookingTalent.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_accepted_without_active_contract(
    db: Session, booking_id: int
) -> List[models.BookingTalent]:
    """Accepted participations of a booking that have no non-cancelled contract."""
    active = (
        db.query(models.Contract.id)
        .filter(
            models.Contract.booking_talent_id == models.BookingTalent.id,
            models.Contract.status != ContractStatus.CANCELLED,
        )
        .exists()
    )
    return (
        db.query(models.BookingTalent)
        .filter(
            models.BookingTalent.booking_id == booking_id,
            models.BookingTalent.request_status == RequestStatus.ACCEPTED,
            ~active,
        )
        .order_by(models.BookingTalent.id)
        .all()
    )


def create_booking_talent(db: Session, booking_id: int, talent_id: int) -> models.BookingTalent:
    db_obj = models.BookingTalent(
        booking_id=booking_id,
        talent_id=talent_id,
        request_status=RequestStatus.PENDING,
    )
    db.add(db_obj)
    db.flush()
    return db_obj


def respond_if_pending(
    db: Session,
    booking_talent_id: int,
    status: RequestStatus,
    response_message: str | None,
    now: datetime | None = None,
) -> bool:
    """Record a response only if the invitation is still pending.

    Returns False when another caller answered first.
    """
    result = db.execute(
        update(models.BookingTalent)
        .where(
            models.BookingTalent.id == booking_talent_id,
            models.BookingTalent.request_status == RequestStatus.PENDING,
        )
        .values(
            request_status=status,
            response_message=response_message,
            responded_at=now or utcnow(),
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
