from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Optional
from datetime import datetime

from .. import models
from ..core.config import settings
from ..models.booking_status import BookingStatus
from ..utils.timeutils import utcnow


class CRUDBooking:
    def get_booking(self, db: Session, booking_id: int) -> Optional[models.Booking]:
        return db.query(models.Booking).filter(models.Booking.id == booking_id).first()

    def get_booking_for_update(self, db: Session, booking_id: int) -> Optional[models.Booking]:
        """Load the booking row under a write lock, discarding any stale identity-map copy."""
        return (
            db.query(models.Booking)
            .filter(models.Booking.id == booking_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def get_bookings_by_client(
        self, db: Session, client_id: int, skip: int = 0, limit: int = 100
    ) -> List[models.Booking]:
        return (
            db.query(models.Booking)
            .filter(models.Booking.client_id == client_id)
            .order_by(models.Booking.start_date.desc(), models.Booking.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_bookings_by_talent(
        self, db: Session, talent_id: int, skip: int = 0, limit: int = 100
    ) -> List[models.Booking]:
        return (
            db.query(models.Booking)
            .join(models.BookingTalent, models.BookingTalent.booking_id == models.Booking.id)
            .filter(models.BookingTalent.talent_id == talent_id)
            .distinct()
            .order_by(models.Booking.start_date.desc(), models.Booking.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_bookings(
        self,
        db: Session,
        status: BookingStatus | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[models.Booking]:
        query = db.query(models.Booking)
        if status is not None:
            query = query.filter(models.Booking.status == status)
        return (
            query.order_by(models.Booking.start_date.desc(), models.Booking.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def next_code(self, db: Session, now: datetime | None = None) -> str:
        """Allocate the next human-readable code, e.g. ``BK-2026-0042``.

        Codes are sequential per year. Two concurrent creators can compute the
        same code; the unique index rejects the loser, which is retried.
        """
        year = (now or utcnow()).year
        prefix = f"{settings.BOOKING_CODE_PREFIX}-{year}-"
        count = (
            db.query(func.count(models.Booking.id))
            .filter(models.Booking.code.like(f"{prefix}%"))
            .scalar()
            or 0
        )
        return f"{prefix}{count + 1:04d}"

    def create_booking(self, db: Session, **fields) -> models.Booking:
        """Insert a booking; the caller owns the transaction."""
        db_booking = models.Booking(status=BookingStatus.INQUIRY, **fields)
        db.add(db_booking)
        db.flush()
        return db_booking


booking = CRUDBooking()
