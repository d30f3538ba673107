import enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import relationship

from .base import BaseModel
from .types import StatusEnum


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class BookingTalent(BaseModel):
    """A talent's invitation to a booking and their one-time response."""

    __tablename__ = "booking_talents"
    __table_args__ = (
        # Only one unresolved invitation per (booking, talent)
        Index(
            "uq_booking_talents_pending_pair",
            "booking_id",
            "talent_id",
            unique=True,
            sqlite_where=text("request_status = 'pending'"),
            postgresql_where=text("request_status = 'pending'"),
        ),
    )

    id               = Column(Integer, primary_key=True, index=True)
    booking_id       = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    talent_id        = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    request_status   = Column(
        StatusEnum(RequestStatus, name="booking_request_status"),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True,
    )
    response_message = Column(Text, nullable=True)
    responded_at     = Column(DateTime, nullable=True)

    booking   = relationship("Booking", back_populates="talents")
    talent    = relationship("User", foreign_keys=[talent_id])
    contracts = relationship("Contract", back_populates="booking_talent", order_by="Contract.id")
