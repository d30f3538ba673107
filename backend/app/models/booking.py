# backend/app/models/booking.py

from sqlalchemy import CheckConstraint, Column, Integer, DateTime, Numeric, ForeignKey, String, Text
from sqlalchemy.orm import relationship, validates

from .base import BaseModel
from .booking_status import BookingStatus
from .types import StatusEnum


class Booking(BaseModel):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_bookings_date_range"),
        CheckConstraint("rate IS NULL OR rate >= 0", name="ck_bookings_rate_non_negative"),
    )

    id           = Column(Integer, primary_key=True, index=True)
    code         = Column(String(32), unique=True, nullable=False, index=True)
    client_id    = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title        = Column(String, nullable=False)
    location     = Column(String, nullable=True)
    start_date   = Column(DateTime, nullable=False, index=True)
    end_date     = Column(DateTime, nullable=False)
    rate         = Column(Numeric(10, 2), nullable=True)
    deliverables = Column(Text, nullable=True)
    notes        = Column(Text, nullable=True)
    status       = Column(
        StatusEnum(BookingStatus, name="booking_status"),
        default=BookingStatus.INQUIRY,
        nullable=False,
        index=True,
    )
    created_by   = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Relationships
    client    = relationship("User", foreign_keys=[client_id])
    creator   = relationship("User", foreign_keys=[created_by])
    talents   = relationship("BookingTalent", back_populates="booking", order_by="BookingTalent.id")
    contracts = relationship("Contract", back_populates="booking", order_by="Contract.id")

    @validates("code")
    def _code_is_write_once(self, key, value):
        if self.code is not None and value != self.code:
            raise ValueError("booking code is immutable once assigned")
        return value
