import enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import relationship

from .base import BaseModel
from .types import StatusEnum


class ContractStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    SIGNED = "signed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


CONTRACT_TRANSITIONS: dict[ContractStatus, frozenset[ContractStatus]] = {
    ContractStatus.DRAFT: frozenset({ContractStatus.SENT, ContractStatus.CANCELLED}),
    ContractStatus.SENT: frozenset(
        {ContractStatus.SIGNED, ContractStatus.EXPIRED, ContractStatus.CANCELLED}
    ),
    ContractStatus.SIGNED: frozenset(),
    ContractStatus.EXPIRED: frozenset(),
    ContractStatus.CANCELLED: frozenset(),
}


class Contract(BaseModel):
    __tablename__ = "contracts"
    __table_args__ = (
        # At most one live contract per participation; cancelled ones are history
        Index(
            "uq_contracts_active_booking_talent",
            "booking_talent_id",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )

    id                = Column(Integer, primary_key=True, index=True)
    booking_id        = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    booking_talent_id = Column(Integer, ForeignKey("booking_talents.id"), nullable=False, index=True)
    title             = Column(String, nullable=False)
    content           = Column(Text, nullable=False)
    pdf_url           = Column(String, nullable=True)
    status            = Column(
        StatusEnum(ContractStatus, name="contract_status"),
        nullable=False,
        default=ContractStatus.DRAFT,
        index=True,
    )
    due_date          = Column(DateTime, nullable=True)
    sent_at           = Column(DateTime, nullable=True)
    signed_at         = Column(DateTime, nullable=True)
    cancelled_at      = Column(DateTime, nullable=True)
    # Bumped by every conditional status update
    version           = Column(Integer, nullable=False, default=1)
    created_by        = Column(Integer, ForeignKey("users.id"), nullable=False)

    booking        = relationship("Booking", back_populates="contracts")
    booking_talent = relationship("BookingTalent", back_populates="contracts")
    creator        = relationship("User", foreign_keys=[created_by])
    signatures     = relationship("Signature", back_populates="contract", order_by="Signature.id")
