import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timeutils import utcnow
from .types import StatusEnum


class SignatureStatus(str, enum.Enum):
    PENDING = "pending"
    SIGNED = "signed"
    EXPIRED = "expired"


class SignerKind(str, enum.Enum):
    TALENT = "talent"
    GUARDIAN = "guardian"
    CLIENT = "client"
    CO_SIGNER = "co_signer"


class Signature(Base):
    __tablename__ = "signatures"
    __table_args__ = (
        UniqueConstraint("contract_id", "signer_id", name="uq_signatures_contract_signer"),
    )

    id                  = Column(Integer, primary_key=True, index=True)
    contract_id         = Column(Integer, ForeignKey("contracts.id"), nullable=False, index=True)
    signer_id           = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    signer_kind         = Column(StatusEnum(SignerKind, name="signer_kind"), nullable=False, default=SignerKind.TALENT)
    # Data URL or storage key of the captured signature image
    signature_image_url = Column(Text, nullable=True)
    ip_address          = Column(String, nullable=True)
    user_agent          = Column(Text, nullable=True)
    status              = Column(
        StatusEnum(SignatureStatus, name="signature_status"),
        nullable=False,
        default=SignatureStatus.PENDING,
        index=True,
    )
    signed_at           = Column(DateTime, nullable=True)
    created_at          = Column(DateTime, default=utcnow)

    contract = relationship("Contract", back_populates="signatures")
    signer   = relationship("User", foreign_keys=[signer_id])
