from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel
from .types import StatusEnum
from ..utils.timeutils import utcnow


class NotificationType(str, enum.Enum):
    """Lifecycle events the notifier fans out to users."""

    INVITATION_SENT = "invitation_sent"
    INVITATION_ACCEPTED = "invitation_accepted"
    INVITATION_DECLINED = "invitation_declined"
    CONTRACT_SENT = "contract_sent"
    CONTRACT_FULLY_SIGNED = "contract_fully_signed"
    BOOKING_STATUS_CHANGED = "booking_status_changed"


class Notification(BaseModel):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(StatusEnum(NotificationType, name="notification_type"), nullable=False)
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    data = Column(JSON, nullable=True)
    link = Column(String, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    timestamp = Column(DateTime, default=utcnow)

    user = relationship("User", backref="notifications")
