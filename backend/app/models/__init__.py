from .user import User, UserRole, UserStatus
from .booking import Booking
from .booking_status import BookingStatus
from .booking_talent import BookingTalent, RequestStatus
from .contract import Contract, ContractStatus
from .signature import Signature, SignatureStatus, SignerKind
from .notification import Notification, NotificationType

__all__ = [
    "User",
    "UserRole",
    "UserStatus",
    "Booking",
    "BookingStatus",
    "BookingTalent",
    "RequestStatus",
    "Contract",
    "ContractStatus",
    "Signature",
    "SignatureStatus",
    "SignerKind",
    "Notification",
    "NotificationType",
]
