from .booking import BookingCreate, BookingAdvance, BookingResponse, BookingTalentResponse
from .booking_talent import TalentInvite, InvitationResponse, BookingRequestSummary
from .contract import (
    ContractCreate,
    ContractSend,
    ContractResponse,
    ContractTemplateResponse,
    SignatureSubmit,
    SignatureResponse,
)
from .notification import NotificationResponse, UnreadCountResponse, MarkAllReadResponse
