from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional

from .booking import BookingTalentResponse


class TalentInvite(BaseModel):
    talent_id: int


class InvitationResponse(BaseModel):
    action: Literal["accept", "decline"]
    message: Optional[str] = Field(default=None, max_length=2000)


class BookingRequestSummary(BookingTalentResponse):
    """A talent's view of an invitation, with enough booking context to decide."""

    booking_code: Optional[str] = None
    booking_title: Optional[str] = None
    booking_start_date: Optional[datetime] = None
