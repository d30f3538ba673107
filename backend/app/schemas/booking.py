from pydantic import BaseModel, Field
from typing import Optional, List, Annotated
from datetime import datetime
from decimal import Decimal

from ..models.booking_status import BookingStatus
from ..models.booking_talent import RequestStatus


# Properties to receive on item creation (from an admin or the client)
class BookingCreate(BaseModel):
    # Defaults to the caller when a client books for themselves
    client_id: Optional[int] = None
    title: str = Field(min_length=1)
    start_date: datetime
    end_date: datetime
    rate: Optional[Annotated[Decimal, Field(ge=0, decimal_places=2)]] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    deliverables: Optional[str] = None


class BookingAdvance(BaseModel):
    status: BookingStatus


class BookingTalentResponse(BaseModel):
    id: int
    booking_id: int
    talent_id: int
    request_status: RequestStatus
    response_message: Optional[str] = None
    responded_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


# Properties to return to client
class BookingResponse(BaseModel):
    id: int
    code: str
    client_id: int
    title: str
    location: Optional[str] = None
    start_date: datetime
    end_date: datetime
    rate: Optional[Decimal] = None
    deliverables: Optional[str] = None
    notes: Optional[str] = None
    status: BookingStatus
    created_by: int
    created_at: datetime
    updated_at: datetime
    talents: List[BookingTalentResponse] = []

    model_config = {"from_attributes": True}
