from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from .. import models, schemas
from ..models import RequestStatus
from ..services import participation_service
from .dependencies import get_db, get_current_user

router = APIRouter(tags=["booking-requests"])


@router.post(
    "/bookings/{booking_id}/talents",
    response_model=schemas.BookingTalentResponse,
    status_code=status.HTTP_201_CREATED,
)
def invite_talent(
    booking_id: int,
    body: schemas.TalentInvite,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Invite a talent to a booking (admin only)."""
    return participation_service.invite_talent(db, booking_id, body.talent_id, current_user.id)


@router.get("/bookings/{booking_id}/talents", response_model=List[schemas.BookingTalentResponse])
def list_booking_talents(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return participation_service.list_for_booking(db, booking_id, current_user.id)


def _summary(participation: models.BookingTalent) -> schemas.BookingRequestSummary:
    booking = participation.booking
    summary = schemas.BookingRequestSummary.model_validate(participation)
    summary.booking_code = booking.code
    summary.booking_title = booking.title
    summary.booking_start_date = booking.start_date
    return summary


@router.get("/booking-requests", response_model=List[schemas.BookingRequestSummary])
def list_my_booking_requests(
    status_filter: Optional[RequestStatus] = RequestStatus.PENDING,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Invitations addressed to the calling talent; pending ones by default."""
    rows = participation_service.list_requests_for_talent(
        db, current_user.id, status=status_filter, skip=skip, limit=limit
    )
    return [_summary(p) for p in rows]


@router.post(
    "/booking-requests/{participation_id}/respond",
    response_model=schemas.BookingTalentResponse,
)
def respond_to_booking_request(
    participation_id: int,
    body: schemas.InvitationResponse,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Accept or decline an invitation. Only the invited talent may answer, once."""
    return participation_service.respond_to_invitation(
        db, participation_id, current_user.id, body.action, body.message
    )
