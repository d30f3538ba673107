from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
import logging

from .. import models, schemas
from ..services import booking_lifecycle
from ..models import UserRole
from ..utils.errors import ValidationFailed
from .dependencies import get_db, get_current_user

router = APIRouter(tags=["bookings"])

logger = logging.getLogger(__name__)


@router.post("/bookings", response_model=schemas.BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking_in: schemas.BookingCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Create a booking at ``inquiry``. Clients book for themselves; admins pick the client."""
    client_id = booking_in.client_id
    if client_id is None and current_user.role == UserRole.CLIENT:
        client_id = current_user.id
    if client_id is None:
        raise ValidationFailed("client_id is required.", field="client_id")
    fields = booking_in.model_dump(exclude={"client_id"})
    return booking_lifecycle.create_booking(
        db,
        actor_id=current_user.id,
        client_id=client_id,
        **fields,
    )


@router.get("/bookings", response_model=List[schemas.BookingResponse])
def list_bookings(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Bookings visible to the caller: all for admins, own for clients, invited for talent."""
    return booking_lifecycle.list_bookings(db, current_user.id, skip=skip, limit=limit)


@router.get("/bookings/{booking_id}", response_model=schemas.BookingResponse)
def read_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return booking_lifecycle.get_booking(db, booking_id, current_user.id)


@router.post("/bookings/{booking_id}/advance", response_model=schemas.BookingResponse)
def advance_booking(
    booking_id: int,
    body: schemas.BookingAdvance,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Move a booking to its next status."""
    return booking_lifecycle.advance_booking(db, booking_id, body.status, current_user.id)


@router.post("/bookings/{booking_id}/cancel", response_model=schemas.BookingResponse)
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return booking_lifecycle.cancel_booking(db, booking_id, current_user.id)
