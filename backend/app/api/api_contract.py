from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional

from .. import models, schemas
from ..models import ContractStatus
from ..services import contract_renderer, contract_service, signature_service
from .dependencies import client_ip, get_current_user, get_db

router = APIRouter(tags=["contracts"])


@router.post(
    "/bookings/{booking_id}/contracts",
    response_model=schemas.ContractResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_contract(
    booking_id: int,
    body: schemas.ContractCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Draft a contract for an accepted talent on the booking (admin only)."""
    return contract_service.create_contract(
        db,
        booking_id,
        body.participation_id,
        current_user.id,
        due_date=body.due_date,
        template_id=body.template_id,
    )


@router.get("/contract-templates", response_model=List[schemas.ContractTemplateResponse])
def list_contract_templates(
    category: Optional[str] = None,
    current_user: models.User = Depends(get_current_user),
):
    """Agreement templates a contract can be drafted from."""
    if category:
        return contract_renderer.get_templates_by_category(category)
    return contract_renderer.get_all_templates()


@router.get("/bookings/{booking_id}/contracts", response_model=List[schemas.ContractResponse])
def list_booking_contracts(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return contract_service.list_contracts_for_booking(db, booking_id, current_user.id)


@router.get("/contracts", response_model=List[schemas.ContractResponse])
def list_my_contracts(
    status_filter: Optional[ContractStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Contracts the caller has to sign (every contract for admins)."""
    return contract_service.list_contracts_for_user(
        db, current_user.id, status=status_filter, skip=skip, limit=limit
    )


@router.get("/contracts/{contract_id}", response_model=schemas.ContractResponse)
def read_contract(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return contract_service.get_contract(db, contract_id, current_user.id)


@router.post("/contracts/{contract_id}/send", response_model=schemas.ContractResponse)
def send_contract(
    contract_id: int,
    body: Optional[schemas.ContractSend] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    co_signers = body.co_signer_ids if body else []
    return contract_service.send_contract(db, contract_id, current_user.id, co_signers)


@router.post("/contracts/{contract_id}/cancel", response_model=schemas.ContractResponse)
def cancel_contract(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return contract_service.cancel_contract(db, contract_id, current_user.id)


@router.post("/contracts/{contract_id}/expire-check", response_model=schemas.ContractResponse)
def expire_check(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Expire the contract now if its due date has passed."""
    return contract_service.get_contract(db, contract_id, current_user.id)


@router.post("/contracts/{contract_id}/sign", response_model=schemas.SignatureResponse)
def sign_contract(
    contract_id: int,
    body: schemas.SignatureSubmit,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Sign the caller's own signature slot on the contract."""
    return signature_service.sign_contract_for_user(
        db,
        contract_id,
        current_user.id,
        signature_image_url=body.signature_image_url,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


@router.post("/signatures/{signature_id}/sign", response_model=schemas.SignatureResponse)
def sign_signature(
    signature_id: int,
    body: schemas.SignatureSubmit,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return signature_service.sign_signature(
        db,
        signature_id,
        current_user.id,
        signature_image_url=body.signature_image_url,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
