"""Signature ledger and the contract completion rule.

A contract is ``signed`` exactly when every one of its signature rows is
``signed``. The last signer to land flips the contract with a
compare-and-swap while holding the contract lock, so concurrent final
signatures promote the contract (and cascade the booking) exactly once.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from .. import crud, models
from ..models import ContractStatus, NotificationType, SignatureStatus
from ..utils.errors import ContractNotSignable, NotFound, NotSigner
from ..utils.timeutils import to_naive_utc, utcnow
from . import identity
from .contract_service import apply_expiry, check_expiry
from .unit_of_work import ContractFullySigned, UnitOfWork, run_in_transaction

logger = logging.getLogger(__name__)


def _complete_if_all_signed(uow: UnitOfWork, contract: models.Contract, now: datetime) -> bool:
    db = uow.db
    if crud.crud_signature.count_unsigned(db, contract.id) > 0:
        return False
    if not crud.crud_contract.compare_and_set_status(
        db, contract, ContractStatus.SENT, ContractStatus.SIGNED, signed_at=now
    ):
        return False

    booking = contract.booking
    uow.raise_event(ContractFullySigned(contract=contract, booking=booking))
    signer_ids = [s.signer_id for s in crud.crud_signature.get_for_contract(db, contract.id)]
    uow.notify(
        NotificationType.CONTRACT_FULLY_SIGNED,
        [*signer_ids, booking.client_id, contract.created_by],
        contract_id=contract.id,
        booking_id=booking.id,
        booking_code=booking.code,
        booking_title=booking.title,
    )
    return True


def _sign(
    uow: UnitOfWork,
    signature_id: int,
    signer_id: int,
    signature_image_url: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Signature:
    db = uow.db
    now = to_naive_utc(now) or utcnow()
    signature = crud.crud_signature.get_signature(db, signature_id)
    if signature is None:
        raise NotFound(f"Signature {signature_id} not found.", field="signature_id")
    if signature.signer_id != signer_id:
        raise NotSigner("You are not the signer for this signature.")
    identity.get_user(db, signer_id)

    contract = crud.crud_contract.get_contract_for_update(db, signature.contract_id)
    db.refresh(signature)
    apply_expiry(uow, contract, now)

    if signature.status == SignatureStatus.SIGNED:
        logger.info("signature_already_signed id=%s contract_id=%s", signature.id, contract.id)
        return signature
    if contract.status != ContractStatus.SENT:
        raise ContractNotSignable(f"Contract is {contract.status.value} and cannot be signed.")

    if not crud.crud_signature.mark_signed(
        db, signature.id, signature_image_url, ip_address, user_agent, now=now
    ):
        db.refresh(signature)
        if signature.status == SignatureStatus.SIGNED:
            return signature
        raise ContractNotSignable(f"Signature is {signature.status.value} and cannot be signed.")
    db.refresh(signature)
    logger.info(
        "signature_signed id=%s contract_id=%s signer_id=%s kind=%s",
        signature.id,
        contract.id,
        signer_id,
        signature.signer_kind.value,
    )

    _complete_if_all_signed(uow, contract, now)
    return signature


def sign_signature(
    db: Session,
    signature_id: int,
    signer_id: int,
    signature_image_url: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Signature:
    """Record ``signer_id``'s signature. Signing twice is a no-op success."""
    signature = crud.crud_signature.get_signature(db, signature_id)
    if signature is not None:
        # Persist a due expiry before the signing attempt is rejected for it
        check_expiry(db, signature.contract_id, now)
    return run_in_transaction(
        db, _sign, signature_id, signer_id, signature_image_url, ip_address, user_agent, now
    )


def _sign_for_user(
    uow: UnitOfWork,
    contract_id: int,
    signer_id: int,
    signature_image_url: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Signature:
    db = uow.db
    if crud.crud_contract.get_contract(db, contract_id) is None:
        raise NotFound(f"Contract {contract_id} not found.", field="contract_id")
    signature = crud.crud_signature.get_for_contract_and_signer(db, contract_id, signer_id)
    if signature is None:
        raise NotSigner("You are not a signer on this contract.")
    return _sign(uow, signature.id, signer_id, signature_image_url, ip_address, user_agent, now)


def sign_contract_for_user(
    db: Session,
    contract_id: int,
    signer_id: int,
    signature_image_url: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Signature:
    """Sign the caller's own signature row on ``contract_id``."""
    if crud.crud_contract.get_contract(db, contract_id) is not None:
        check_expiry(db, contract_id, now)
    return run_in_transaction(
        db, _sign_for_user, contract_id, signer_id, signature_image_url, ip_address, user_agent, now
    )
