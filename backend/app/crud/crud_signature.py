from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from .. import models
from ..models import SignatureStatus, SignerKind
from ..utils.timeutils import utcnow


def get_signature(db: Session, signature_id: int) -> Optional[models.Signature]:
    return db.query(models.Signature).filter(models.Signature.id == signature_id).first()


def get_for_contract_and_signer(
    db: Session, contract_id: int, signer_id: int
) -> Optional[models.Signature]:
    return (
        db.query(models.Signature)
        .filter(
            models.Signature.contract_id == contract_id,
            models.Signature.signer_id == signer_id,
        )
        .first()
    )


def get_for_contract(db: Session, contract_id: int) -> List[models.Signature]:
    return (
        db.query(models.Signature)
        .filter(models.Signature.contract_id == contract_id)
        .order_by(models.Signature.id)
        .all()
    )


def create_signature(
    db: Session, contract_id: int, signer_id: int, signer_kind: SignerKind
) -> models.Signature:
    db_obj = models.Signature(
        contract_id=contract_id,
        signer_id=signer_id,
        signer_kind=signer_kind,
        status=SignatureStatus.PENDING,
    )
    db.add(db_obj)
    return db_obj


def count_unsigned(db: Session, contract_id: int) -> int:
    return (
        db.query(func.count(models.Signature.id))
        .filter(
            models.Signature.contract_id == contract_id,
            models.Signature.status != SignatureStatus.SIGNED,
        )
        .scalar()
        or 0
    )


def mark_signed(
    db: Session,
    signature_id: int,
    signature_image_url: str | None,
    ip_address: str | None,
    user_agent: str | None,
    now: datetime | None = None,
) -> bool:
    """Flip a pending signature to signed; False if it was not pending."""
    result = db.execute(
        update(models.Signature)
        .where(
            models.Signature.id == signature_id,
            models.Signature.status == SignatureStatus.PENDING,
        )
        .values(
            status=SignatureStatus.SIGNED,
            signed_at=now or utcnow(),
            signature_image_url=signature_image_url,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def expire_pending(db: Session, contract_id: int) -> int:
    result = db.execute(
        update(models.Signature)
        .where(
            models.Signature.contract_id == contract_id,
            models.Signature.status == SignatureStatus.PENDING,
        )
        .values(status=SignatureStatus.EXPIRED)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
