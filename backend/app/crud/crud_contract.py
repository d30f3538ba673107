import logging
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from .. import models
from ..models import ContractStatus
from ..utils.timeutils import utcnow

logger = logging.getLogger(__name__)


def get_contract(db: Session, contract_id: int) -> Optional[models.Contract]:
    return db.query(models.Contract).filter(models.Contract.id == contract_id).first()


def get_contract_for_update(db: Session, contract_id: int) -> Optional[models.Contract]:
    """Lock the contract row; the per-contract critical section starts here."""
    return (
        db.query(models.Contract)
        .filter(models.Contract.id == contract_id)
        .populate_existing()
        .with_for_update()
        .first()
    )


def get_active_for_booking_talent(
    db: Session, booking_talent_id: int
) -> Optional[models.Contract]:
    return (
        db.query(models.Contract)
        .filter(
            models.Contract.booking_talent_id == booking_talent_id,
            models.Contract.status != ContractStatus.CANCELLED,
        )
        .first()
    )


def get_contracts_for_booking(db: Session, booking_id: int) -> List[models.Contract]:
    return (
        db.query(models.Contract)
        .filter(models.Contract.booking_id == booking_id)
        .order_by(models.Contract.id)
        .all()
    )


def get_contracts(
    db: Session,
    status: ContractStatus | None = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.Contract]:
    query = db.query(models.Contract)
    if status is not None:
        query = query.filter(models.Contract.status == status)
    return (
        query.order_by(models.Contract.created_at.desc(), models.Contract.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_contracts_for_signer(
    db: Session,
    signer_id: int,
    status: ContractStatus | None = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.Contract]:
    query = (
        db.query(models.Contract)
        .join(models.Signature, models.Signature.contract_id == models.Contract.id)
        .filter(models.Signature.signer_id == signer_id)
    )
    if status is not None:
        query = query.filter(models.Contract.status == status)
    return (
        query.order_by(models.Contract.created_at.desc(), models.Contract.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_overdue_ids(db: Session, now: datetime) -> List[int]:
    rows = (
        db.query(models.Contract.id)
        .filter(
            models.Contract.status == ContractStatus.SENT,
            models.Contract.due_date.isnot(None),
            models.Contract.due_date < now,
        )
        .order_by(models.Contract.id)
        .all()
    )
    return [r[0] for r in rows]


def create_contract(db: Session, **fields: Any) -> models.Contract:
    db_contract = models.Contract(status=ContractStatus.DRAFT, version=1, **fields)
    db.add(db_contract)
    db.flush()
    return db_contract


def compare_and_set_status(
    db: Session,
    contract: models.Contract,
    expected: ContractStatus,
    new: ContractStatus,
    **values: Any,
) -> bool:
    """Move ``contract`` from ``expected`` to ``new`` only if nobody beat us to it.

    Returns True when this caller performed the transition. The in-memory
    object is refreshed either way.
    """
    result = db.execute(
        update(models.Contract)
        .where(
            models.Contract.id == contract.id,
            models.Contract.status == expected,
        )
        .values(
            status=new,
            version=models.Contract.version + 1,
            updated_at=utcnow(),
            **values,
        )
        .execution_options(synchronize_session=False)
    )
    won = result.rowcount == 1
    db.refresh(contract)
    if won:
        logger.info(
            "contract_status id=%s %s -> %s version=%s",
            contract.id,
            expected.value,
            new.value,
            contract.version,
        )
    else:
        logger.info(
            "contract_status_skipped id=%s expected=%s actual=%s",
            contract.id,
            expected.value,
            getattr(contract.status, "value", contract.status),
        )
    return won
