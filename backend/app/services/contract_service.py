"""Contract factory and contract state machine.

``draft -> sent -> {signed, expired, cancelled}`` and ``draft -> cancelled``.
Every mutation starts by locking the contract row, and every status change is
a compare-and-swap on the expected status so concurrent callers cannot both
win the same transition.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from .. import crud, models
from ..core.config import settings
from ..models import ContractStatus, NotificationType, RequestStatus, SignerKind, UserRole
from ..models.booking_status import BOOKING_TERMINAL
from ..models.contract import CONTRACT_TRANSITIONS
from ..utils.errors import Forbidden, InvalidTransition, NotFound, PreconditionFailed, ValidationFailed
from ..utils.timeutils import to_naive_utc, utcnow
from . import identity
from .contract_renderer import contract_title, get_template, render_contract
from .unit_of_work import (
    BookingEnteredContractSent,
    ContractSent,
    UnitOfWork,
    run_in_transaction,
    subscribe,
)

logger = logging.getLogger(__name__)


def _locked_contract(db: Session, contract_id: int) -> models.Contract:
    contract = crud.crud_contract.get_contract_for_update(db, contract_id)
    if contract is None:
        raise NotFound(f"Contract {contract_id} not found.", field="contract_id")
    return contract


def _require_transition(contract: models.Contract, target: ContractStatus, message: str) -> None:
    if target not in CONTRACT_TRANSITIONS.get(contract.status, frozenset()):
        raise InvalidTransition(message)


# ─── Create ──────────────────────────────────────────────────────────────────


def _build_contract(
    uow: UnitOfWork,
    booking: models.Booking,
    participation: models.BookingTalent,
    actor_id: int,
    due_date: Optional[datetime] = None,
    template_id: Optional[str] = None,
) -> models.Contract:
    now = utcnow()
    due_date = to_naive_utc(due_date)
    if due_date is None:
        due_date = now + timedelta(days=settings.CONTRACT_DUE_DAYS)
    elif due_date <= now:
        raise ValidationFailed("Due date must be in the future.", field="due_date")
    template = get_template(template_id)
    contract = crud.crud_contract.create_contract(
        uow.db,
        booking_id=booking.id,
        booking_talent_id=participation.id,
        title=contract_title(booking, template),
        content=render_contract(
            booking, participation.talent, booking.client, issued_at=now, template_id=template.id
        ),
        due_date=due_date,
        created_by=actor_id,
    )
    logger.info(
        "contract_created id=%s booking_id=%s participation_id=%s template=%s due=%s",
        contract.id,
        booking.id,
        participation.id,
        template.id,
        due_date.isoformat(),
    )
    return contract


def _create_contract(
    uow: UnitOfWork,
    booking_id: int,
    participation_id: int,
    actor_id: int,
    due_date: Optional[datetime] = None,
    template_id: Optional[str] = None,
) -> models.Contract:
    db = uow.db
    actor = identity.require_role(db, actor_id, [UserRole.ADMIN])
    booking = crud.booking.get_booking(db, booking_id)
    if booking is None:
        raise NotFound(f"Booking {booking_id} not found.", field="booking_id")
    participation = crud.crud_booking_talent.get_booking_talent_for_update(db, participation_id)
    if participation is None:
        raise NotFound(f"Booking request {participation_id} not found.", field="participation_id")
    if participation.booking_id != booking.id:
        raise PreconditionFailed(
            "Booking request does not belong to this booking.", field="participation_id"
        )
    if participation.request_status != RequestStatus.ACCEPTED:
        raise PreconditionFailed(
            "A contract requires an accepted booking request.", field="participation_id"
        )
    if booking.status in BOOKING_TERMINAL:
        raise PreconditionFailed(
            f"Cannot create a contract for a {booking.status.value} booking.", field="booking_id"
        )
    if crud.crud_contract.get_active_for_booking_talent(db, participation.id) is not None:
        raise PreconditionFailed(
            "An active contract already exists for this talent.", field="participation_id"
        )
    return _build_contract(uow, booking, participation, actor.id, due_date, template_id)


def create_contract(
    db: Session,
    booking_id: int,
    participation_id: int,
    actor_id: int,
    due_date: Optional[datetime] = None,
    template_id: Optional[str] = None,
) -> models.Contract:
    """Create a draft contract for an accepted participation.

    ``template_id`` picks the agreement wording from the template catalogue;
    the general agreement is used when it is omitted.
    """
    return run_in_transaction(
        db, _create_contract, booking_id, participation_id, actor_id, due_date, template_id
    )


# ─── Send ────────────────────────────────────────────────────────────────────


def required_signers(
    db: Session, contract: models.Contract, co_signer_ids: Iterable[int] = ()
) -> list[tuple[int, SignerKind]]:
    """Who must sign ``contract``, in signing order, one entry per user."""
    talent = contract.booking_talent.talent
    signers: list[tuple[int, SignerKind]] = [(talent.id, SignerKind.TALENT)]
    if settings.REQUIRE_GUARDIAN_COSIGN and talent.guardian_id:
        signers.append((talent.guardian_id, SignerKind.GUARDIAN))
    if settings.REQUIRE_CLIENT_COSIGN:
        signers.append((contract.booking.client_id, SignerKind.CLIENT))
    for user_id in co_signer_ids:
        signers.append((identity.get_user(db, user_id).id, SignerKind.CO_SIGNER))

    seen: set[int] = set()
    unique: list[tuple[int, SignerKind]] = []
    for user_id, kind in signers:
        if user_id in seen:
            continue
        seen.add(user_id)
        unique.append((user_id, kind))
    return unique


def _send(
    uow: UnitOfWork, contract: models.Contract, co_signer_ids: Iterable[int] = ()
) -> models.Contract:
    db = uow.db
    _require_transition(
        contract,
        ContractStatus.SENT,
        f"Only draft contracts can be sent (is {contract.status.value}).",
    )
    signers = required_signers(db, contract, co_signer_ids)
    now = utcnow()
    if not crud.crud_contract.compare_and_set_status(
        db, contract, ContractStatus.DRAFT, ContractStatus.SENT, sent_at=now
    ):
        raise InvalidTransition(f"Only draft contracts can be sent (is {contract.status.value}).")
    for user_id, kind in signers:
        crud.crud_signature.create_signature(db, contract.id, user_id, kind)
    db.flush()
    db.refresh(contract)

    booking = contract.booking
    uow.raise_event(ContractSent(contract=contract, booking=booking))
    uow.notify(
        NotificationType.CONTRACT_SENT,
        [user_id for user_id, _ in signers],
        contract_id=contract.id,
        booking_id=booking.id,
        booking_code=booking.code,
        booking_title=booking.title,
        due_date=contract.due_date.date().isoformat() if contract.due_date else None,
    )
    return contract


def _send_contract(
    uow: UnitOfWork, contract_id: int, actor_id: int, co_signer_ids: Iterable[int] = ()
) -> models.Contract:
    identity.require_role(uow.db, actor_id, [UserRole.ADMIN])
    contract = _locked_contract(uow.db, contract_id)
    return _send(uow, contract, co_signer_ids)


def send_contract(
    db: Session, contract_id: int, actor_id: int, co_signer_ids: Iterable[int] = ()
) -> models.Contract:
    """Dispatch a draft contract and open one pending signature per signer."""
    return run_in_transaction(db, _send_contract, contract_id, actor_id, tuple(co_signer_ids))


@subscribe(BookingEnteredContractSent)
def dispatch_pending_contracts(uow: UnitOfWork, event: BookingEnteredContractSent) -> None:
    """Send the booking's drafts, then create and send a contract for every
    accepted talent still without one."""
    booking = event.booking
    drafts = [
        c.id
        for c in crud.crud_contract.get_contracts_for_booking(uow.db, booking.id)
        if c.status == ContractStatus.DRAFT
    ]
    for contract_id in drafts:
        contract = _locked_contract(uow.db, contract_id)
        if contract.status == ContractStatus.DRAFT:
            _send(uow, contract)
    for participation in crud.crud_booking_talent.get_accepted_without_active_contract(
        uow.db, booking.id
    ):
        contract = _build_contract(uow, booking, participation, event.actor_id)
        _send(uow, contract)


# ─── Cancel / expire ─────────────────────────────────────────────────────────


def apply_expiry(uow: UnitOfWork, contract: models.Contract, now: Optional[datetime] = None) -> bool:
    """Expire a sent contract past its due date. Caller holds the contract lock."""
    now = to_naive_utc(now) or utcnow()
    if ContractStatus.EXPIRED not in CONTRACT_TRANSITIONS.get(contract.status, frozenset()):
        return False
    if contract.due_date is None or contract.due_date >= now:
        return False
    if not crud.crud_contract.compare_and_set_status(
        uow.db, contract, ContractStatus.SENT, ContractStatus.EXPIRED
    ):
        return False
    expired = crud.crud_signature.expire_pending(uow.db, contract.id)
    logger.info("contract_expired id=%s pending_signatures_expired=%s", contract.id, expired)
    return True


def _check_expiry(uow: UnitOfWork, contract_id: int, now: Optional[datetime] = None) -> models.Contract:
    contract = _locked_contract(uow.db, contract_id)
    apply_expiry(uow, contract, now)
    return contract


def check_expiry(db: Session, contract_id: int, now: Optional[datetime] = None) -> models.Contract:
    """Idempotently expire ``contract_id`` if it is overdue."""
    return run_in_transaction(db, _check_expiry, contract_id, now)


def expire_overdue_contracts(db: Session, now: Optional[datetime] = None) -> List[int]:
    """Expire every overdue sent contract, one transaction each."""
    now = to_naive_utc(now) or utcnow()
    expired: List[int] = []
    for contract_id in crud.crud_contract.get_overdue_ids(db, now):
        contract = check_expiry(db, contract_id, now)
        if contract.status == ContractStatus.EXPIRED:
            expired.append(contract_id)
    if expired:
        logger.info("contract_expiry_sweep expired=%s", expired)
    return expired


def _cancel_contract(uow: UnitOfWork, contract_id: int, actor_id: int) -> models.Contract:
    db = uow.db
    identity.require_role(db, actor_id, [UserRole.ADMIN])
    contract = _locked_contract(db, contract_id)
    apply_expiry(uow, contract)
    current = contract.status
    _require_transition(
        contract, ContractStatus.CANCELLED, f"Cannot cancel a {current.value} contract."
    )
    if not crud.crud_contract.compare_and_set_status(
        db, contract, current, ContractStatus.CANCELLED, cancelled_at=utcnow()
    ):
        raise InvalidTransition(f"Cannot cancel a {contract.status.value} contract.")
    return contract


def cancel_contract(db: Session, contract_id: int, actor_id: int) -> models.Contract:
    """Cancel a draft or sent contract. Signature rows are kept as history."""
    if crud.crud_contract.get_contract(db, contract_id) is not None:
        # An overdue contract stays expired even when the cancel is rejected
        check_expiry(db, contract_id)
    return run_in_transaction(db, _cancel_contract, contract_id, actor_id)


# ─── Reads ───────────────────────────────────────────────────────────────────


def _can_view(contract: models.Contract, user: models.User) -> bool:
    if user.role == UserRole.ADMIN:
        return True
    if user.id in (contract.booking.client_id, contract.created_by):
        return True
    return any(s.signer_id == user.id for s in contract.signatures)


def get_contract(db: Session, contract_id: int, actor_id: int) -> models.Contract:
    """Fetch a contract with its signatures, applying lazy expiry first."""
    actor = identity.get_user(db, actor_id)
    contract = check_expiry(db, contract_id)
    if not _can_view(contract, actor):
        raise Forbidden("You do not have access to this contract.")
    return contract


def _refresh_overdue(db: Session, contracts: List[models.Contract]) -> List[models.Contract]:
    now = utcnow()
    for contract in contracts:
        if contract.status == ContractStatus.SENT and contract.due_date and contract.due_date < now:
            check_expiry(db, contract.id, now)
    return contracts


def list_contracts_for_booking(db: Session, booking_id: int, actor_id: int) -> List[models.Contract]:
    actor = identity.get_user(db, actor_id)
    booking = crud.booking.get_booking(db, booking_id)
    if booking is None:
        raise NotFound(f"Booking {booking_id} not found.", field="booking_id")
    contracts = crud.crud_contract.get_contracts_for_booking(db, booking.id)
    if actor.role != UserRole.ADMIN and actor.id != booking.client_id:
        contracts = [c for c in contracts if any(s.signer_id == actor.id for s in c.signatures)]
    return _refresh_overdue(db, contracts)


def list_contracts_for_user(
    db: Session,
    actor_id: int,
    status: ContractStatus | None = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.Contract]:
    """Admins see every contract; everyone else sees the ones they must sign."""
    actor = identity.get_user(db, actor_id)
    if actor.role == UserRole.ADMIN:
        contracts = crud.crud_contract.get_contracts(db, status=status, skip=skip, limit=limit)
    else:
        contracts = crud.crud_contract.get_contracts_for_signer(
            db, actor.id, status=status, skip=skip, limit=limit
        )
    return _refresh_overdue(db, contracts)
