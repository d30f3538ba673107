"""Transaction boundary for lifecycle operations.

Every engine operation runs as ``run_in_transaction(db, fn, ...)``:

- ``fn`` receives a :class:`UnitOfWork` and does its reads, checks and writes
  against one session/transaction.
- Cross-aggregate cascades (contract sent -> booking moves forward, contract
  fully signed -> booking signed) are explicit domain events raised with
  :meth:`UnitOfWork.raise_event` and consumed synchronously by handlers
  registered with :func:`subscribe`, inside the same transaction.
- Notifier events collected with :meth:`UnitOfWork.notify` are published only
  after a successful commit, so an aborted or retried attempt never leaks a
  notification.
- Transient storage conflicts are retried a bounded number of times and then
  surface as :class:`Conflict`. Engine errors are never retried.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict, List, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..core.config import settings
from ..models import Booking, Contract, NotificationType
from ..notifications.events import LifecycleEvent
from ..utils import notifications
from ..utils.errors import Conflict, LifecycleError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# IntegrityError covers unique-key races (booking code allocation, a
# concurrent duplicate invitation/contract). The retried attempt re-reads the
# committed winner and raises the semantic error instead.
RETRYABLE_ERRORS = (OperationalError, StaleDataError, IntegrityError)


# ─── Domain events (in-transaction cascades) ─────────────────────────────────


@dataclass(frozen=True)
class ContractSent:
    contract: Contract
    booking: Booking


@dataclass(frozen=True)
class ContractFullySigned:
    contract: Contract
    booking: Booking


@dataclass(frozen=True)
class BookingEnteredContractSent:
    booking: Booking
    actor_id: int


_handlers: DefaultDict[type, List[Callable[["UnitOfWork", Any], None]]] = defaultdict(list)


def subscribe(event_cls: type) -> Callable:
    """Register a handler for a domain event type."""

    def decorator(func: Callable[["UnitOfWork", Any], None]) -> Callable:
        _handlers[event_cls].append(func)
        return func

    return decorator


class UnitOfWork:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.events: list[LifecycleEvent] = []

    def notify(self, ntype: NotificationType, recipient_ids, **payload: Any) -> None:
        """Buffer a notifier event until the transaction commits."""
        self.events.append(LifecycleEvent.build(ntype, recipient_ids, **payload))

    def raise_event(self, event: Any) -> None:
        handlers = _handlers.get(type(event), [])
        if not handlers:
            logger.warning("No handler registered for %s", type(event).__name__)
        for handler in handlers:
            handler(self, event)


def run_in_transaction(
    db: Session,
    fn: Callable[..., T],
    *args: Any,
    attempts: int | None = None,
    **kwargs: Any,
) -> T:
    """Run ``fn(uow, *args, **kwargs)`` in one transaction with bounded conflict retry."""
    attempts = attempts or settings.CONFLICT_RETRY_ATTEMPTS
    backoff = settings.CONFLICT_RETRY_BACKOFF_MS / 1000.0
    for attempt in range(1, attempts + 1):
        uow = UnitOfWork(db)
        try:
            result = fn(uow, *args, **kwargs)
            db.commit()
        except LifecycleError as exc:
            db.rollback()
            logger.info("lifecycle_rejected op=%s code=%s msg=%s", fn.__name__, exc.code, exc.message)
            raise
        except RETRYABLE_ERRORS as exc:
            db.rollback()
            logger.warning(
                "lifecycle_conflict op=%s attempt=%s/%s err=%s",
                fn.__name__,
                attempt,
                attempts,
                exc.__class__.__name__,
            )
            if attempt == attempts:
                raise Conflict(
                    "The record was modified concurrently; please retry."
                ) from exc
            time.sleep(backoff * attempt)
            continue
        except Exception:
            db.rollback()
            raise
        notifications.publish(db, uow.events)
        return result
    raise Conflict("The record was modified concurrently; please retry.")
