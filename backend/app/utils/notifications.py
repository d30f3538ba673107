"""Notifier sink for lifecycle events.

``emit`` persists one in-app notification per recipient and, when enabled,
queues an email through the background worker. Delivery is fire-and-forget:
every failure is logged and swallowed so a committed state transition is never
reported as failed because a notification could not be delivered.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from ..models import NotificationType
from ..notifications.events import LifecycleEvent
from ..notifications.intents.booking_lifecycle import describe
from . import background_worker
from .email import send_email

logger = logging.getLogger(__name__)


def _absolute_link(link: str) -> str:
    base = (settings.FRONTEND_URL or "").rstrip("/")
    return f"{base}{link}" if base else link


def _json_safe(payload: dict[str, Any]) -> dict[str, Any]:
    safe: dict[str, Any] = {}
    for key, value in payload.items():
        if hasattr(value, "isoformat"):
            safe[key] = value.isoformat()
        elif hasattr(value, "value"):
            safe[key] = value.value
        elif value is None or isinstance(value, (str, int, float, bool)):
            safe[key] = value
        else:
            safe[key] = str(value)
    return safe


def _queue_email(user: models.User | None, title: str, message: str, link: str) -> None:
    if not settings.EMAIL_NOTIFICATIONS_ENABLED or user is None or not user.email:
        return
    body = f"{message}\n\n{_absolute_link(link)}"
    background_worker.enqueue(send_email, user.email, title, body)


def emit(
    db: Session,
    ntype: NotificationType,
    recipient_ids: Iterable[int],
    payload: dict[str, Any] | None = None,
) -> list[models.Notification]:
    """Persist a notification for each recipient; never raises."""
    payload = _json_safe(payload or {})
    recipients = list(dict.fromkeys(int(r) for r in recipient_ids if r is not None))
    if not recipients:
        return []
    title, message, link = describe(ntype, payload)
    from ..crud import crud_notification

    try:
        created = [
            crud_notification.create_notification(
                db,
                user_id=user_id,
                type=ntype,
                title=title,
                message=message,
                link=link,
                data=payload,
            )
            for user_id in recipients
        ]
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error(
            "notification_persist_failed type=%s recipients=%s err=%s",
            ntype.value,
            recipients,
            exc,
        )
        return []

    logger.info("notify type=%s recipients=%s", ntype.value, recipients)
    for notif in created:
        try:
            _queue_email(db.get(models.User, notif.user_id), title, message, link)
        except Exception as exc:
            logger.warning("notification_email_enqueue_failed user_id=%s err=%s", notif.user_id, exc)
    return created


def publish(db: Session, events: Iterable[LifecycleEvent]) -> None:
    """Hand events produced by a committed transaction to the notifier."""
    for ev in events:
        emit(db, ev.type, ev.recipient_ids, ev.payload)
