from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Any, List

from .. import models


def create_notification(
    db: Session,
    user_id: int,
    type: models.NotificationType,
    title: str,
    message: str,
    link: str,
    data: dict[str, Any] | None = None,
) -> models.Notification:
    db_obj = models.Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        link=link,
        data=data,
    )
    db.add(db_obj)
    return db_obj


def get_notifications_for_user(
    db: Session,
    user_id: int,
    skip: int = 0,
    limit: int | None = None,
    unread_only: bool = False,
) -> List[models.Notification]:
    """Return notifications newest first with optional pagination."""
    query = db.query(models.Notification).filter(models.Notification.user_id == user_id)
    if unread_only:
        query = query.filter(models.Notification.is_read.is_(False))
    query = query.order_by(models.Notification.timestamp.desc(), models.Notification.id.desc())
    if skip:
        query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_notification(db: Session, notification_id: int) -> models.Notification | None:
    return (
        db.query(models.Notification)
        .filter(models.Notification.id == notification_id)
        .first()
    )


def count_unread(db: Session, user_id: int) -> int:
    return (
        db.query(func.count(models.Notification.id))
        .filter(
            models.Notification.user_id == user_id,
            models.Notification.is_read.is_(False),
        )
        .scalar()
        or 0
    )


def mark_as_read(
    db: Session, db_notification: models.Notification
) -> models.Notification:
    db_notification.is_read = True
    db.commit()
    db.refresh(db_notification)
    return db_notification


def mark_all_as_read(db: Session, user_id: int) -> int:
    updated = (
        db.query(models.Notification)
        .filter(
            models.Notification.user_id == user_id,
            models.Notification.is_read.is_(False),
        )
        .update({"is_read": True}, synchronize_session="fetch")
    )
    db.commit()
    return updated
