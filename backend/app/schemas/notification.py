from pydantic import BaseModel
from datetime import datetime
from typing import Any
from ..models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    type: NotificationType
    title: str
    message: str
    link: str
    data: dict[str, Any] | None = None
    is_read: bool
    timestamp: datetime

    model_config = {"from_attributes": True}


class UnreadCountResponse(BaseModel):
    count: int


class MarkAllReadResponse(BaseModel):
    updated: int
