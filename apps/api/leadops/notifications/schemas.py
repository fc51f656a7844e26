from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class NotificationType(StrEnum):
    ENQUIRY_ASSIGNED = "ENQUIRY_ASSIGNED"
    JOB_ORDER_ASSIGNED = "JOB_ORDER_ASSIGNED"


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    title: str
    message: str
    type: NotificationType
    link: str | None
    is_read: bool
    created_at: datetime


class NotificationInbox(BaseModel):
    notifications: list[NotificationRead] = Field(default_factory=list)
    unread_count: int = 0
