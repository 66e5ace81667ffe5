from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from sitetrack.models.enums import NotificationType


class NotificationOut(BaseModel):
    id: uuid.UUID
    type: NotificationType
    message: str
    site_id: uuid.UUID | None = None
    phase_id: uuid.UUID | None = None
    task_id: uuid.UUID | None = None
    recipient_id: uuid.UUID | None = None
    actor_id: uuid.UUID | None = None
    is_read: bool
    created_at: datetime


class NotificationListOut(BaseModel):
    notifications: list[NotificationOut]
    unread_count: int
