from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.api.deps import get_current_user
from sitetrack.api.presenters import notification_to_out
from sitetrack.config import settings
from sitetrack.db import get_db
from sitetrack.schemas.common import StatusOut
from sitetrack.schemas.notification import NotificationListOut, NotificationOut
from sitetrack.services import notifications as notification_service


router = APIRouter()


@router.get("", response_model=NotificationListOut)
async def list_notifications(db: AsyncSession = Depends(get_db), user=Depends(get_current_user)) -> NotificationListOut:
    notifications, unread = await notification_service.list_notifications(
        db, user=user, limit=settings.NOTIFICATION_LIST_LIMIT
    )
    return NotificationListOut(notifications=[notification_to_out(n) for n in notifications], unread_count=unread)


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> NotificationOut:
    notification = await notification_service.mark_read(db, user=user, notification_id=notification_id)
    return notification_to_out(notification)


@router.post("/read-all", response_model=StatusOut)
async def mark_all_read(db: AsyncSession = Depends(get_db), user=Depends(get_current_user)) -> StatusOut:
    await notification_service.mark_all_read(db, user=user)
    return StatusOut()
