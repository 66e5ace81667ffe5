"""Notification emission and role-filtered reads.

Lifecycle operations describe what happened as ``WorkflowEvent`` values.
``build_notifications`` turns one event into the rows to store; it does no
I/O. ``emit_events`` stores them after the triggering transaction has
committed, so a notification outage never undoes or blocks a transition.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.errors import NotFound
from sitetrack.models.enums import NotificationType
from sitetrack.models.notification import Notification
from sitetrack.services.access import is_admin


logger = logging.getLogger(__name__)

ADMIN_VISIBLE_TYPES = (
    NotificationType.TASK_UPDATE,
    NotificationType.CHAT_UPDATE,
    NotificationType.STAGE_COMPLETED,
)
EMPLOYEE_VISIBLE_TYPES = (NotificationType.ASSIGNMENT,)


class Audience(str, enum.Enum):
    ADMINS = "admins"
    RECIPIENTS = "recipients"


@dataclass(frozen=True)
class WorkflowEvent:
    type: NotificationType
    message: str
    audience: Audience = Audience.RECIPIENTS
    recipients: tuple[uuid.UUID, ...] = ()
    site_id: uuid.UUID | None = None
    phase_id: uuid.UUID | None = None
    task_id: uuid.UUID | None = None
    actor_id: uuid.UUID | None = None


def admin_event(type: NotificationType, message: str, **refs) -> WorkflowEvent:
    return WorkflowEvent(type=type, message=message, audience=Audience.ADMINS, **refs)


def recipient_event(
    type: NotificationType, message: str, recipients: list[uuid.UUID] | tuple[uuid.UUID, ...], **refs
) -> WorkflowEvent:
    return WorkflowEvent(type=type, message=message, recipients=tuple(recipients), **refs)


def build_notifications(event: WorkflowEvent) -> list[Notification]:
    if event.audience == Audience.ADMINS:
        recipients: list[uuid.UUID | None] = [None]
    else:
        recipients = list(dict.fromkeys(event.recipients))
    return [
        Notification(
            type=event.type,
            message=event.message[:1000],
            site_id=event.site_id,
            phase_id=event.phase_id,
            task_id=event.task_id,
            recipient_id=recipient_id,
            actor_id=event.actor_id,
            is_read=False,
        )
        for recipient_id in recipients
    ]


async def emit_events(db: AsyncSession, events: list[WorkflowEvent]) -> list[Notification]:
    notifications = [n for event in events for n in build_notifications(event)]
    if not notifications:
        return []
    # Own session: a failed insert must not expire or roll back the caller's state.
    try:
        async with AsyncSession(db.bind, expire_on_commit=False) as emit_db:
            emit_db.add_all(notifications)
            await emit_db.commit()
    except Exception:
        logger.exception("Failed to store %d notification(s)", len(notifications))
        return []
    return notifications


def _visible_clause(user):
    if is_admin(user):
        return Notification.type.in_(ADMIN_VISIBLE_TYPES)
    return and_(Notification.recipient_id == user.id, Notification.type.in_(EMPLOYEE_VISIBLE_TYPES))


async def list_notifications(db: AsyncSession, *, user, limit: int = 50) -> tuple[list[Notification], int]:
    visible = _visible_clause(user)
    stmt = (
        select(Notification)
        .where(visible)
        .order_by(Notification.is_read.asc(), Notification.created_at.desc())
        .limit(limit)
    )
    notifications = list((await db.execute(stmt)).scalars().all())
    unread = (
        await db.execute(
            select(func.count()).select_from(Notification).where(visible, Notification.is_read.is_(False))
        )
    ).scalar_one()
    return notifications, int(unread)


async def mark_read(db: AsyncSession, *, user, notification_id: uuid.UUID) -> Notification:
    notification = (
        await db.execute(select(Notification).where(Notification.id == notification_id, _visible_clause(user)))
    ).scalar_one_or_none()
    if notification is None:
        raise NotFound("Notification not found")
    if not notification.is_read:
        notification.is_read = True
        await db.commit()
    return notification


async def mark_all_read(db: AsyncSession, *, user) -> None:
    await db.execute(
        update(Notification)
        .where(_visible_clause(user), Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
