from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.errors import ValidationError
from sitetrack.models.enums import MessageType, NotificationType
from sitetrack.models.message import PhaseMessage, TaskMessage
from sitetrack.services.access import is_admin
from sitetrack.services.lookup import get_phase, get_task
from sitetrack.services.notifications import admin_event, emit_events


PREVIEW_LENGTH = 30


def add_task_message(
    db: AsyncSession,
    *,
    task_id: uuid.UUID,
    content: str | None,
    sender_id: uuid.UUID | None = None,
    type: MessageType = MessageType.SYSTEM,
    media_url: str | None = None,
) -> TaskMessage:
    message = TaskMessage(
        task_id=task_id,
        sender_id=sender_id,
        type=type.value,
        content=content,
        media_url=media_url,
    )
    db.add(message)
    return message


def add_phase_message(
    db: AsyncSession,
    *,
    phase_id: uuid.UUID,
    content: str | None,
    sender_id: uuid.UUID | None = None,
    type: MessageType = MessageType.SYSTEM,
    media_url: str | None = None,
) -> PhaseMessage:
    message = PhaseMessage(
        phase_id=phase_id,
        sender_id=sender_id,
        type=type.value,
        content=content,
        media_url=media_url,
    )
    db.add(message)
    return message


def _user_message_type(value: str | MessageType | None) -> MessageType:
    if value is None or value == "":
        return MessageType.TEXT
    try:
        message_type = MessageType(str(value).strip().lower())
    except ValueError as exc:
        raise ValidationError(f"Unknown message type: {value!r}") from exc
    if message_type == MessageType.SYSTEM:
        raise ValidationError("System messages are reserved for workflow events")
    return message_type


def _ensure_body(content: str | None, media_url: str | None) -> None:
    if not (content and content.strip()) and not media_url:
        raise ValidationError("Message content or media is required")


def chat_preview(content: str | None) -> str:
    if not content:
        return "Media attachment"
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH] + "..."
    return content


async def send_task_message(
    db: AsyncSession,
    *,
    user,
    task_id: uuid.UUID,
    content: str | None,
    type: str | MessageType | None = None,
    media_url: str | None = None,
) -> TaskMessage:
    message_type = _user_message_type(type)
    _ensure_body(content, media_url)
    task = await get_task(db, task_id)
    message = add_task_message(
        db, task_id=task.id, content=content, sender_id=user.id, type=message_type, media_url=media_url
    )
    await db.commit()
    return message


async def send_phase_message(
    db: AsyncSession,
    *,
    user,
    phase_id: uuid.UUID,
    content: str | None,
    type: str | MessageType | None = None,
    media_url: str | None = None,
) -> PhaseMessage:
    message_type = _user_message_type(type)
    _ensure_body(content, media_url)
    phase = await get_phase(db, phase_id)
    message = add_phase_message(
        db, phase_id=phase.id, content=content, sender_id=user.id, type=message_type, media_url=media_url
    )
    await db.commit()

    if not is_admin(user):
        await emit_events(
            db,
            [
                admin_event(
                    NotificationType.CHAT_UPDATE,
                    f"New message: {chat_preview(content)}",
                    site_id=phase.site_id,
                    phase_id=phase.id,
                    actor_id=user.id,
                )
            ],
        )
    return message
