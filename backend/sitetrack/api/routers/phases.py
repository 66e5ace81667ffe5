from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.api.deps import get_current_user
from sitetrack.api.presenters import (
    employee_brief,
    message_to_out,
    phase_to_out,
    tasks_to_out,
    todo_to_out,
)
from sitetrack.db import get_db
from sitetrack.models.employee import Employee
from sitetrack.models.message import PhaseMessage
from sitetrack.models.progress_update import PhaseUpdate
from sitetrack.models.site import Site
from sitetrack.models.task import Task
from sitetrack.models.todo import PhaseTodo
from sitetrack.schemas.common import StatusOut
from sitetrack.schemas.message import MessageCreate, MessageOut
from sitetrack.schemas.phase import (
    PhaseAssign,
    PhaseDetailsOut,
    PhaseEdit,
    PhaseOut,
    PhaseProgressCreate,
    PhaseReject,
    PhaseUpdateOut,
)
from sitetrack.schemas.todo import TodoCreate, TodoOut
from sitetrack.services import chat, phase_lifecycle, todos
from sitetrack.services.lookup import get_phase
from sitetrack.services.phase_sequencer import remove_phase


router = APIRouter()


def _update_to_out(u: PhaseUpdate, employee_name: str | None) -> PhaseUpdateOut:
    return PhaseUpdateOut(
        id=u.id,
        phase_id=u.phase_id,
        employee_id=u.employee_id,
        employee_name=employee_name,
        previous_progress=u.previous_progress,
        new_progress=u.new_progress,
        message=u.message,
        created_at=u.created_at,
    )


@router.get("/{phase_id}", response_model=PhaseDetailsOut)
async def get_phase_details(
    phase_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(get_current_user)
) -> PhaseDetailsOut:
    phase = await get_phase(db, phase_id)
    site = (await db.execute(select(Site).where(Site.id == phase.site_id))).scalar_one_or_none()
    assigned = None
    if phase.assigned_to is not None:
        assigned = (await db.execute(select(Employee).where(Employee.id == phase.assigned_to))).scalar_one_or_none()

    todo_rows = (
        await db.execute(select(PhaseTodo).where(PhaseTodo.phase_id == phase.id).order_by(PhaseTodo.created_at))
    ).scalars().all()
    update_rows = (
        await db.execute(
            select(PhaseUpdate, Employee.name)
            .outerjoin(Employee, Employee.id == PhaseUpdate.employee_id)
            .where(PhaseUpdate.phase_id == phase.id)
            .order_by(PhaseUpdate.created_at.desc())
        )
    ).all()
    message_rows = (
        await db.execute(
            select(PhaseMessage, Employee.name)
            .outerjoin(Employee, Employee.id == PhaseMessage.sender_id)
            .where(PhaseMessage.phase_id == phase.id)
            .order_by(PhaseMessage.created_at)
        )
    ).all()
    tasks = (
        await db.execute(select(Task).where(Task.phase_id == phase.id).order_by(Task.created_at))
    ).scalars().all()

    return PhaseDetailsOut(
        phase=phase_to_out(phase),
        site_name=site.name if site else None,
        site_location=site.location if site else None,
        assigned_employee=employee_brief(assigned) if assigned else None,
        todos=[todo_to_out(t) for t in todo_rows],
        updates=[_update_to_out(u, name) for u, name in update_rows],
        messages=[message_to_out(m, name) for m, name in message_rows],
        tasks=await tasks_to_out(db, list(tasks)),
    )


@router.patch("/{phase_id}", response_model=PhaseOut)
async def update_phase(
    phase_id: uuid.UUID,
    payload: PhaseEdit,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> PhaseOut:
    phase = await phase_lifecycle.update_phase(
        db, user=user, phase_id=phase_id, changes=payload.model_dump(exclude_unset=True)
    )
    return phase_to_out(phase)


@router.delete("/{phase_id}", response_model=StatusOut)
async def delete_phase(phase_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(get_current_user)) -> StatusOut:
    await remove_phase(db, user=user, phase_id=phase_id)
    return StatusOut()


@router.put("/{phase_id}/assignee", response_model=PhaseOut)
async def assign_employee(
    phase_id: uuid.UUID,
    payload: PhaseAssign,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> PhaseOut:
    phase = await phase_lifecycle.assign_phase(db, user=user, phase_id=phase_id, employee_id=payload.employee_id)
    return phase_to_out(phase)


@router.post("/{phase_id}/complete", response_model=PhaseOut)
async def complete_phase(
    phase_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(get_current_user)
) -> PhaseOut:
    phase = await phase_lifecycle.complete_phase(db, user=user, phase_id=phase_id)
    return phase_to_out(phase)


@router.post("/{phase_id}/approve", response_model=PhaseOut)
async def approve_phase(
    phase_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(get_current_user)
) -> PhaseOut:
    phase = await phase_lifecycle.approve_phase(db, user=user, phase_id=phase_id)
    return phase_to_out(phase)


@router.post("/{phase_id}/reject", response_model=PhaseOut)
async def reject_phase(
    phase_id: uuid.UUID,
    payload: PhaseReject,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> PhaseOut:
    phase = await phase_lifecycle.reject_phase(db, user=user, phase_id=phase_id, reason=payload.reason)
    return phase_to_out(phase)


@router.post("/{phase_id}/updates", response_model=PhaseOut, status_code=status.HTTP_201_CREATED)
async def add_phase_update(
    phase_id: uuid.UUID,
    payload: PhaseProgressCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> PhaseOut:
    await phase_lifecycle.record_phase_progress(
        db, user=user, phase_id=phase_id, progress=payload.progress, message=payload.message
    )
    return phase_to_out(await get_phase(db, phase_id))


@router.post("/{phase_id}/todos", response_model=TodoOut, status_code=status.HTTP_201_CREATED)
async def add_phase_todo(
    phase_id: uuid.UUID,
    payload: TodoCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> TodoOut:
    return todo_to_out(await todos.add_phase_todo(db, phase_id=phase_id, content=payload.content))


@router.post("/{phase_id}/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def send_phase_message(
    phase_id: uuid.UUID,
    payload: MessageCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> MessageOut:
    message = await chat.send_phase_message(
        db, user=user, phase_id=phase_id, content=payload.content, type=payload.type, media_url=payload.media_url
    )
    return message_to_out(message, user.name)
