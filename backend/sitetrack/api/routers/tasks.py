from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.api.deps import get_current_user, require_admin
from sitetrack.api.presenters import message_to_out, task_to_out_loaded, tasks_to_out, todo_to_out
from sitetrack.db import get_db
from sitetrack.models.employee import Employee
from sitetrack.models.message import TaskMessage
from sitetrack.models.phase import Phase
from sitetrack.models.progress_update import TaskUpdate
from sitetrack.models.site import Site
from sitetrack.models.task import Task
from sitetrack.models.todo import TaskTodo
from sitetrack.schemas.common import StatusOut
from sitetrack.schemas.message import MessageCreate, MessageOut
from sitetrack.schemas.task import (
    TaskAssigneesSet,
    TaskAssignmentToggle,
    TaskAssignmentToggleOut,
    TaskDetailsOut,
    TaskEdit,
    TaskOut,
    TaskProgressCreate,
    TaskReject,
    TaskUpdateOut,
)
from sitetrack.schemas.todo import TodoCreate, TodoOut
from sitetrack.services import chat, task_lifecycle, todos
from sitetrack.services.lookup import get_task


router = APIRouter()


def _update_to_out(u: TaskUpdate, employee_name: str | None) -> TaskUpdateOut:
    return TaskUpdateOut(
        id=u.id,
        task_id=u.task_id,
        employee_id=u.employee_id,
        employee_name=employee_name,
        previous_progress=u.previous_progress,
        new_progress=u.new_progress,
        note=u.note,
        image_url=u.image_url,
        audio_url=u.audio_url,
        created_at=u.created_at,
    )


@router.get("", response_model=list[TaskOut])
async def list_tasks(
    site_id: uuid.UUID | None = None,
    phase_id: uuid.UUID | None = None,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_admin),
) -> list[TaskOut]:
    stmt = select(Task)
    if site_id:
        stmt = stmt.where(Task.site_id == site_id)
    if phase_id:
        stmt = stmt.where(Task.phase_id == phase_id)
    tasks = (await db.execute(stmt.order_by(Task.created_at.desc()))).scalars().all()
    return await tasks_to_out(db, list(tasks))


@router.get("/{task_id}", response_model=TaskDetailsOut)
async def get_task_details(
    task_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(get_current_user)
) -> TaskDetailsOut:
    task = await get_task(db, task_id)
    site_name = (await db.execute(select(Site.name).where(Site.id == task.site_id))).scalar_one_or_none()
    phase_name = None
    if task.phase_id is not None:
        phase_name = (await db.execute(select(Phase.name).where(Phase.id == task.phase_id))).scalar_one_or_none()

    update_rows = (
        await db.execute(
            select(TaskUpdate, Employee.name)
            .outerjoin(Employee, Employee.id == TaskUpdate.employee_id)
            .where(TaskUpdate.task_id == task.id)
            .order_by(TaskUpdate.created_at.desc())
        )
    ).all()
    message_rows = (
        await db.execute(
            select(TaskMessage, Employee.name)
            .outerjoin(Employee, Employee.id == TaskMessage.sender_id)
            .where(TaskMessage.task_id == task.id)
            .order_by(TaskMessage.created_at)
        )
    ).all()
    todo_rows = (
        await db.execute(select(TaskTodo).where(TaskTodo.task_id == task.id).order_by(TaskTodo.created_at))
    ).scalars().all()

    return TaskDetailsOut(
        task=await task_to_out_loaded(db, task),
        site_name=site_name,
        phase_name=phase_name,
        updates=[_update_to_out(u, name) for u, name in update_rows],
        messages=[message_to_out(m, name) for m, name in message_rows],
        todos=[todo_to_out(t) for t in todo_rows],
    )


@router.patch("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: uuid.UUID,
    payload: TaskEdit,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> TaskOut:
    task = await task_lifecycle.update_task(
        db, user=user, task_id=task_id, changes=payload.model_dump(exclude_unset=True)
    )
    return await task_to_out_loaded(db, task)


@router.delete("/{task_id}", response_model=StatusOut)
async def delete_task(task_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(require_admin)) -> StatusOut:
    await task_lifecycle.delete_task(db, user=user, task_id=task_id)
    return StatusOut()


@router.put("/{task_id}/assignees", response_model=TaskOut)
async def set_assignees(
    task_id: uuid.UUID,
    payload: TaskAssigneesSet,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_admin),
) -> TaskOut:
    await task_lifecycle.set_task_assignees(db, user=user, task_id=task_id, employee_ids=payload.employee_ids)
    return await task_to_out_loaded(db, await get_task(db, task_id))


@router.post("/{task_id}/assignments/toggle", response_model=TaskAssignmentToggleOut)
async def toggle_assignment(
    task_id: uuid.UUID,
    payload: TaskAssignmentToggle,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_admin),
) -> TaskAssignmentToggleOut:
    assigned = await task_lifecycle.toggle_task_assignment(
        db, user=user, task_id=task_id, employee_id=payload.employee_id, due_date=payload.due_date
    )
    return TaskAssignmentToggleOut(task_id=task_id, employee_id=payload.employee_id, assigned=assigned)


@router.post("/{task_id}/updates", response_model=TaskUpdateOut, status_code=status.HTTP_201_CREATED)
async def add_task_update(
    task_id: uuid.UUID,
    payload: TaskProgressCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> TaskUpdateOut:
    entry = await task_lifecycle.record_task_progress(
        db,
        user=user,
        task_id=task_id,
        progress=payload.progress,
        note=payload.note,
        image_url=payload.image_url,
        audio_url=payload.audio_url,
    )
    return _update_to_out(entry, user.name)


@router.post("/{task_id}/complete", response_model=TaskOut)
async def complete_task(task_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(get_current_user)) -> TaskOut:
    task = await task_lifecycle.submit_task(db, user=user, task_id=task_id)
    return await task_to_out_loaded(db, task)


@router.post("/{task_id}/approve", response_model=TaskOut)
async def approve_task(task_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(get_current_user)) -> TaskOut:
    task = await task_lifecycle.approve_task(db, user=user, task_id=task_id)
    return await task_to_out_loaded(db, task)


@router.post("/{task_id}/reject", response_model=TaskOut)
async def reject_task(
    task_id: uuid.UUID,
    payload: TaskReject,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> TaskOut:
    task = await task_lifecycle.reject_task(db, user=user, task_id=task_id, reason=payload.reason)
    return await task_to_out_loaded(db, task)


@router.post("/{task_id}/todos", response_model=TodoOut, status_code=status.HTTP_201_CREATED)
async def add_todo(
    task_id: uuid.UUID,
    payload: TodoCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> TodoOut:
    return todo_to_out(await todos.add_task_todo(db, user=user, task_id=task_id, content=payload.content))


@router.post("/{task_id}/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def send_task_message(
    task_id: uuid.UUID,
    payload: MessageCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> MessageOut:
    message = await chat.send_task_message(
        db, user=user, task_id=task_id, content=payload.content, type=payload.type, media_url=payload.media_url
    )
    return message_to_out(message, user.name)
