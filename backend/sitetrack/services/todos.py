from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.errors import NotFound, ValidationError
from sitetrack.models.todo import PhaseTodo, TaskTodo
from sitetrack.services.lookup import get_phase, get_task


def _clean_content(content: str | None) -> str:
    if content is None or not content.strip():
        raise ValidationError("Todo content is required")
    return content.strip()


async def add_task_todo(db: AsyncSession, *, user, task_id: uuid.UUID, content: str) -> TaskTodo:
    text = _clean_content(content)
    task = await get_task(db, task_id)
    todo = TaskTodo(task_id=task.id, employee_id=user.id, content=text, is_completed=False)
    db.add(todo)
    await db.commit()
    return todo


async def toggle_task_todo(db: AsyncSession, *, todo_id: uuid.UUID) -> TaskTodo:
    todo = (await db.execute(select(TaskTodo).where(TaskTodo.id == todo_id))).scalar_one_or_none()
    if todo is None:
        raise NotFound("Todo not found")
    todo.is_completed = not todo.is_completed
    await db.commit()
    return todo


async def add_phase_todo(db: AsyncSession, *, phase_id: uuid.UUID, content: str) -> PhaseTodo:
    text = _clean_content(content)
    phase = await get_phase(db, phase_id)
    todo = PhaseTodo(phase_id=phase.id, content=text, is_completed=False)
    db.add(todo)
    await db.commit()
    return todo


async def toggle_phase_todo(db: AsyncSession, *, todo_id: uuid.UUID) -> PhaseTodo:
    todo = (await db.execute(select(PhaseTodo).where(PhaseTodo.id == todo_id))).scalar_one_or_none()
    if todo is None:
        raise NotFound("Todo not found")
    todo.is_completed = not todo.is_completed
    await db.commit()
    return todo
