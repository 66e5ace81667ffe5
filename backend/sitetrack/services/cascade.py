from __future__ import annotations

import uuid

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.models.assignment import TaskAssignment
from sitetrack.models.message import PhaseMessage, TaskMessage
from sitetrack.models.notification import Notification
from sitetrack.models.phase import Phase
from sitetrack.models.progress_update import PhaseUpdate, TaskUpdate
from sitetrack.models.task import Task
from sitetrack.models.todo import PhaseTodo, TaskTodo


async def purge_tasks(db: AsyncSession, task_ids: list[uuid.UUID]) -> None:
    """Delete tasks and everything hanging off them. Notifications keep their text."""
    if not task_ids:
        return
    await db.execute(delete(TaskAssignment).where(TaskAssignment.task_id.in_(task_ids)))
    await db.execute(delete(TaskUpdate).where(TaskUpdate.task_id.in_(task_ids)))
    await db.execute(delete(TaskMessage).where(TaskMessage.task_id.in_(task_ids)))
    await db.execute(delete(TaskTodo).where(TaskTodo.task_id.in_(task_ids)))
    await db.execute(
        update(Notification)
        .where(Notification.task_id.in_(task_ids))
        .values(task_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(Task).where(Task.id.in_(task_ids)).execution_options(synchronize_session=False))


async def purge_phases(db: AsyncSession, phase_ids: list[uuid.UUID]) -> None:
    if not phase_ids:
        return
    task_ids = list(
        (await db.execute(select(Task.id).where(Task.phase_id.in_(phase_ids)))).scalars().all()
    )
    await purge_tasks(db, task_ids)
    await db.execute(delete(PhaseUpdate).where(PhaseUpdate.phase_id.in_(phase_ids)))
    await db.execute(delete(PhaseMessage).where(PhaseMessage.phase_id.in_(phase_ids)))
    await db.execute(delete(PhaseTodo).where(PhaseTodo.phase_id.in_(phase_ids)))
    await db.execute(
        update(Notification)
        .where(Notification.phase_id.in_(phase_ids))
        .values(phase_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(Phase).where(Phase.id.in_(phase_ids)).execution_options(synchronize_session=False))
