from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.errors import NotFound
from sitetrack.models.assignment import TaskAssignment
from sitetrack.models.employee import Employee
from sitetrack.models.phase import Phase
from sitetrack.models.site import Site
from sitetrack.models.task import Task


async def get_site(db: AsyncSession, site_id: uuid.UUID, *, for_update: bool = False) -> Site:
    stmt = select(Site).where(Site.id == site_id)
    if for_update:
        stmt = stmt.with_for_update()
    site = (await db.execute(stmt)).scalar_one_or_none()
    if site is None:
        raise NotFound("Site not found")
    return site


async def get_phase(db: AsyncSession, phase_id: uuid.UUID, *, for_update: bool = False) -> Phase:
    stmt = select(Phase).where(Phase.id == phase_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    phase = (await db.execute(stmt)).scalar_one_or_none()
    if phase is None:
        raise NotFound("Phase not found")
    return phase


async def get_task(db: AsyncSession, task_id: uuid.UUID, *, for_update: bool = False) -> Task:
    stmt = select(Task).where(Task.id == task_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    task = (await db.execute(stmt)).scalar_one_or_none()
    if task is None:
        raise NotFound("Task not found")
    return task


async def get_employee(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
    employee = (await db.execute(select(Employee).where(Employee.id == employee_id))).scalar_one_or_none()
    if employee is None:
        raise NotFound("Employee not found")
    return employee


async def ensure_employees_exist(db: AsyncSession, employee_ids: list[uuid.UUID]) -> None:
    if not employee_ids:
        return
    found = set(
        (await db.execute(select(Employee.id).where(Employee.id.in_(employee_ids)))).scalars().all()
    )
    missing = [str(eid) for eid in employee_ids if eid not in found]
    if missing:
        raise NotFound(f"Employee not found: {', '.join(missing)}")


async def task_assignee_ids(db: AsyncSession, task_id: uuid.UUID) -> list[uuid.UUID]:
    rows = (
        await db.execute(
            select(TaskAssignment.employee_id)
            .where(TaskAssignment.task_id == task_id)
            .order_by(TaskAssignment.assigned_at)
        )
    ).scalars().all()
    return list(rows)
