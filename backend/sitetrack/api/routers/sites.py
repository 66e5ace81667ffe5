from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.api.deps import get_current_user, require_admin
from sitetrack.api.presenters import (
    employee_brief,
    phase_to_out,
    site_to_out,
    task_to_out_loaded,
    tasks_to_out,
)
from sitetrack.db import get_db
from sitetrack.models.assignment import SiteAssignment
from sitetrack.models.employee import Employee
from sitetrack.models.task import Task
from sitetrack.schemas.common import StatusOut
from sitetrack.schemas.phase import PhaseCreate, PhaseOut
from sitetrack.schemas.site import (
    SiteAssigneesSet,
    SiteCreate,
    SiteDetailsOut,
    SiteEdit,
    SiteListItem,
    SiteOut,
)
from sitetrack.schemas.task import TaskCreate, TaskOut
from sitetrack.services import sites as site_service
from sitetrack.services import task_lifecycle
from sitetrack.services.lookup import get_site
from sitetrack.services.phase_sequencer import insert_phase, ordered_phases


router = APIRouter()


@router.get("", response_model=list[SiteListItem])
async def list_sites(db: AsyncSession = Depends(get_db), user=Depends(require_admin)) -> list[SiteListItem]:
    return [
        SiteListItem(**site_to_out(site).model_dump(), phase_count=phases, task_count=tasks)
        for site, phases, tasks in await site_service.list_sites(db)
    ]


@router.post("", response_model=SiteOut, status_code=status.HTTP_201_CREATED)
async def create_site(payload: SiteCreate, db: AsyncSession = Depends(get_db), user=Depends(require_admin)) -> SiteOut:
    data = payload.model_dump(exclude={"assigned_employee_ids", "with_default_phases"})
    site = await site_service.create_site(
        db,
        user=user,
        data=data,
        assigned_employee_ids=payload.assigned_employee_ids,
        with_default_phases=payload.with_default_phases,
    )
    return site_to_out(site)


@router.get("/{site_id}", response_model=SiteDetailsOut)
async def get_site_details(
    site_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(get_current_user)
) -> SiteDetailsOut:
    site = await get_site(db, site_id)
    phases = await ordered_phases(db, site.id)
    tasks = (await db.execute(select(Task).where(Task.site_id == site.id).order_by(Task.created_at))).scalars().all()
    employees = (
        await db.execute(
            select(Employee)
            .join(SiteAssignment, SiteAssignment.employee_id == Employee.id)
            .where(SiteAssignment.site_id == site.id)
            .order_by(SiteAssignment.assigned_at)
        )
    ).scalars().all()
    return SiteDetailsOut(
        site=site_to_out(site),
        phases=[phase_to_out(p) for p in phases],
        tasks=await tasks_to_out(db, list(tasks)),
        assigned_employees=[employee_brief(e) for e in employees],
    )


@router.patch("/{site_id}", response_model=SiteOut)
async def update_site(
    site_id: uuid.UUID,
    payload: SiteEdit,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_admin),
) -> SiteOut:
    site = await site_service.update_site(db, user=user, site_id=site_id, changes=payload.model_dump(exclude_unset=True))
    return site_to_out(site)


@router.delete("/{site_id}", response_model=StatusOut)
async def delete_site(site_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(require_admin)) -> StatusOut:
    await site_service.delete_site(db, user=user, site_id=site_id)
    return StatusOut()


@router.put("/{site_id}/assignees", response_model=StatusOut)
async def set_site_assignees(
    site_id: uuid.UUID,
    payload: SiteAssigneesSet,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_admin),
) -> StatusOut:
    await site_service.set_site_assignees(db, user=user, site_id=site_id, employee_ids=payload.employee_ids)
    return StatusOut()


@router.get("/{site_id}/phases", response_model=list[PhaseOut])
async def list_phases(
    site_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(get_current_user)
) -> list[PhaseOut]:
    site = await get_site(db, site_id)
    return [phase_to_out(p) for p in await ordered_phases(db, site.id)]


@router.post("/{site_id}/phases", response_model=PhaseOut, status_code=status.HTTP_201_CREATED)
async def add_phase(
    site_id: uuid.UUID,
    payload: PhaseCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
) -> PhaseOut:
    phase = await insert_phase(
        db, site_id=site_id, name=payload.name, position=payload.position, budget=payload.budget
    )
    return phase_to_out(phase)


@router.post("/{site_id}/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def add_task(
    site_id: uuid.UUID,
    payload: TaskCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_admin),
) -> TaskOut:
    task = await task_lifecycle.create_task(db, user=user, site_id=site_id, data=payload.model_dump())
    return await task_to_out_loaded(db, task)
