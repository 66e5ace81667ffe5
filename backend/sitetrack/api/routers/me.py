"""Views scoped to the calling employee."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.api.deps import get_current_user
from sitetrack.api.presenters import phase_to_out, site_to_out, tasks_to_out
from sitetrack.db import get_db
from sitetrack.models.assignment import SiteAssignment, TaskAssignment
from sitetrack.models.phase import Phase
from sitetrack.models.site import Site
from sitetrack.models.task import Task
from sitetrack.schemas.phase import EmployeePhaseOut
from sitetrack.schemas.site import SiteOut
from sitetrack.schemas.task import AssignedTaskOut


router = APIRouter()


@router.get("/sites", response_model=list[SiteOut])
async def assigned_sites(db: AsyncSession = Depends(get_db), user=Depends(get_current_user)) -> list[SiteOut]:
    via_site = select(SiteAssignment.site_id).where(SiteAssignment.employee_id == user.id)
    via_task = (
        select(Task.site_id)
        .join(TaskAssignment, TaskAssignment.task_id == Task.id)
        .where(TaskAssignment.employee_id == user.id)
    )
    via_phase = select(Phase.site_id).where(Phase.assigned_to == user.id)
    sites = (
        await db.execute(
            select(Site)
            .where(or_(Site.id.in_(via_site), Site.id.in_(via_task), Site.id.in_(via_phase)))
            .order_by(Site.created_at.desc())
        )
    ).scalars().all()
    return [site_to_out(s) for s in sites]


@router.get("/tasks", response_model=list[AssignedTaskOut])
async def assigned_tasks(db: AsyncSession = Depends(get_db), user=Depends(get_current_user)) -> list[AssignedTaskOut]:
    rows = (
        await db.execute(
            select(Task, Site.name, Site.location, Phase.name)
            .join(TaskAssignment, TaskAssignment.task_id == Task.id)
            .outerjoin(Site, Site.id == Task.site_id)
            .outerjoin(Phase, Phase.id == Task.phase_id)
            .where(TaskAssignment.employee_id == user.id)
            .order_by(Task.created_at.desc())
        )
    ).all()
    outs = await tasks_to_out(db, [row[0] for row in rows])
    return [
        AssignedTaskOut(**out.model_dump(), site_name=site_name, site_location=location, phase_name=phase_name)
        for out, (_, site_name, location, phase_name) in zip(outs, rows)
    ]


@router.get("/phases", response_model=list[EmployeePhaseOut])
async def employee_phases(db: AsyncSession = Depends(get_db), user=Depends(get_current_user)) -> list[EmployeePhaseOut]:
    via_task = (
        select(Task.phase_id)
        .join(TaskAssignment, TaskAssignment.task_id == Task.id)
        .where(TaskAssignment.employee_id == user.id, Task.phase_id.is_not(None))
    )
    rows = (
        await db.execute(
            select(Phase, Site.name, Site.location)
            .join(Site, Site.id == Phase.site_id)
            .where(or_(Phase.id.in_(via_task), Phase.assigned_to == user.id))
            .order_by(Site.created_at.desc(), Phase.order_num)
        )
    ).all()
    return [
        EmployeePhaseOut(**phase_to_out(phase).model_dump(), site_name=site_name, site_location=location)
        for phase, site_name, location in rows
    ]
