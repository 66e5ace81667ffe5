from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.errors import ValidationError
from sitetrack.models.assignment import SiteAssignment
from sitetrack.models.notification import Notification
from sitetrack.models.phase import Phase
from sitetrack.models.site import Site
from sitetrack.models.task import Task
from sitetrack.services.access import ensure_admin
from sitetrack.services.cascade import purge_phases, purge_tasks
from sitetrack.services.lookup import ensure_employees_exist, get_site
from sitetrack.services.progress import parse_date


logger = logging.getLogger(__name__)

DEFAULT_PHASES = (
    "Planning & Site Preparation",
    "Foundation",
    "Structure",
    "Finishing",
)

SITE_FIELDS = (
    "name",
    "location",
    "city",
    "state",
    "country",
    "duration",
    "client_name",
    "client_email",
    "client_phone",
    "client_company",
    "status",
)
MONEY_FIELDS = ("budget", "funds")
DATE_FIELDS = ("start_date", "end_date")


def _apply_site_fields(site: Site, data: dict) -> None:
    for field in SITE_FIELDS:
        if field in data:
            setattr(site, field, data[field])
    for field in MONEY_FIELDS:
        if field in data:
            setattr(site, field, data[field] if data[field] is not None else Decimal("0"))
    for field in DATE_FIELDS:
        if field in data:
            setattr(site, field, parse_date(data[field]))
    if not (site.name or "").strip():
        raise ValidationError("Site name is required")
    if not site.status:
        site.status = "active"


async def list_sites(db: AsyncSession) -> list[tuple[Site, int, int]]:
    phase_count = (
        select(func.count()).select_from(Phase).where(Phase.site_id == Site.id).correlate(Site).scalar_subquery()
    )
    task_count = (
        select(func.count()).select_from(Task).where(Task.site_id == Site.id).correlate(Site).scalar_subquery()
    )
    rows = (await db.execute(select(Site, phase_count, task_count).order_by(Site.created_at.desc()))).all()
    return [(site, int(phases), int(tasks)) for site, phases, tasks in rows]


async def create_site(
    db: AsyncSession,
    *,
    user,
    data: dict,
    assigned_employee_ids: list[uuid.UUID] | None = None,
    with_default_phases: bool = True,
) -> Site:
    """Create a site, seeded with the standard construction phases."""
    ensure_admin(user, "Only admin can create sites")
    site = Site()
    _apply_site_fields(site, data)
    try:
        db.add(site)
        await db.flush()
        if with_default_phases:
            db.add_all(
                Phase(site_id=site.id, name=name, order_num=index)
                for index, name in enumerate(DEFAULT_PHASES, start=1)
            )
        employee_ids = list(dict.fromkeys(assigned_employee_ids or []))
        await ensure_employees_exist(db, employee_ids)
        db.add_all(SiteAssignment(site_id=site.id, employee_id=eid) for eid in employee_ids)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Site %s created by %s", site.id, user.id)
    return site


async def update_site(db: AsyncSession, *, user, site_id: uuid.UUID, changes: dict) -> Site:
    ensure_admin(user, "Only admin can update sites")
    try:
        site = await get_site(db, site_id, for_update=True)
        _apply_site_fields(site, changes)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return site


async def set_site_assignees(db: AsyncSession, *, user, site_id: uuid.UUID, employee_ids: list[uuid.UUID]) -> None:
    ensure_admin(user, "Only admin can assign sites")
    wanted = list(dict.fromkeys(employee_ids))
    try:
        await get_site(db, site_id, for_update=True)
        await ensure_employees_exist(db, wanted)
        await db.execute(delete(SiteAssignment).where(SiteAssignment.site_id == site_id))
        db.add_all(SiteAssignment(site_id=site_id, employee_id=eid) for eid in wanted)
        await db.commit()
    except Exception:
        await db.rollback()
        raise


async def delete_site(db: AsyncSession, *, user, site_id: uuid.UUID) -> None:
    ensure_admin(user, "Only admin can delete sites")
    try:
        site = await get_site(db, site_id, for_update=True)
        phase_ids = list((await db.execute(select(Phase.id).where(Phase.site_id == site_id))).scalars().all())
        await purge_phases(db, phase_ids)
        # Tasks created without a phase.
        orphan_ids = list((await db.execute(select(Task.id).where(Task.site_id == site_id))).scalars().all())
        await purge_tasks(db, orphan_ids)
        await db.execute(delete(SiteAssignment).where(SiteAssignment.site_id == site_id))
        await db.execute(
            update(Notification)
            .where(Notification.site_id == site_id)
            .values(site_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.delete(site)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Site %s deleted with %d phase(s)", site_id, len(phase_ids))
