"""ORM row -> response schema conversion shared by the routers."""

from __future__ import annotations

import uuid
from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.models.assignment import TaskAssignment
from sitetrack.models.employee import Employee
from sitetrack.models.notification import Notification
from sitetrack.models.phase import Phase
from sitetrack.models.site import Site
from sitetrack.models.task import Task
from sitetrack.schemas.employee import EmployeeBrief, EmployeeOut
from sitetrack.schemas.message import MessageOut
from sitetrack.schemas.notification import NotificationOut
from sitetrack.schemas.phase import PhaseOut
from sitetrack.schemas.site import SiteOut
from sitetrack.schemas.task import TaskOut
from sitetrack.schemas.todo import TodoOut
from sitetrack.services.task_lifecycle import derived_employee_id


def employee_to_out(e: Employee) -> EmployeeOut:
    return EmployeeOut(
        id=e.id,
        name=e.name,
        email=e.email,
        phone=e.phone,
        role=e.role,
        status=e.status,
        created_at=e.created_at,
    )


def employee_brief(e: Employee) -> EmployeeBrief:
    return EmployeeBrief(id=e.id, name=e.name, email=e.email, role=e.role)


def site_to_out(s: Site) -> SiteOut:
    return SiteOut(
        id=s.id,
        name=s.name,
        location=s.location,
        city=s.city,
        state=s.state,
        country=s.country,
        start_date=s.start_date,
        end_date=s.end_date,
        duration=s.duration,
        budget=s.budget,
        funds=s.funds,
        client_name=s.client_name,
        client_email=s.client_email,
        client_phone=s.client_phone,
        client_company=s.client_company,
        status=s.status,
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


def phase_to_out(p: Phase) -> PhaseOut:
    return PhaseOut(
        id=p.id,
        site_id=p.site_id,
        name=p.name,
        order_num=p.order_num,
        budget=p.budget,
        progress=p.progress,
        status=p.status,
        assigned_to=p.assigned_to,
        completed_by=p.completed_by,
        completed_at=p.completed_at,
        approved_by=p.approved_by,
        approved_at=p.approved_at,
        created_at=p.created_at,
    )


def task_to_out(t: Task, assignees: list[Employee], phase_assigned_to: uuid.UUID | None = None) -> TaskOut:
    return TaskOut(
        id=t.id,
        site_id=t.site_id,
        phase_id=t.phase_id,
        name=t.name,
        status=t.status,
        progress=t.progress,
        amount=t.amount,
        start_date=t.start_date,
        due_date=t.due_date,
        delay_reason=t.delay_reason,
        proof_url=t.proof_url,
        assignees=[employee_brief(e) for e in assignees],
        employee_id=derived_employee_id(phase_assigned_to, [e.id for e in assignees]),
        completed_by=t.completed_by,
        completed_at=t.completed_at,
        approved_by=t.approved_by,
        approved_at=t.approved_at,
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


async def tasks_to_out(db: AsyncSession, tasks: list[Task]) -> list[TaskOut]:
    """Convert tasks, loading assignees and phase owners in two queries."""
    if not tasks:
        return []
    task_ids = [t.id for t in tasks]
    rows = (
        await db.execute(
            select(TaskAssignment.task_id, Employee)
            .join(Employee, Employee.id == TaskAssignment.employee_id)
            .where(TaskAssignment.task_id.in_(task_ids))
            .order_by(TaskAssignment.assigned_at)
        )
    ).all()
    assignees: dict[uuid.UUID, list[Employee]] = defaultdict(list)
    for task_id, employee in rows:
        assignees[task_id].append(employee)

    phase_ids = {t.phase_id for t in tasks if t.phase_id is not None}
    owners: dict[uuid.UUID, uuid.UUID | None] = {}
    if phase_ids:
        owners = dict((await db.execute(select(Phase.id, Phase.assigned_to).where(Phase.id.in_(phase_ids)))).all())
    return [task_to_out(t, assignees.get(t.id, []), owners.get(t.phase_id)) for t in tasks]


async def task_to_out_loaded(db: AsyncSession, task: Task) -> TaskOut:
    return (await tasks_to_out(db, [task]))[0]


def message_to_out(m, sender_name: str | None = None) -> MessageOut:
    return MessageOut(
        id=m.id,
        sender_id=m.sender_id,
        sender_name=sender_name,
        type=m.type,
        content=m.content,
        media_url=m.media_url,
        created_at=m.created_at,
    )


def todo_to_out(t) -> TodoOut:
    return TodoOut(
        id=t.id,
        content=t.content,
        is_completed=t.is_completed,
        employee_id=getattr(t, "employee_id", None),
        created_at=t.created_at,
    )


def notification_to_out(n: Notification) -> NotificationOut:
    return NotificationOut(
        id=n.id,
        type=n.type,
        message=n.message,
        site_id=n.site_id,
        phase_id=n.phase_id,
        task_id=n.task_id,
        recipient_id=n.recipient_id,
        actor_id=n.actor_id,
        is_read=n.is_read,
        created_at=n.created_at,
    )
