"""Phase status machine: NotStarted -> InProgress -> WaitingForApproval -> Completed.

A phase reaches WaitingForApproval either from reported progress or when
every task under it has been approved. Only an admin moves it on to
Completed, or back to InProgress with progress reset to 0.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.db import utcnow
from sitetrack.errors import Forbidden, InvalidTransition, ValidationError
from sitetrack.models.enums import NotificationType, WorkStatus
from sitetrack.models.phase import Phase
from sitetrack.models.progress_update import PhaseUpdate
from sitetrack.models.task import Task
from sitetrack.services.access import ensure_admin, is_admin
from sitetrack.services.chat import add_phase_message
from sitetrack.services.lookup import get_employee, get_phase, get_site
from sitetrack.services.notifications import WorkflowEvent, admin_event, emit_events, recipient_event
from sitetrack.services.phase_sequencer import move_phase
from sitetrack.services.progress import derive_status, validate_progress


logger = logging.getLogger(__name__)

ALL_TASKS_COMPLETED_MESSAGE = "All tasks completed. Waiting for admin approval."
PHASE_APPROVED_MESSAGE = "Work approved by admin."
DEFAULT_REJECTION_MESSAGE = "Changes requested by Admin."


async def check_phase_completion(db: AsyncSession, phase_id: uuid.UUID | None) -> list[WorkflowEvent]:
    """Flip the phase to WaitingForApproval once none of its tasks is left open.

    Runs after every task status write, inside the writer's transaction.
    Task statuses are read from the store under the phase row lock, never
    from objects already loaded in the session. A phase that is already
    waiting or completed is left alone, so the flip and its STAGE_COMPLETED
    event happen once per round of work.
    """
    if phase_id is None:
        return []
    await db.flush()
    phase = (
        await db.execute(
            select(Phase).where(Phase.id == phase_id).with_for_update().execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if phase is None:
        return []

    statuses = (await db.execute(select(Task.status).where(Task.phase_id == phase_id))).scalars().all()
    if not statuses or any(status != WorkStatus.COMPLETED for status in statuses):
        return []
    if phase.status in (WorkStatus.WAITING_FOR_APPROVAL, WorkStatus.COMPLETED):
        return []

    phase.status = WorkStatus.WAITING_FOR_APPROVAL
    phase.progress = 100
    add_phase_message(db, phase_id=phase.id, content=ALL_TASKS_COMPLETED_MESSAGE)
    logger.info("Phase %s: all %d task(s) completed, waiting for approval", phase.id, len(statuses))
    return [
        admin_event(
            NotificationType.STAGE_COMPLETED,
            "All tasks completed in stage. Waiting for approval.",
            site_id=phase.site_id,
            phase_id=phase.id,
        )
    ]


async def record_phase_progress(
    db: AsyncSession,
    *,
    user,
    phase_id: uuid.UUID,
    progress: int,
    message: str | None = None,
) -> PhaseUpdate | None:
    value = validate_progress(progress)
    text = (message or "").strip()
    try:
        phase = await get_phase(db, phase_id, for_update=True)
        if phase.status == WorkStatus.COMPLETED:
            raise InvalidTransition("Phase is already approved and completed")

        entry = None
        # A bare 100% report is a completion event and is not logged as an update.
        if value != 100 or text:
            entry = PhaseUpdate(
                phase_id=phase.id,
                employee_id=user.id,
                previous_progress=phase.progress,
                new_progress=value,
                message=text or None,
            )
            db.add(entry)

        phase.progress = value
        phase.status = derive_status(value)
        if phase.status == WorkStatus.WAITING_FOR_APPROVAL:
            phase.completed_by = user.id
            phase.completed_at = utcnow()
        else:
            phase.completed_by = None
            phase.completed_at = None
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Phase %s progress -> %s (%s)", phase.id, value, phase.status.value)

    if not is_admin(user):
        summary = f"Progress updated to {value}%: {text}" if text else f"Progress updated to {value}%"
        await emit_events(
            db,
            [
                admin_event(
                    NotificationType.TASK_UPDATE,
                    summary,
                    site_id=phase.site_id,
                    phase_id=phase.id,
                    actor_id=user.id,
                )
            ],
        )
    return entry


async def complete_phase(db: AsyncSession, *, user, phase_id: uuid.UUID) -> Phase:
    """Submission by the assigned employee or an admin: progress 100, awaiting approval."""
    phase = await get_phase(db, phase_id)
    if not is_admin(user) and phase.assigned_to != user.id:
        raise Forbidden("Not authorized to complete this phase")
    await record_phase_progress(db, user=user, phase_id=phase_id, progress=100)
    return phase


async def approve_phase(db: AsyncSession, *, user, phase_id: uuid.UUID) -> Phase:
    ensure_admin(user, "Only admin can approve phases")
    try:
        phase = await get_phase(db, phase_id, for_update=True)
        if phase.status == WorkStatus.COMPLETED:
            await db.commit()
            return phase
        if phase.status != WorkStatus.WAITING_FOR_APPROVAL:
            raise InvalidTransition("Only a phase waiting for approval can be approved")

        phase.status = WorkStatus.COMPLETED
        phase.progress = 100
        phase.approved_by = user.id
        phase.approved_at = utcnow()
        add_phase_message(db, phase_id=phase.id, content=PHASE_APPROVED_MESSAGE)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Phase %s approved by %s", phase.id, user.id)
    return phase


async def reject_phase(db: AsyncSession, *, user, phase_id: uuid.UUID, reason: str | None = None) -> Phase:
    ensure_admin(user, "Only admin can reject phases")
    try:
        phase = await get_phase(db, phase_id, for_update=True)
        if phase.status != WorkStatus.WAITING_FOR_APPROVAL:
            raise InvalidTransition("Only a phase waiting for approval can be rejected")

        phase.status = WorkStatus.IN_PROGRESS
        phase.progress = 0
        phase.completed_by = None
        phase.completed_at = None
        phase.approved_by = None
        phase.approved_at = None
        text = (reason or "").strip()
        add_phase_message(
            db, phase_id=phase.id, content=f"Changes requested: {text}" if text else DEFAULT_REJECTION_MESSAGE
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Phase %s sent back for changes by %s", phase.id, user.id)
    return phase


async def assign_phase(db: AsyncSession, *, user, phase_id: uuid.UUID, employee_id: uuid.UUID | None) -> Phase:
    """Set the employee responsible for a phase.

    Every task under the phase reports this employee as its single
    assignee (``task_lifecycle.derived_employee_id``). The task assignment
    relation is not touched.
    """
    try:
        phase = await get_phase(db, phase_id, for_update=True)
        employee = await get_employee(db, employee_id) if employee_id is not None else None
        site = await get_site(db, phase.site_id)
        phase.assigned_to = employee.id if employee is not None else None
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Phase %s assigned to %s", phase.id, phase.assigned_to)

    if employee is not None:
        await emit_events(
            db,
            [
                recipient_event(
                    NotificationType.ASSIGNMENT,
                    f"You have been assigned to stage: {phase.name} in project: {site.name}",
                    [employee.id],
                    site_id=site.id,
                    phase_id=phase.id,
                    actor_id=user.id,
                )
            ],
        )
    return phase


async def update_phase(db: AsyncSession, *, user, phase_id: uuid.UUID, changes: dict) -> Phase:
    try:
        if changes.get("order_num") is not None:
            # A move rewrites sibling rows, so the site lock comes first.
            phase = await get_phase(db, phase_id)
            await get_site(db, phase.site_id, for_update=True)
        phase = await get_phase(db, phase_id, for_update=True)
        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise ValidationError("Phase name is required")
            phase.name = name
        if "budget" in changes:
            phase.budget = changes["budget"] if changes["budget"] is not None else Decimal("0")
        if changes.get("order_num") is not None:
            await move_phase(db, phase=phase, position=changes["order_num"])
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Phase %s updated by %s", phase.id, user.id)
    return phase
