"""Task status machine and the multi-assignee model.

Every write path that touches ``Task.status`` ends with
``check_phase_completion`` so the parent phase sees the change in the
same transaction. Notifications are built while the transaction is open
and stored only after it commits.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.db import utcnow
from sitetrack.errors import Forbidden, InvalidTransition, ValidationError
from sitetrack.models.assignment import TaskAssignment
from sitetrack.models.enums import NotificationType, WorkStatus
from sitetrack.models.progress_update import TaskUpdate
from sitetrack.models.task import Task
from sitetrack.services.access import ensure_admin, is_admin
from sitetrack.services.cascade import purge_tasks
from sitetrack.services.chat import add_phase_message, add_task_message
from sitetrack.services.lookup import (
    ensure_employees_exist,
    get_employee,
    get_phase,
    get_site,
    get_task,
    task_assignee_ids,
)
from sitetrack.services.notifications import WorkflowEvent, admin_event, emit_events, recipient_event
from sitetrack.services.phase_lifecycle import check_phase_completion
from sitetrack.services.progress import derive_status, parse_date, parse_status, validate_progress


logger = logging.getLogger(__name__)

SUBMITTED_MESSAGE = "Task marked as completed. Waiting for admin approval."
APPROVED_MESSAGE = "Good work! Task approved and completed by admin."
DEFAULT_REJECTION_MESSAGE = "Changes requested by Admin."
DIRECT_COMPLETION_DETAIL = "Admins cannot directly complete tasks. Use the approval endpoint instead."

ADMIN_EDITABLE_FIELDS = {
    "name",
    "phase_id",
    "status",
    "progress",
    "amount",
    "start_date",
    "due_date",
    "delay_reason",
    "proof_url",
    "assignee_ids",
}
EMPLOYEE_EDITABLE_FIELDS = {"status", "delay_reason", "proof_url"}


def derived_employee_id(
    phase_assigned_to: uuid.UUID | None, assignee_ids: list[uuid.UUID]
) -> uuid.UUID | None:
    """Single-assignee view of a task for older clients.

    The phase's responsible employee wins; otherwise the earliest explicit
    assignee. Never stored.
    """
    if phase_assigned_to is not None:
        return phase_assigned_to
    return assignee_ids[0] if assignee_ids else None


def _assignment_event(task: Task, employee_ids: list[uuid.UUID], actor_id: uuid.UUID | None) -> WorkflowEvent:
    message = f'You have been assigned to task: "{task.name}"'
    if task.due_date is not None:
        message += f". Due: {task.due_date.isoformat()}"
    return recipient_event(
        NotificationType.ASSIGNMENT,
        message,
        employee_ids,
        site_id=task.site_id,
        phase_id=task.phase_id,
        task_id=task.id,
        actor_id=actor_id,
    )


async def _can_work_on(db: AsyncSession, user, task: Task) -> bool:
    if is_admin(user):
        return True
    if user.id in await task_assignee_ids(db, task.id):
        return True
    if task.phase_id is not None:
        phase = await get_phase(db, task.phase_id)
        return phase.assigned_to == user.id
    return False


def _mark_submitted(task: Task, user) -> None:
    task.status = WorkStatus.WAITING_FOR_APPROVAL
    task.completed_by = user.id
    task.completed_at = utcnow()


def _clear_completion(task: Task) -> None:
    task.completed_by = None
    task.completed_at = None
    task.approved_by = None
    task.approved_at = None


def _submitted_event(task: Task, actor_id: uuid.UUID) -> WorkflowEvent:
    return admin_event(
        NotificationType.TASK_SUBMITTED,
        f'Task "{task.name}" submitted for approval.',
        site_id=task.site_id,
        phase_id=task.phase_id,
        task_id=task.id,
        actor_id=actor_id,
    )


async def _replace_assignees(db: AsyncSession, task: Task, employee_ids: list[uuid.UUID]) -> list[uuid.UUID]:
    """Make ``employee_ids`` the assignment set and return who is new.

    Kept assignees keep their original ``assigned_at``.
    """
    wanted = list(dict.fromkeys(employee_ids))
    await ensure_employees_exist(db, wanted)
    current = await task_assignee_ids(db, task.id)

    stmt = delete(TaskAssignment).where(TaskAssignment.task_id == task.id)
    if wanted:
        stmt = stmt.where(TaskAssignment.employee_id.not_in(wanted))
    await db.execute(stmt)
    added = [eid for eid in wanted if eid not in current]
    now = utcnow()
    db.add_all(TaskAssignment(task_id=task.id, employee_id=eid, assigned_at=now) for eid in added)
    await db.flush()
    return added


async def record_task_progress(
    db: AsyncSession,
    *,
    user,
    task_id: uuid.UUID,
    progress: int,
    note: str | None = None,
    image_url: str | None = None,
    audio_url: str | None = None,
) -> TaskUpdate:
    value = validate_progress(progress)
    text = (note or "").strip()
    events: list[WorkflowEvent] = []
    try:
        task = await get_task(db, task_id, for_update=True)
        if not await _can_work_on(db, user, task):
            raise Forbidden("Not assigned to this task")
        if task.status == WorkStatus.COMPLETED:
            raise InvalidTransition("Task is already approved and completed")

        entry = TaskUpdate(
            task_id=task.id,
            employee_id=user.id,
            previous_progress=task.progress,
            new_progress=value,
            note=text or None,
            image_url=image_url,
            audio_url=audio_url,
        )
        db.add(entry)

        previous_status = task.status
        task.progress = value
        status = derive_status(value)
        if status == WorkStatus.WAITING_FOR_APPROVAL:
            _mark_submitted(task, user)
            if previous_status != WorkStatus.WAITING_FOR_APPROVAL:
                events.append(_submitted_event(task, user.id))
        else:
            task.status = status
            _clear_completion(task)

        summary = f"Task update: {value}% - {text or 'Progress updated'}"
        add_task_message(db, task_id=task.id, content=summary)
        if task.phase_id is not None:
            add_phase_message(db, phase_id=task.phase_id, content=f'{task.name}: {summary}')

        events.extend(await check_phase_completion(db, task.phase_id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Task %s progress %s -> %s (%s)", task.id, entry.previous_progress, value, task.status.value)
    await emit_events(db, events)
    return entry


async def submit_task(db: AsyncSession, *, user, task_id: uuid.UUID) -> Task:
    """Employee hand-in: progress 100 and waiting for an admin decision."""
    events: list[WorkflowEvent] = []
    try:
        task = await get_task(db, task_id, for_update=True)
        if not await _can_work_on(db, user, task):
            raise Forbidden("Not assigned to this task")
        if task.status == WorkStatus.COMPLETED:
            raise InvalidTransition("Task is already approved and completed")

        already_waiting = task.status == WorkStatus.WAITING_FOR_APPROVAL
        task.progress = 100
        _mark_submitted(task, user)
        if not already_waiting:
            events.append(_submitted_event(task, user.id))
        add_task_message(db, task_id=task.id, content=SUBMITTED_MESSAGE)

        events.extend(await check_phase_completion(db, task.phase_id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Task %s submitted for approval by %s", task.id, user.id)
    await emit_events(db, events)
    return task


async def approve_task(db: AsyncSession, *, user, task_id: uuid.UUID) -> Task:
    ensure_admin(user, "Only admin can approve tasks")
    events: list[WorkflowEvent] = []
    try:
        task = await get_task(db, task_id, for_update=True)
        if task.status == WorkStatus.COMPLETED:
            # Nothing written; commit only releases the row lock.
            await db.commit()
            return task
        if task.status != WorkStatus.WAITING_FOR_APPROVAL:
            raise InvalidTransition("Only a task waiting for approval can be approved")

        task.status = WorkStatus.COMPLETED
        task.progress = 100
        task.approved_by = user.id
        task.approved_at = utcnow()
        add_task_message(db, task_id=task.id, content=APPROVED_MESSAGE)

        assignees = await task_assignee_ids(db, task.id)
        if assignees:
            events.append(
                recipient_event(
                    NotificationType.TASK_APPROVED,
                    f'Your work on "{task.name}" has been approved!',
                    assignees,
                    site_id=task.site_id,
                    phase_id=task.phase_id,
                    task_id=task.id,
                    actor_id=user.id,
                )
            )
        events.extend(await check_phase_completion(db, task.phase_id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Task %s approved by %s", task.id, user.id)
    await emit_events(db, events)
    return task


async def reject_task(db: AsyncSession, *, user, task_id: uuid.UUID, reason: str | None = None) -> Task:
    ensure_admin(user, "Only admin can reject tasks")
    events: list[WorkflowEvent] = []
    try:
        task = await get_task(db, task_id, for_update=True)
        if task.status != WorkStatus.WAITING_FOR_APPROVAL:
            raise InvalidTransition("Only a task waiting for approval can be rejected")

        task.status = WorkStatus.IN_PROGRESS
        task.progress = 99
        _clear_completion(task)
        text = (reason or "").strip()
        add_task_message(db, task_id=task.id, content=f"Changes requested: {text}" if text else DEFAULT_REJECTION_MESSAGE)

        assignees = await task_assignee_ids(db, task.id)
        if assignees:
            events.append(
                recipient_event(
                    NotificationType.TASK_REJECTED,
                    f'Changes requested for "{task.name}". Check chat for details.',
                    assignees,
                    site_id=task.site_id,
                    phase_id=task.phase_id,
                    task_id=task.id,
                    actor_id=user.id,
                )
            )
        events.extend(await check_phase_completion(db, task.phase_id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Task %s sent back for changes by %s", task.id, user.id)
    await emit_events(db, events)
    return task


async def set_task_assignees(
    db: AsyncSession, *, user, task_id: uuid.UUID, employee_ids: list[uuid.UUID]
) -> list[uuid.UUID]:
    """Replace the assignee set; only newly added employees are notified."""
    ensure_admin(user, "Only admin can assign tasks")
    try:
        task = await get_task(db, task_id, for_update=True)
        added = await _replace_assignees(db, task, employee_ids)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Task %s assignees replaced, %d new", task.id, len(added))
    if added:
        await emit_events(db, [_assignment_event(task, added, user.id)])
    return added


async def toggle_task_assignment(
    db: AsyncSession,
    *,
    user,
    task_id: uuid.UUID,
    employee_id: uuid.UUID,
    due_date: date | str | None = None,
) -> bool:
    """Assign the employee if absent, unassign if present. Returns the new state."""
    ensure_admin(user, "Only admin can assign tasks")
    due = parse_date(due_date)
    try:
        task = await get_task(db, task_id, for_update=True)
        await get_employee(db, employee_id)
        existing = (
            await db.execute(
                select(TaskAssignment).where(
                    TaskAssignment.task_id == task.id, TaskAssignment.employee_id == employee_id
                )
            )
        ).scalar_one_or_none()
        if existing is not None:
            await db.delete(existing)
            assigned = False
        else:
            db.add(TaskAssignment(task_id=task.id, employee_id=employee_id, assigned_at=utcnow()))
            if due is not None:
                task.due_date = due
            assigned = True
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Task %s assignment of %s -> %s", task.id, employee_id, assigned)
    if assigned:
        await emit_events(db, [_assignment_event(task, [employee_id], user.id)])
    return assigned


async def _resolve_phase_id(db: AsyncSession, site_id: uuid.UUID, phase_id: uuid.UUID | None) -> uuid.UUID | None:
    if phase_id is None:
        return None
    phase = await get_phase(db, phase_id)
    if phase.site_id != site_id:
        raise ValidationError("Phase does not belong to the task's site")
    return phase.id


def _apply_status(task: Task, status: WorkStatus, user) -> None:
    if status == WorkStatus.COMPLETED:
        raise Forbidden(DIRECT_COMPLETION_DETAIL)
    if status == WorkStatus.WAITING_FOR_APPROVAL:
        if task.status != WorkStatus.WAITING_FOR_APPROVAL:
            _mark_submitted(task, user)
        return
    task.status = status
    _clear_completion(task)


async def create_task(db: AsyncSession, *, user, site_id: uuid.UUID, data: dict) -> Task:
    ensure_admin(user, "Only admin can create tasks")
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Task name is required")
    status = parse_status(data["status"]) if data.get("status") else WorkStatus.NOT_STARTED
    if status == WorkStatus.COMPLETED:
        raise Forbidden(DIRECT_COMPLETION_DETAIL)

    events: list[WorkflowEvent] = []
    try:
        await get_site(db, site_id)
        task = Task(
            site_id=site_id,
            phase_id=await _resolve_phase_id(db, site_id, data.get("phase_id")),
            name=name,
            status=WorkStatus.NOT_STARTED,
            progress=validate_progress(data.get("progress") or 0),
            amount=data.get("amount") if data.get("amount") is not None else Decimal("0"),
            start_date=parse_date(data.get("start_date")),
            due_date=parse_date(data.get("due_date")),
        )
        _apply_status(task, status, user)
        db.add(task)
        await db.flush()

        added = await _replace_assignees(db, task, data.get("assignee_ids") or [])
        if added:
            events.append(_assignment_event(task, added, user.id))
        events.extend(await check_phase_completion(db, task.phase_id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Task %s created in site %s", task.id, site_id)
    await emit_events(db, events)
    return task


async def _admin_edit(db: AsyncSession, task: Task, user, changes: dict) -> list[WorkflowEvent]:
    unknown = set(changes) - ADMIN_EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown task field(s): {', '.join(sorted(unknown))}")
    if "status" in changes and changes["status"] is not None:
        _apply_status(task, parse_status(changes["status"]), user)
    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ValidationError("Task name is required")
        task.name = name
    if "phase_id" in changes:
        task.phase_id = await _resolve_phase_id(db, task.site_id, changes["phase_id"])
    if changes.get("progress") is not None:
        task.progress = validate_progress(changes["progress"])
    if "amount" in changes:
        task.amount = changes["amount"] if changes["amount"] is not None else Decimal("0")
    for field in ("start_date", "due_date"):
        if field in changes:
            setattr(task, field, parse_date(changes[field]))
    for field in ("delay_reason", "proof_url"):
        if field in changes:
            setattr(task, field, changes[field] or None)

    if changes.get("assignee_ids") is not None:
        added = await _replace_assignees(db, task, changes["assignee_ids"])
        if added:
            return [_assignment_event(task, added, user.id)]
    return []


async def _employee_edit(db: AsyncSession, task: Task, user, changes: dict) -> list[WorkflowEvent]:
    if not await _can_work_on(db, user, task):
        raise Forbidden("Not assigned to this task")
    restricted = set(changes) - EMPLOYEE_EDITABLE_FIELDS
    if restricted:
        raise Forbidden("Employees can only update status, delay reason and proof")

    events: list[WorkflowEvent] = []
    if changes.get("status") is not None:
        status = parse_status(changes["status"])
        previous = task.status
        _apply_status(task, status, user)
        if task.status != previous:
            events.append(
                admin_event(
                    NotificationType.TASK_UPDATE,
                    f'Task "{task.name}" marked as {task.status.value} by employee.',
                    site_id=task.site_id,
                    phase_id=task.phase_id,
                    task_id=task.id,
                    actor_id=user.id,
                )
            )
    for field in ("delay_reason", "proof_url"):
        if field in changes:
            setattr(task, field, changes[field] or None)
    return events


async def update_task(db: AsyncSession, *, user, task_id: uuid.UUID, changes: dict) -> Task:
    try:
        task = await get_task(db, task_id, for_update=True)
        old_phase_id = task.phase_id
        if is_admin(user):
            events = await _admin_edit(db, task, user, changes)
        else:
            events = await _employee_edit(db, task, user, changes)

        # Both phases of a move are locked in id order.
        for phase_id in sorted({old_phase_id, task.phase_id} - {None}):
            events.extend(await check_phase_completion(db, phase_id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Task %s updated by %s", task.id, user.id)
    await emit_events(db, events)
    return task


async def delete_task(db: AsyncSession, *, user, task_id: uuid.UUID) -> None:
    ensure_admin(user, "Only admin can delete tasks")
    try:
        task = await get_task(db, task_id)
        phase_id = task.phase_id
        await purge_tasks(db, [task.id])
        db.expunge(task)
        events = await check_phase_completion(db, phase_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Task %s deleted", task_id)
    await emit_events(db, events)
