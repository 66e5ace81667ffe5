from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from sitetrack.models.enums import WorkStatus
from sitetrack.schemas.employee import EmployeeBrief
from sitetrack.schemas.message import MessageOut
from sitetrack.schemas.todo import TodoOut


class TaskOut(BaseModel):
    id: uuid.UUID
    site_id: uuid.UUID
    phase_id: uuid.UUID | None = None
    name: str
    status: WorkStatus
    progress: int
    amount: Decimal
    start_date: date | None = None
    due_date: date | None = None
    delay_reason: str | None = None
    proof_url: str | None = None
    assignees: list[EmployeeBrief] = Field(default_factory=list)
    # Single-assignee view for older clients; derived, never stored.
    employee_id: uuid.UUID | None = None
    completed_by: uuid.UUID | None = None
    completed_at: datetime | None = None
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class TaskCreate(BaseModel):
    name: str = Field(min_length=1, max_length=300)
    phase_id: uuid.UUID | None = None
    status: str | None = None
    progress: int | None = None
    amount: Decimal | None = None
    start_date: date | str | None = None
    due_date: date | str | None = None
    assignee_ids: list[uuid.UUID] = Field(default_factory=list)


class TaskEdit(BaseModel):
    name: str | None = Field(default=None, max_length=300)
    phase_id: uuid.UUID | None = None
    status: str | None = None
    progress: int | None = None
    amount: Decimal | None = None
    start_date: date | str | None = None
    due_date: date | str | None = None
    delay_reason: str | None = Field(default=None, max_length=2000)
    proof_url: str | None = Field(default=None, max_length=2000)
    assignee_ids: list[uuid.UUID] | None = None


class TaskProgressCreate(BaseModel):
    progress: int
    note: str | None = Field(default=None, max_length=4000)
    image_url: str | None = Field(default=None, max_length=2000)
    audio_url: str | None = Field(default=None, max_length=2000)


class TaskReject(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class TaskAssigneesSet(BaseModel):
    employee_ids: list[uuid.UUID] = Field(default_factory=list)


class TaskAssignmentToggle(BaseModel):
    employee_id: uuid.UUID
    due_date: date | str | None = None


class TaskAssignmentToggleOut(BaseModel):
    task_id: uuid.UUID
    employee_id: uuid.UUID
    assigned: bool


class TaskUpdateOut(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    employee_id: uuid.UUID | None = None
    employee_name: str | None = None
    previous_progress: int
    new_progress: int
    note: str | None = None
    image_url: str | None = None
    audio_url: str | None = None
    created_at: datetime


class TaskDetailsOut(BaseModel):
    task: TaskOut
    site_name: str | None = None
    phase_name: str | None = None
    updates: list[TaskUpdateOut]
    messages: list[MessageOut]
    todos: list[TodoOut]


class AssignedTaskOut(TaskOut):
    site_name: str | None = None
    site_location: str | None = None
    phase_name: str | None = None
