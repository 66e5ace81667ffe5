from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from sitetrack.models.enums import WorkStatus
from sitetrack.schemas.employee import EmployeeBrief
from sitetrack.schemas.message import MessageOut
from sitetrack.schemas.task import TaskOut
from sitetrack.schemas.todo import TodoOut


class PhaseOut(BaseModel):
    id: uuid.UUID
    site_id: uuid.UUID
    name: str
    order_num: int
    budget: Decimal
    progress: int
    status: WorkStatus
    assigned_to: uuid.UUID | None = None
    completed_by: uuid.UUID | None = None
    completed_at: datetime | None = None
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = None
    created_at: datetime


class PhaseCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    # 1-based; out of range values are clamped, omitted appends.
    position: int | None = None
    budget: Decimal | None = None


class PhaseEdit(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    budget: Decimal | None = None
    order_num: int | None = None


class PhaseAssign(BaseModel):
    employee_id: uuid.UUID | None = None


class PhaseProgressCreate(BaseModel):
    progress: int
    message: str | None = Field(default=None, max_length=4000)


class PhaseReject(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class PhaseUpdateOut(BaseModel):
    id: uuid.UUID
    phase_id: uuid.UUID
    employee_id: uuid.UUID | None = None
    employee_name: str | None = None
    previous_progress: int
    new_progress: int
    message: str | None = None
    created_at: datetime


class PhaseDetailsOut(BaseModel):
    phase: PhaseOut
    site_name: str | None = None
    site_location: str | None = None
    assigned_employee: EmployeeBrief | None = None
    todos: list[TodoOut]
    updates: list[PhaseUpdateOut]
    messages: list[MessageOut]
    tasks: list[TaskOut]


class EmployeePhaseOut(PhaseOut):
    site_name: str | None = None
    site_location: str | None = None
