from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from sitetrack.schemas.employee import EmployeeBrief
from sitetrack.schemas.phase import PhaseOut
from sitetrack.schemas.task import TaskOut


class SiteOut(BaseModel):
    id: uuid.UUID
    name: str
    location: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    duration: int | None = None
    budget: Decimal
    funds: Decimal
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    client_company: str | None = None
    status: str
    created_at: datetime
    updated_at: datetime


class SiteListItem(SiteOut):
    phase_count: int = 0
    task_count: int = 0


class SiteCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    location: str | None = Field(default=None, max_length=500)
    city: str | None = None
    state: str | None = None
    country: str | None = None
    start_date: date | str | None = None
    end_date: date | str | None = None
    duration: int | None = None
    budget: Decimal | None = None
    funds: Decimal | None = None
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    client_company: str | None = None
    assigned_employee_ids: list[uuid.UUID] = Field(default_factory=list)
    with_default_phases: bool = True


class SiteEdit(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    location: str | None = Field(default=None, max_length=500)
    city: str | None = None
    state: str | None = None
    country: str | None = None
    start_date: date | str | None = None
    end_date: date | str | None = None
    duration: int | None = None
    budget: Decimal | None = None
    funds: Decimal | None = None
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    client_company: str | None = None
    status: str | None = None


class SiteAssigneesSet(BaseModel):
    employee_ids: list[uuid.UUID] = Field(default_factory=list)


class SiteDetailsOut(BaseModel):
    site: SiteOut
    phases: list[PhaseOut]
    tasks: list[TaskOut]
    assigned_employees: list[EmployeeBrief]

