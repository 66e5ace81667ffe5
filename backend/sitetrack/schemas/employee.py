from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from sitetrack.models.enums import EmployeeRole


class EmployeeOut(BaseModel):
    id: uuid.UUID
    name: str
    email: str | None = None
    phone: str
    role: EmployeeRole
    status: str
    created_at: datetime


class EmployeeBrief(BaseModel):
    id: uuid.UUID
    name: str
    email: str | None = None
    role: EmployeeRole


# Required fields are checked by the service so a missing one is a 400 with a readable reason.
class EmployeeCreate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    password: str | None = Field(default=None, max_length=128)
    role: str | None = None
    status: str | None = None


class EmployeeEdit(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    password: str | None = Field(default=None, max_length=128)
    role: str | None = None
    status: str | None = None
