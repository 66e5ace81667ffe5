from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class TodoOut(BaseModel):
    id: uuid.UUID
    content: str
    is_completed: bool
    employee_id: uuid.UUID | None = None
    created_at: datetime


class TodoCreate(BaseModel):
    content: str = Field(min_length=1, max_length=2000)
