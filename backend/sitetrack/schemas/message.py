from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class MessageOut(BaseModel):
    id: uuid.UUID
    sender_id: uuid.UUID | None = None
    sender_name: str | None = None
    type: str
    content: str | None = None
    media_url: str | None = None
    created_at: datetime


class MessageCreate(BaseModel):
    content: str | None = Field(default=None, max_length=4000)
    type: str | None = None
    media_url: str | None = Field(default=None, max_length=2000)
