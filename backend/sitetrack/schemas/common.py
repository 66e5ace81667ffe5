from __future__ import annotations

from pydantic import BaseModel


class StatusOut(BaseModel):
    status: str = "ok"
