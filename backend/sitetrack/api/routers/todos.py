from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.api.deps import get_current_user
from sitetrack.api.presenters import todo_to_out
from sitetrack.db import get_db
from sitetrack.schemas.todo import TodoOut
from sitetrack.services import todos as todo_service


router = APIRouter()


@router.post("/task/{todo_id}/toggle", response_model=TodoOut)
async def toggle_task_todo(
    todo_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(get_current_user)
) -> TodoOut:
    return todo_to_out(await todo_service.toggle_task_todo(db, todo_id=todo_id))


@router.post("/phase/{todo_id}/toggle", response_model=TodoOut)
async def toggle_phase_todo(
    todo_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(get_current_user)
) -> TodoOut:
    return todo_to_out(await todo_service.toggle_phase_todo(db, todo_id=todo_id))
