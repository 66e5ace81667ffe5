from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.api.deps import require_admin
from sitetrack.api.presenters import employee_to_out
from sitetrack.db import get_db
from sitetrack.schemas.common import StatusOut
from sitetrack.schemas.employee import EmployeeCreate, EmployeeEdit, EmployeeOut
from sitetrack.services import employees as employee_service


router = APIRouter()


@router.get("", response_model=list[EmployeeOut])
async def list_employees(db: AsyncSession = Depends(get_db), user=Depends(require_admin)) -> list[EmployeeOut]:
    return [employee_to_out(e) for e in await employee_service.list_employees(db)]


@router.post("", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED)
async def create_employee(
    payload: EmployeeCreate, db: AsyncSession = Depends(get_db), user=Depends(require_admin)
) -> EmployeeOut:
    employee = await employee_service.create_employee(db, user=user, data=payload.model_dump())
    return employee_to_out(employee)


@router.patch("/{employee_id}", response_model=EmployeeOut)
async def update_employee(
    employee_id: uuid.UUID,
    payload: EmployeeEdit,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_admin),
) -> EmployeeOut:
    employee = await employee_service.update_employee(
        db, user=user, employee_id=employee_id, data=payload.model_dump(exclude_unset=True)
    )
    return employee_to_out(employee)


@router.delete("/{employee_id}", response_model=StatusOut)
async def delete_employee(
    employee_id: uuid.UUID, db: AsyncSession = Depends(get_db), user=Depends(require_admin)
) -> StatusOut:
    await employee_service.delete_employee(db, user=user, employee_id=employee_id)
    return StatusOut()
