from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.api.deps import get_current_user
from sitetrack.api.presenters import employee_to_out
from sitetrack.auth.security import create_access_token, verify_password
from sitetrack.db import get_db
from sitetrack.models.employee import Employee
from sitetrack.schemas.auth import LoginRequest, TokenResponse
from sitetrack.schemas.employee import EmployeeOut


router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    identifier = payload.identifier.strip()
    result = await db.execute(
        select(Employee).where(or_(func.lower(Employee.email) == identifier.lower(), Employee.phone == identifier))
    )
    employee = result.scalars().first()
    if employee is None or not verify_password(payload.password, employee.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not employee.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")

    access_token = create_access_token(employee_id=employee.id, role=employee.role.value)
    return TokenResponse(access_token=access_token, employee=employee_to_out(employee))


@router.get("/me", response_model=EmployeeOut)
async def me(user: Employee = Depends(get_current_user)) -> EmployeeOut:
    return employee_to_out(user)
