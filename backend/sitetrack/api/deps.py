from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.auth.security import read_access_token
from sitetrack.db import get_db
from sitetrack.models.employee import Employee


http_bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> Employee:
    """The active employee behind the bearer token; every route but login depends on it."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")
    try:
        employee_id = read_access_token(credentials.credentials)
    except ValueError:
        raise _unauthorized("Invalid token")

    employee = await db.get(Employee, employee_id)
    if employee is None or not employee.is_active:
        raise _unauthorized("Inactive user")
    return employee


async def require_admin(user: Employee = Depends(get_current_user)) -> Employee:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
