from __future__ import annotations

import logging
import uuid

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.auth.security import get_password_hash
from sitetrack.errors import Conflict, ValidationError
from sitetrack.models.assignment import SiteAssignment, TaskAssignment
from sitetrack.models.employee import Employee
from sitetrack.models.enums import EmployeeRole, EmployeeStatus
from sitetrack.models.phase import Phase
from sitetrack.services.access import ensure_admin
from sitetrack.services.lookup import get_employee


logger = logging.getLogger(__name__)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_role(value) -> EmployeeRole:
    try:
        return EmployeeRole.parse(value)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _parse_status(value) -> str:
    if not value:
        return EmployeeStatus.ACTIVE.value
    for status in EmployeeStatus:
        if status.value.lower() == str(value).strip().lower():
            return status.value
    raise ValidationError(f"Unknown employee status: {value!r}")


async def _ensure_unique(
    db: AsyncSession, *, phone: str, email: str | None, exclude_id: uuid.UUID | None = None
) -> None:
    stmt = select(Employee.id).where(Employee.phone == phone)
    if exclude_id is not None:
        stmt = stmt.where(Employee.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise Conflict("Phone number already in use by another employee")
    if email:
        stmt = select(Employee.id).where(func.lower(Employee.email) == email.lower())
        if exclude_id is not None:
            stmt = stmt.where(Employee.id != exclude_id)
        if (await db.execute(stmt)).first() is not None:
            raise Conflict("Email already in use by another employee")


async def list_employees(db: AsyncSession) -> list[Employee]:
    return list((await db.execute(select(Employee).order_by(Employee.created_at.desc()))).scalars().all())


async def create_employee(db: AsyncSession, *, user, data: dict) -> Employee:
    ensure_admin(user, "Only admin can manage employees")
    name = _clean(data.get("name"))
    phone = _clean(data.get("phone"))
    password = data.get("password") or ""
    role = data.get("role")
    if not name or not phone or not password.strip() or not role:
        raise ValidationError("Name, Phone, Role, and Password are required")
    email = _clean(data.get("email"))

    await _ensure_unique(db, phone=phone, email=email)
    employee = Employee(
        name=name,
        email=email.lower() if email else None,
        phone=phone,
        role=_parse_role(role),
        status=_parse_status(data.get("status")),
        password_hash=get_password_hash(password),
    )
    try:
        db.add(employee)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Employee %s created", employee.id)
    return employee


async def update_employee(db: AsyncSession, *, user, employee_id: uuid.UUID, data: dict) -> Employee:
    ensure_admin(user, "Only admin can manage employees")
    employee = await get_employee(db, employee_id)
    name = _clean(data.get("name", employee.name))
    phone = _clean(data.get("phone", employee.phone))
    role = data.get("role", employee.role)
    if not name or not phone or not role:
        raise ValidationError("Name, Phone, and Role are required")
    email = _clean(data.get("email", employee.email))

    await _ensure_unique(db, phone=phone, email=email, exclude_id=employee.id)
    employee.name = name
    employee.phone = phone
    employee.email = email.lower() if email else None
    employee.role = _parse_role(role)
    if "status" in data:
        employee.status = _parse_status(data["status"])
    password = data.get("password")
    if password and password.strip():
        employee.password_hash = get_password_hash(password)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return employee


async def delete_employee(db: AsyncSession, *, user, employee_id: uuid.UUID) -> None:
    ensure_admin(user, "Only admin can manage employees")
    try:
        employee = await get_employee(db, employee_id)
        await db.execute(delete(TaskAssignment).where(TaskAssignment.employee_id == employee.id))
        await db.execute(delete(SiteAssignment).where(SiteAssignment.employee_id == employee.id))
        await db.execute(
            update(Phase)
            .where(Phase.assigned_to == employee.id)
            .values(assigned_to=None)
            .execution_options(synchronize_session=False)
        )
        await db.delete(employee)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Employee %s deleted", employee_id)
