from __future__ import annotations

import asyncio

from sqlalchemy import or_, select

from sitetrack.auth.security import get_password_hash
from sitetrack.config import settings
from sitetrack.db import SessionLocal
from sitetrack.models.employee import Employee
from sitetrack.models.enums import EmployeeRole, EmployeeStatus


async def seed() -> None:
    print("Starting seed process...")
    if not (settings.ADMIN_PHONE and settings.ADMIN_PASSWORD):
        print("WARNING: ADMIN_PHONE / ADMIN_PASSWORD not set. Skipping admin creation.")
        return

    async with SessionLocal() as db:
        conditions = [Employee.phone == settings.ADMIN_PHONE]
        if settings.ADMIN_EMAIL:
            conditions.append(Employee.email == settings.ADMIN_EMAIL.lower())
        existing = (await db.execute(select(Employee).where(or_(*conditions)))).scalars().first()
        if existing is not None:
            print(f"Admin already exists: {existing.phone}")
            return

        db.add(
            Employee(
                name=settings.ADMIN_NAME,
                email=settings.ADMIN_EMAIL.lower() if settings.ADMIN_EMAIL else None,
                phone=settings.ADMIN_PHONE,
                role=EmployeeRole.ADMIN,
                status=EmployeeStatus.ACTIVE.value,
                password_hash=get_password_hash(settings.ADMIN_PASSWORD),
            )
        )
        await db.commit()
        print(f"Created admin: {settings.ADMIN_PHONE}")


if __name__ == "__main__":
    asyncio.run(seed())
