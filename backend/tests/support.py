"""Shared fixtures: a throwaway SQLite store and row factories."""

from __future__ import annotations

import tempfile
import unittest
import uuid
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import sitetrack.models  # noqa: F401
from sitetrack.db import Base
from sitetrack.models.assignment import TaskAssignment
from sitetrack.models.employee import Employee
from sitetrack.models.enums import EmployeeRole, NotificationType, WorkStatus
from sitetrack.models.notification import Notification
from sitetrack.models.phase import Phase
from sitetrack.models.site import Site
from sitetrack.models.task import Task


class StoreTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.engine = create_async_engine(f"sqlite+aiosqlite:///{self._tmp.name}/store.db")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.sessions = async_sessionmaker(self.engine, expire_on_commit=False)
        self.db = self.sessions()

    async def asyncTearDown(self) -> None:
        await self.db.close()
        await self.engine.dispose()
        self._tmp.cleanup()

    async def _store(self, *rows) -> None:
        # Factory rows live in their own session so a rollback in self.db never expires them.
        async with self.sessions() as session:
            for row in rows:
                session.add(row)
                await session.flush()
            await session.commit()

    async def make_employee(
        self,
        *,
        name: str = "Worker",
        role: EmployeeRole = EmployeeRole.EMPLOYEE,
        password_hash: str = "not-a-real-hash",
        email: str | None = None,
        status: str = "Active",
    ) -> Employee:
        employee = Employee(
            name=name,
            email=email,
            phone=uuid.uuid4().hex[:12],
            role=role,
            status=status,
            password_hash=password_hash,
        )
        await self._store(employee)
        return employee

    async def make_admin(self, name: str = "Boss") -> Employee:
        return await self.make_employee(name=name, role=EmployeeRole.ADMIN)

    async def make_site(self, name: str = "Riverside", phases: list[str] | tuple[str, ...] = ()) -> Site:
        site = Site(id=uuid.uuid4(), name=name, budget=Decimal("0"), funds=Decimal("0"))
        rows = [
            Phase(site_id=site.id, name=phase_name, order_num=index)
            for index, phase_name in enumerate(phases, start=1)
        ]
        await self._store(site, *rows)
        return site

    async def make_task(
        self,
        site: Site,
        phase: Phase | None = None,
        *,
        name: str = "Pour slab",
        status: WorkStatus = WorkStatus.NOT_STARTED,
        progress: int = 0,
        assignees: list[Employee] | tuple[Employee, ...] = (),
    ) -> Task:
        task = Task(
            id=uuid.uuid4(),
            site_id=site.id,
            phase_id=phase.id if phase is not None else None,
            name=name,
            status=status,
            progress=progress,
        )
        await self._store(task, *(TaskAssignment(task_id=task.id, employee_id=e.id) for e in assignees))
        return task

    async def phases_of(self, site_id: uuid.UUID) -> list[Phase]:
        stmt = (
            select(Phase)
            .where(Phase.site_id == site_id)
            .order_by(Phase.order_num)
            .execution_options(populate_existing=True)
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def reload(self, model, row_id):
        stmt = select(model).where(model.id == row_id).execution_options(populate_existing=True)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def notifications(self, type: NotificationType | None = None) -> list[Notification]:
        async with self.sessions() as fresh:
            stmt = select(Notification).order_by(Notification.created_at)
            if type is not None:
                stmt = stmt.where(Notification.type == type)
            return list((await fresh.execute(stmt)).scalars().all())

    async def count(self, model, *criteria) -> int:
        stmt = select(func.count()).select_from(model)
        if criteria:
            stmt = stmt.where(*criteria)
        return int((await self.db.execute(stmt)).scalar_one())
