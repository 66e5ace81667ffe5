from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sitetrack.db import Base, utcnow
from sitetrack.models.column_types import EmployeeRoleType
from sitetrack.models.enums import EmployeeRole, EmployeeStatus


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, index=True)
    phone: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    role: Mapped[EmployeeRole] = mapped_column(EmployeeRoleType, nullable=False, default=EmployeeRole.EMPLOYEE)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=EmployeeStatus.ACTIVE.value)

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == EmployeeRole.ADMIN

    @property
    def is_active(self) -> bool:
        return (self.status or "").lower() != EmployeeStatus.INACTIVE.value.lower()
