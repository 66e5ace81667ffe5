from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator

from sitetrack.models.enums import EmployeeRole, WorkStatus


class WorkStatusType(TypeDecorator):
    """Stores canonical status strings; older rows may carry any spelling."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return WorkStatus.parse(value).value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return WorkStatus.parse(value)


class EmployeeRoleType(TypeDecorator):
    impl = String(20)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return EmployeeRole.parse(value).value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return EmployeeRole.parse(value)
