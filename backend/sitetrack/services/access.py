from __future__ import annotations

from sitetrack.errors import Forbidden
from sitetrack.models.enums import EmployeeRole


def is_admin(user) -> bool:
    role = getattr(user, "role", None)
    if role is None:
        return False
    try:
        return EmployeeRole.parse(role) == EmployeeRole.ADMIN
    except ValueError:
        return False


def ensure_admin(user, detail: str = "Admin access required") -> None:
    if not is_admin(user):
        raise Forbidden(detail)
