from __future__ import annotations

import enum
import re


_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _squash(value: str) -> str:
    return _NON_ALNUM.sub("", value.strip().lower())


class EmployeeRole(str, enum.Enum):
    ADMIN = "Admin"
    EMPLOYEE = "Employee"

    @classmethod
    def parse(cls, value: "str | EmployeeRole") -> "EmployeeRole":
        if isinstance(value, cls):
            return value
        key = _squash(str(value))
        for role in cls:
            if _squash(role.value) == key:
                return role
        raise ValueError(f"Unknown role: {value!r}")


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class WorkStatus(str, enum.Enum):
    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    WAITING_FOR_APPROVAL = "WaitingForApproval"
    COMPLETED = "Completed"

    @classmethod
    def parse(cls, value: "str | WorkStatus") -> "WorkStatus":
        """Accept any casing/spacing of a status, including legacy stored spellings."""
        if isinstance(value, cls):
            return value
        key = _squash(str(value))
        status = _STATUS_ALIASES.get(key)
        if status is None:
            raise ValueError(f"Unknown status: {value!r}")
        return status


_STATUS_ALIASES: dict[str, WorkStatus] = {
    "notstarted": WorkStatus.NOT_STARTED,
    "pending": WorkStatus.NOT_STARTED,
    "inprogress": WorkStatus.IN_PROGRESS,
    "waitingforapproval": WorkStatus.WAITING_FOR_APPROVAL,
    "completed": WorkStatus.COMPLETED,
    "achieved": WorkStatus.COMPLETED,
}


class MessageType(str, enum.Enum):
    TEXT = "text"
    SYSTEM = "system"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    FILE = "file"


class NotificationType(str, enum.Enum):
    ASSIGNMENT = "ASSIGNMENT"
    TASK_UPDATE = "TASK_UPDATE"
    TASK_SUBMITTED = "TASK_SUBMITTED"
    TASK_APPROVED = "TASK_APPROVED"
    TASK_REJECTED = "TASK_REJECTED"
    CHAT_UPDATE = "CHAT_UPDATE"
    STAGE_COMPLETED = "STAGE_COMPLETED"
