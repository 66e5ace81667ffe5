from sitetrack.models.assignment import SiteAssignment, TaskAssignment
from sitetrack.models.employee import Employee
from sitetrack.models.message import PhaseMessage, TaskMessage
from sitetrack.models.notification import Notification
from sitetrack.models.phase import Phase
from sitetrack.models.progress_update import PhaseUpdate, TaskUpdate
from sitetrack.models.site import Site
from sitetrack.models.task import Task
from sitetrack.models.todo import PhaseTodo, TaskTodo

__all__ = [
    "Employee",
    "Notification",
    "Phase",
    "PhaseMessage",
    "PhaseTodo",
    "PhaseUpdate",
    "Site",
    "SiteAssignment",
    "Task",
    "TaskAssignment",
    "TaskMessage",
    "TaskTodo",
    "TaskUpdate",
]
