from __future__ import annotations


class WorkflowError(Exception):
    """Base class for failures surfaced to the caller with a specific reason."""

    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(WorkflowError):
    status_code = 404


class Forbidden(WorkflowError):
    status_code = 403


class InvalidTransition(WorkflowError):
    status_code = 409


class ValidationError(WorkflowError):
    status_code = 400


class Conflict(WorkflowError):
    status_code = 409
