from __future__ import annotations

from typing import Optional


class AssignmentError(Exception):
    """
    Base for every refusal the allocator, the lifecycle and the stores raise.

    `kind` is the machine-readable name rendered to clients; `status_code`
    is the HTTP status the API layer maps it to.
    """

    kind = "assignment_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind, "retryable": self.retryable}


class InvalidArgument(AssignmentError):
    kind = "invalid_argument"
    status_code = 400


class NotFound(AssignmentError):
    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, message: Optional[str] = None):
        super().__init__(message or f"{entity} not found")
        self.entity = entity

    def as_dict(self) -> dict:
        out = super().as_dict()
        out["entity"] = self.entity
        return out


class CapacityExceeded(AssignmentError):
    """
    The agent already holds `capacity` active assignments.

    Rendered as 409 rather than 400: the request itself is well-formed and
    becomes acceptable once the agent completes or releases an item.
    """

    kind = "capacity_exceeded"
    status_code = 409


class NoAvailableWork(AssignmentError):
    kind = "no_available_work"
    status_code = 404


class ConcurrentAssignmentInProgress(AssignmentError):
    kind = "concurrent_assignment_in_progress"
    status_code = 409
    retryable = True


class StorageFailure(AssignmentError):
    kind = "storage_failure"
    status_code = 500
