# agenda/errors.py

from enum import Enum
from typing import Any, Optional


class ConflictType(str, Enum):
    member_busy = "member_busy"
    no_availability = "no_availability"


class SchedulingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(SchedulingError):
    status_code = 400


class NotFoundError(SchedulingError):
    status_code = 404


class ConflictError(SchedulingError):
    """The requested interval is no longer free; the caller should re-fetch availability."""

    status_code = 409

    def __init__(self, message: str, conflict_type: ConflictType, collaborator_id: Optional[int] = None):
        super().__init__(message)
        self.conflict_type = conflict_type
        self.collaborator_id = collaborator_id

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["conflict_type"] = self.conflict_type.value
        if self.collaborator_id is not None:
            payload["collaborator_id"] = self.collaborator_id
        return payload


class IllegalTransitionError(SchedulingError):
    status_code = 409

    def __init__(self, from_status: str, to_status: str, message: Optional[str] = None):
        super().__init__(message or f"Cannot move an appointment from '{from_status}' to '{to_status}'")
        self.from_status = from_status
        self.to_status = to_status

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["from_status"] = self.from_status
        payload["to_status"] = self.to_status
        return payload


class StorageError(SchedulingError):
    status_code = 500
