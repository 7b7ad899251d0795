# app/utils/exceptions.py

from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class SchedulingError(HTTPException):
    """Base for domain errors; `details` is rendered into the error envelope."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=self.status_code, detail=message)
        self.details = details


class ValidationError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT

    @classmethod
    def for_appointment(cls, existing) -> "ConflictError":
        return cls(
            "Therapist already has an appointment at this time",
            {
                "conflicting_appointment_id": existing.id,
                "start_time": existing.start_time,
                "end_time": existing.end_time,
                "status": existing.status.value,
            },
        )
