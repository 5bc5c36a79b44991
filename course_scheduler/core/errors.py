"""
Error taxonomy for scheduling operations.

Services raise these; the FastAPI app maps them onto the standard
``{success: false, error}`` envelope (see ``course_scheduler.main``).
Batch operations (mass create/enroll/drop, scheduler runs) catch them per
item and record the message instead of aborting.
"""

from fastapi import status


class SchedulingError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """A required field is missing or a value is not accepted."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND


class CapacityError(SchedulingError):
    """The course period has no free seats."""

    status_code = status.HTTP_409_CONFLICT


class ConflictError(SchedulingError):
    """Overlapping active schedule or duplicate enrollment."""

    status_code = status.HTTP_409_CONFLICT


class SchedulerBusyError(ConflictError):
    """Another scheduler run holds the same (school, year, course) key."""


class InfrastructureError(SchedulingError):
    """Persistence or catalog lookup failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
