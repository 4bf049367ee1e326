"""Scheduling error taxonomy.

Every error is an ``HTTPException`` so FastAPI renders it as-is, whether it was
raised from a route or from a scheduling service.
"""

from fastapi import HTTPException, status


class SchedulingError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request could not be processed.'

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class InvalidInput(SchedulingError):
    default_detail = 'Invalid input.'


class ClosedDay(SchedulingError):
    default_detail = 'Booking unavailable: Clinic is closed on this day.'


class OutsideHours(SchedulingError):
    default_detail = 'Booking unavailable: Requested time is outside clinic hours.'


class DayUnavailable(SchedulingError):
    default_detail = 'Booking unavailable: The doctor is unavailable on this date.'


class SlotBlocked(SchedulingError):
    default_detail = 'Booking unavailable: This specific time slot is blocked.'


class SlotTaken(SchedulingError):
    default_detail = 'Booking unavailable: This time slot is already booked.'


class InvalidSlot(SchedulingError):
    default_detail = 'Time slot is outside the working schedule.'


class DuplicateBlock(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This time is already blocked.'


class InvalidTransition(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Appointment can no longer change status.'


class NotFound(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'


class Unauthorized(NotFound):
    # Ownership mismatches are reported like missing rows.
    default_detail = 'Appointment not found or unauthorized.'


class Forbidden(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Access denied.'


class StorageFailure(SchedulingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'An internal error occurred. Please try again later.'


class NotifierFailure(Exception):
    """Raised by notifier adapters when a message could not be delivered."""
