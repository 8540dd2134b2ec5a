"""Failure kinds raised by the scheduling services.

Every failure carries the HTTP status the transport layer should use and a
human-readable message. Validation failures may also carry a list of
per-field problems shaped like ``{'field': ..., 'message': ..., 'value': ...}``.
"""

from typing import Any


class BookingError(Exception):
    status_code = 400
    default_message = 'Request could not be completed.'

    def __init__(self, message: str | None = None, errors: list[dict[str, Any]] | None = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {'status': 'error', 'message': self.message}
        if self.errors:
            payload['errors'] = self.errors
        return payload


# Categories

class ValidationError(BookingError, ValueError):
    """Malformed or out-of-range input. Never retried."""

    status_code = 400
    default_message = 'Validation failed'

    def __init__(self, message: str | None = None, field: str | None = None, value: Any = None):
        errors = [{'field': field, 'message': message or self.default_message, 'value': value}] if field else None
        super().__init__(message, errors)
        self.field = field


class ConflictError(BookingError):
    status_code = 409
    default_message = 'Request conflicts with the current schedule.'


class PolicyError(BookingError):
    status_code = 400
    default_message = 'Request is not allowed.'


class NotFoundError(BookingError):
    status_code = 404
    default_message = 'Not found'


class InternalError(BookingError):
    status_code = 503
    default_message = 'Database unavailable. Please try again later.'


# Validation

class FormatError(ValidationError):
    default_message = 'Time must be in HH:MM format (24-hour)'


class OrderError(ValidationError):
    default_message = 'End time must be after start time'


class TooShortError(ValidationError):
    default_message = 'Time slot must be at least 30 minutes'


# Conflicts

class SlotConflictError(ConflictError):
    default_message = 'Time slot overlaps with existing availability'


class AlreadyBookedError(ConflictError):
    default_message = 'Availability slot is already booked'


class DuplicateBookingError(ConflictError):
    default_message = 'You already have an appointment with this professor at this time'


# Policy

class PastDateError(PolicyError):
    default_message = 'Date cannot be in the past'

    def __init__(self, message: str | None = None, field: str = 'date', value: Any = None):
        super().__init__(message, [{'field': field, 'message': message or self.default_message, 'value': value}])


class PastSlotError(PolicyError):
    default_message = 'Cannot book appointments in the past'


class TooLateError(PolicyError):
    default_message = 'Appointment cannot be cancelled within 2 hours of start time'


class InvalidStateError(PolicyError):
    default_message = 'Only scheduled appointments can be changed'


class NotOwnerError(PolicyError):
    status_code = 403
    default_message = 'You do not own this availability slot'


class WrongRoleError(PolicyError):
    status_code = 403
    default_message = 'Your role is not authorized to access this resource'


# Not found

class SlotNotFoundError(NotFoundError):
    default_message = 'Availability slot not found or already booked'


class NotFoundOrForbiddenError(NotFoundError):
    default_message = 'Appointment not found'
