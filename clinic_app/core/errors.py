# clinic_app/core/errors.py
from enum import Enum


class ErrorKind(str, Enum):
    AUTHENTICATION_REQUIRED = "authentication_required"
    AUTHORIZATION_DENIED = "authorization_denied"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    SLOT_UNAVAILABLE = "slot_unavailable"
    VALIDATION_ERROR = "validation_error"
    DATA_ACCESS_ERROR = "data_access_error"
    UNEXPECTED = "unexpected"


# HTTP status used by the API layer for each kind
HTTP_STATUS_BY_KIND = {
    ErrorKind.AUTHENTICATION_REQUIRED: 401,
    ErrorKind.AUTHORIZATION_DENIED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.SLOT_UNAVAILABLE: 409,
    ErrorKind.VALIDATION_ERROR: 422,
    ErrorKind.DATA_ACCESS_ERROR: 503,
    ErrorKind.UNEXPECTED: 500,
}


class BookingError(Exception):
    """Base class for failures raised inside the scheduling core."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationRequired(BookingError):
    kind = ErrorKind.AUTHENTICATION_REQUIRED

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class AuthorizationDenied(BookingError):
    kind = ErrorKind.AUTHORIZATION_DENIED


class NotFound(BookingError):
    kind = ErrorKind.NOT_FOUND


class InvalidTransition(BookingError):
    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, current: str, target: str, message: str = None):
        super().__init__(message or f"Cannot change status from {current} to {target}")
        self.current = current
        self.target = target


class SlotUnavailable(BookingError):
    kind = ErrorKind.SLOT_UNAVAILABLE


class ValidationFailed(BookingError):
    kind = ErrorKind.VALIDATION_ERROR