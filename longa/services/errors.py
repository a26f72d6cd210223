"""
Service-layer exceptions. Routers translate these into HTTP errors.

ValidationFailed and InvalidTransition are raised before any store write.
StoreWriteFailed wraps a database error after the session was rolled back.
"""


class LongaError(Exception):
    """Base class for all domain errors."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(LongaError):
    """A required field is missing or malformed."""
    status_code = 400


class NotFound(LongaError):
    status_code = 404


class PermissionDenied(LongaError):
    """The acting user may not perform this action on this record."""
    status_code = 403


class InvalidTransition(LongaError):
    """The requested status action is not allowed from the current status."""
    status_code = 409

    def __init__(self, action: str, current_status: str):
        super().__init__(f"Cannot {action.replace('_', ' ')} a booking that is {current_status}")
        self.action = action
        self.current_status = current_status


class StoreWriteFailed(LongaError):
    """The database rejected the write. Nothing was applied."""
    status_code = 500
