class SchedulingError(Exception):
    """Base class for errors raised by the booking and auto-response services."""


class InvalidInputError(SchedulingError):
    """Raised when a date, time or duration cannot be understood."""


class NotFoundError(SchedulingError):
    """Raised when the targeted record does not exist for the caller."""


class ConflictError(SchedulingError):
    """Raised when a write would break a booking or default-template invariant."""
