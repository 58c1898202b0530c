"""Error taxonomy shared by the scheduling services.

Each error carries a human readable message that is surfaced to the caller
unchanged. The HTTP layer maps the classes onto status codes.
"""


class SchedulingError(Exception):
    """Base class for every error raised by the scheduling engine."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Bad input shape, a past date, or a malformed availability window."""

    status_code = 400


class NotFoundError(SchedulingError):
    """The apartment or appointment does not exist."""

    status_code = 404


class UnauthorizedError(SchedulingError):
    """The acting user is not allowed to perform the action."""

    status_code = 403


class ConflictError(SchedulingError):
    """The requested slot is already held by an active appointment."""

    status_code = 409
