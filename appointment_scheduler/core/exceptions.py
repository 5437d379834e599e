"""
Scheduling error taxonomy.

Every failure the scheduling core reports to its callers is one of these.
The HTTP layer maps them to a JSON body of the form
``{"error": <title>, "message": <message>}`` with the class's status code.
"""


class SchedulingError(Exception):
    """Base class for caller-visible scheduling failures."""

    status_code = 500
    title = "Scheduling Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(SchedulingError):
    """Missing or malformed fields, dates or working hours."""

    status_code = 400
    title = "Invalid Input"


class NotFound(SchedulingError):
    """A doctor or appointment id does not resolve."""

    status_code = 404
    title = "Not Found"


class Forbidden(SchedulingError):
    """Role or ownership mismatch."""

    status_code = 403
    title = "Forbidden"


class Conflict(SchedulingError):
    status_code = 409
    title = "Conflict"


class SlotConflict(Conflict):
    """The (doctor, date, time slot) tuple already has an approved appointment."""


class InvalidTransition(Conflict):
    """The requested status change is not part of the appointment state machine."""


class Unavailable(SchedulingError):
    """Persistence failure. The message never carries internal detail."""

    status_code = 503
    title = "Service Unavailable"

    def __init__(self, message: str = "The service is temporarily unavailable. Please try again later."):
        super().__init__(message)


__all__ = [
    "SchedulingError",
    "InvalidInput",
    "NotFound",
    "Forbidden",
    "Conflict",
    "SlotConflict",
    "InvalidTransition",
    "Unavailable",
]
