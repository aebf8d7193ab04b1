"""
Application-specific exceptions raised by the scheduling services.

Each carries the error code and HTTP status the API layer renders, so routes
never translate them by hand.
"""


class SchedulingError(Exception):
    """Base class for every domain failure surfaced to callers."""

    error_code = "SCHEDULING_ERROR"
    status_code = 400

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error_code": self.error_code,
            "message": self.message,
            "field": self.field,
        }


class InvalidRequest(SchedulingError):
    """Malformed input: missing fields, empty slot-ID set, bad numbers."""

    error_code = "INVALID_REQUEST"


class InvalidTimeFormat(InvalidRequest):
    """A wall-clock string did not match HH:mm."""

    error_code = "INVALID_TIME_FORMAT"


class InvalidPeriod(SchedulingError):
    """Generator window ends at or before its start."""

    error_code = "INVALID_PERIOD"


class NoMatchingSlots(SchedulingError):
    error_code = "NO_MATCHING_SLOTS"
    status_code = 404


class ProviderNotFound(SchedulingError):
    error_code = "PROVIDER_NOT_FOUND"
    status_code = 404


class AppointmentNotFound(SchedulingError):
    """Appointment missing or soft-deleted."""

    error_code = "APPOINTMENT_NOT_FOUND"
    status_code = 404


class SlotNotAvailable(SchedulingError):
    """Slot missing, owned by another provider, or already claimed."""

    error_code = "SLOT_NOT_AVAILABLE"
    status_code = 409


class PastDateSlot(SchedulingError):
    error_code = "PAST_DATE_SLOT"


class PastTimeSlot(SchedulingError):
    error_code = "PAST_TIME_SLOT"


class TransactionAborted(SchedulingError):
    """The store transaction failed and was rolled back."""

    error_code = "TRANSACTION_ABORTED"
    status_code = 500
