"""
Error taxonomy of the booking core.

Every error raised by the services derives from ``BookingCoreError`` so the
API layer can map it to a response in one place (see ``app.main``).
"""


class BookingCoreError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message}


class InvalidTransition(BookingCoreError):
    """Attempted status change is not in the transition table.

    ``current_status`` is the status the booking is actually in, which may
    differ from the one the caller last saw when another actor won a race.
    """

    status_code = 409

    def __init__(self, current_status, attempted_status, booking_id=None):
        self.current_status = getattr(current_status, "value", current_status)
        self.attempted_status = getattr(attempted_status, "value", attempted_status)
        self.booking_id = booking_id
        super().__init__(
            f"Invalid status transition from {self.current_status} to {self.attempted_status}"
        )

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "booking_id": self.booking_id,
            "current_status": self.current_status,
            "attempted_status": self.attempted_status,
        }


class NotFound(BookingCoreError):
    status_code = 404


class PaymentTypeMismatch(BookingCoreError):
    status_code = 400


class InvalidBookingRequest(BookingCoreError):
    status_code = 400


class SlotConflict(BookingCoreError):
    status_code = 409


class VenueBindingError(BookingCoreError):
    status_code = 409


class CascadeNotificationFailure(BookingCoreError):
    """Non-fatal: a notification could not be handed to the dispatcher."""

    status_code = 502

    def __init__(self, kind: str, recipient_user_id, cause: Exception | None = None):
        self.kind = kind
        self.recipient_user_id = recipient_user_id
        self.cause = cause
        super().__init__(f"Could not dispatch '{kind}' to user {recipient_user_id}: {cause}")


class SchedulerOverlap(BookingCoreError):
    """A scanner run was triggered while the previous one is still running."""

    status_code = 409
