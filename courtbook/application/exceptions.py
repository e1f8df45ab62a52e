from __future__ import annotations


class BookingValidationError(ValueError):
    """Raised when a booking draft is missing required fields or holds malformed values."""

    def __init__(self, message: str, field_errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.field_errors = dict(field_errors or {})


class BookingConflictError(RuntimeError):
    """Raised by a booking store when a write collides with an active booking on the same court."""

    def __init__(self, message: str, conflicting_booking_id: str | None = None) -> None:
        super().__init__(message)
        self.conflicting_booking_id = conflicting_booking_id


class BookingStoreUnavailableError(RuntimeError):
    """Raised when the booking store cannot be read or written (I/O, network)."""
    pass


class VenueNotFoundError(LookupError):
    """Raised when a venue id is unknown to the venue catalog."""
    pass
