"""Booking engine error taxonomy.

Routes map these onto HTTP status codes; messages on PersistenceError are
deliberately generic because they are shown to the guest.
"""


class BookingError(Exception):
    """Base class for booking engine failures."""

    pass


class Unauthorized(BookingError):
    """No live session, or the target record is not the caller's."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ValidationError(BookingError):
    """Malformed numeric, date or string input."""

    pass


class PersistenceError(BookingError):
    """The storage call failed. Carries a message safe to show to clients."""

    pass


class NotFound(BookingError):
    """Cabin or other resource does not exist."""

    pass


class BookingConflict(BookingError):
    """The requested dates overlap an existing booking of the cabin."""

    def __init__(self, cabin_id: str, message: str = "Those dates are no longer available") -> None:
        self.cabin_id = cabin_id
        super().__init__(message)
