"""
Domain-specific exception hierarchy for the bookingslots application.
"""


class BookingSlotsError(Exception):
    """Base class for all application-level errors."""


class InvalidRange(BookingSlotsError, ValueError):
    """Raised when a requested date range is malformed or reversed."""


class InvalidConfig(BookingSlotsError, ValueError):
    """Raised when a business-hours configuration violates its invariants."""


class StoreUnavailable(BookingSlotsError):
    """Raised when appointment data cannot be fetched from or written to the store."""


class SlotUnavailable(BookingSlotsError):
    """Raised when a booking is refused for the requested date and time."""

    def __init__(self, decision):
        self.decision = decision
        super().__init__(
            f"Cannot book {decision.date.isoformat()} {decision.time}: {decision.reason.value}"
        )
