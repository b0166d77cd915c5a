"""Error taxonomy shared by services and routers.

Every error carries the HTTP status it maps to, so the application-level
exception handler can render ``{"error": message}`` without a lookup table.
"""
from dataclasses import dataclass


@dataclass(eq=False)
class BookingError(Exception):
    status_code: int
    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


class InputError(BookingError):
    """Missing or invalid request parameters (dates, locations)."""

    def __init__(self, message: str = "Invalid request parameters") -> None:
        super().__init__(status_code=400, message=message)


class ForbiddenError(BookingError):
    """Organization exists but may not take bookings."""

    def __init__(self, message: str = "Organization subscription is not active") -> None:
        super().__init__(status_code=403, message=message)


class NotFoundError(BookingError):
    """Organization, car or related record absent."""

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(status_code=404, message=message)


class PricingUnavailable(BookingError):
    """Pricing rules could not be read for a single-car quote."""

    def __init__(self, message: str = "Pricing is currently unavailable for this car") -> None:
        super().__init__(status_code=503, message=message)


class UpstreamError(BookingError):
    """The data store failed, timed out or returned an unexpected shape."""

    def __init__(self, message: str = "Data store unavailable") -> None:
        super().__init__(status_code=500, message=message)
