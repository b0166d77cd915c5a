"""Business logic validators for rental intervals."""
import logging
import math
from datetime import date, datetime, timedelta

import pytz

from .config import settings
from .errors import InputError

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def parse_iso_date(value: str | date | None, field_name: str) -> date:
    """Parse a ``YYYY-MM-DD`` calendar date.

    Values with a time component (``2026-05-01T10:00``) are cut down to the
    date part, the way the booking widgets send them. Rental days are then
    counted on calendar dates, so a time suffix never adds a partial day:
    10:00 on the 3rd to 12:00 on the 4th is one day.

    Raises:
        InputError: If the value is missing or not a calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise InputError(f"{field_name} is required")
    base = value.split("T", 1)[0].strip()
    try:
        return date.fromisoformat(base)
    except ValueError:
        raise InputError(f"{field_name} must be a date in YYYY-MM-DD format")


def rental_days(pickup: date | datetime, dropoff: date | datetime) -> int:
    """Whole days between pickup and dropoff, partial days rounded up."""
    if isinstance(pickup, datetime) or isinstance(dropoff, datetime):
        if not isinstance(pickup, datetime):
            pickup = datetime.combine(pickup, datetime.min.time())
        if not isinstance(dropoff, datetime):
            dropoff = datetime.combine(dropoff, datetime.min.time())
    return math.ceil((dropoff - pickup) / ONE_DAY)


def property_today() -> date:
    """Current calendar date at the rental property."""
    property_tz = pytz.timezone(settings.PROPERTY_TIMEZONE)
    return datetime.now(property_tz).date()


def validate_pickup_not_past(pickup_date: date, today: date | None = None) -> date:
    """Validate that pickup date is not in the past (property timezone-aware).

    Uses the property's local timezone so a customer booking "today" at
    00:30 Athens time is not rejected because the server clock is still on
    the previous UTC day.

    Raises:
        InputError: If date is in the past
    """
    today_property = today or property_today()
    if pickup_date < today_property:
        logger.warning(
            "Pickup date validation failed - date in past",
            extra={
                "pickup_date": pickup_date.isoformat(),
                "today_property": today_property.isoformat(),
                "timezone": settings.PROPERTY_TIMEZONE
            }
        )
        raise InputError(
            f"Pickup date cannot be in the past. "
            f"Today ({settings.PROPERTY_TIMEZONE}): {today_property}, Provided: {pickup_date}"
        )
    return pickup_date


def validate_rental_interval(
    pickup_value: str | date | None,
    dropoff_value: str | date | None,
    today: date | None = None,
) -> tuple[date, date, int]:
    """Parse and check a pickup/dropoff pair.

    Returns:
        tuple: (pickup_date, dropoff_date, rental_days)

    Raises:
        InputError: On missing/malformed dates, dropoff not after pickup,
            or a pickup in the past when ``REJECT_PAST_PICKUP`` is on
    """
    pickup = parse_iso_date(pickup_value, "pickup_date")
    dropoff = parse_iso_date(dropoff_value, "dropoff_date")
    days = rental_days(pickup, dropoff)
    if days <= 0:
        raise InputError("Dropoff date must be after pickup date")
    if settings.REJECT_PAST_PICKUP:
        validate_pickup_not_past(pickup, today)
    return pickup, dropoff, days
