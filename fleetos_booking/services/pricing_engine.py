"""Date-range rate resolution for a car or its category.

Rules are resolved day by day over the half-open interval ``[start, end)``:
each day takes the rate of the highest-priority rule covering it, or the
default rule when none does. At most one length-of-stay discount (monthly or
weekly) from the default rule is applied to the accumulated sum.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ..core.config import settings
from ..core.errors import BookingError
from ..records import PricingRule

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class BasePrice:
    base_price: Decimal
    price_per_day: Decimal


def order_rules(rules: Iterable[PricingRule]) -> list[PricingRule]:
    """Priority descending; equal priorities fall back to the smallest rule id."""
    return sorted(rules, key=lambda rule: (-rule.priority, rule.id))


def _length_of_stay_discount(rule: PricingRule, days: int) -> Decimal:
    """Percent to take off, monthly checked before weekly, never both."""
    if days >= settings.MONTHLY_DISCOUNT_MIN_DAYS and rule.monthly_discount_percent:
        return rule.monthly_discount_percent
    if days >= settings.WEEKLY_DISCOUNT_MIN_DAYS and rule.weekly_discount_percent:
        return rule.weekly_discount_percent
    return Decimal("0")


def resolve_base_price(
    rules: Sequence[PricingRule],
    start_date: date,
    end_date: date,
    default_rate: Optional[Decimal] = None,
) -> BasePrice:
    """Price ``[start_date, end_date)`` against an already-fetched rule set.

    Pure function: the same rules and dates always give the same result,
    whatever order the rules arrive in.
    """
    days = (end_date - start_date).days
    if days <= 0:
        raise ValueError("end_date must be after start_date")

    if not rules:
        rate = settings.DEFAULT_DAILY_RATE if default_rate is None else default_rate
        return BasePrice(base_price=rate * days, price_per_day=rate)

    ordered = order_rules(rules)
    default_rule = ordered[0]

    total = Decimal("0")
    applied_rate = default_rule.price_per_day
    day = start_date
    while day < end_date:
        rule = next((r for r in ordered if r.covers(day)), default_rule)
        applied_rate = rule.price_per_day
        total += applied_rate
        day += timedelta(days=1)

    percent = _length_of_stay_discount(default_rule, days)
    if percent:
        total -= total * percent / HUNDRED

    return BasePrice(base_price=total, price_per_day=applied_rate)


async def compute_price(
    store,
    car_id: Optional[str],
    category_id: Optional[str],
    start_date: date,
    end_date: date,
) -> Optional[BasePrice]:
    """Fetch the overlapping rules and price the interval.

    Returns ``None`` when the rules cannot be read; callers decide whether that
    excludes a car (search) or fails the request (single-car quote).
    """
    try:
        rules = await store.fetch_pricing_rules(car_id, category_id, start_date, end_date)
    except (BookingError, OSError) as exc:
        logger.error(
            "Pricing rules unavailable",
            extra={"car_id": car_id, "category_id": category_id, "error": str(exc)},
        )
        return None
    return resolve_base_price(rules, start_date, end_date)
