"""Full single-car quote: engine price, location fees, extras, insurance,
discount code and payment deposit.

Quoting is read-only. Discount codes are checked for applicability but
``times_used`` is never touched here; redemption belongs to booking creation.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

import pytz

from ..core.config import settings
from ..core.errors import PricingUnavailable
from ..core.money import ZERO, money
from ..records import (
    CarRecord,
    DiscountCodeRecord,
    ExtraRecord,
    InsuranceRecord,
    PaymentMethodRecord,
    RentalInterval,
    SelectedExtra,
)
from .fee_composer import fetch_location_fees
from .pricing_engine import compute_price

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class BookingQuote:
    base_price: Decimal
    price_per_day: Decimal
    rental_days: int
    location_fees: Decimal
    extras_price: Decimal
    insurance_price: Decimal
    discount_amount: Decimal
    subtotal: Decimal
    vat: Decimal
    total: Decimal
    deposit_amount: Decimal
    amount_remaining: Decimal
    discount_code: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_price": money(self.base_price),
            "price_per_day": money(self.price_per_day),
            "rental_days": self.rental_days,
            "location_fees": money(self.location_fees),
            "extras_price": money(self.extras_price),
            "insurance_price": money(self.insurance_price),
            "discount_code": self.discount_code,
            "discount_amount": money(self.discount_amount),
            "subtotal": money(self.subtotal),
            "vat": money(self.vat),
            "total": money(self.total),
            "deposit_amount": money(self.deposit_amount),
            "amount_remaining": money(self.amount_remaining),
            "currency": settings.CURRENCY,
        }

    def to_breakdown_dict(self) -> dict[str, Any]:
        """Shape used by the car detail endpoint."""
        return {
            "base_price": money(self.base_price),
            "rental_days": self.rental_days,
            "daily_rate": money(self.price_per_day),
            "location_fees": money(self.location_fees),
            "extras_price": money(self.extras_price),
            "insurance_price": money(self.insurance_price),
            "subtotal": money(self.subtotal),
            "vat": money(self.vat),
            "total": money(self.total),
        }


def price_extras(
    extras: Mapping[str, ExtraRecord],
    selected: Sequence[SelectedExtra],
    rental_days: int,
) -> Decimal:
    """Sum selected extras; ids missing from ``extras`` contribute nothing."""
    total = ZERO
    for choice in selected:
        extra = extras.get(choice.extra_id)
        if extra is None:
            continue
        if extra.is_one_time_fee:
            total += extra.price_per_day * choice.quantity
        else:
            total += extra.price_per_day * rental_days * choice.quantity
    return total


def price_insurance(insurance: Optional[InsuranceRecord], rental_days: int) -> Decimal:
    if insurance is None:
        return ZERO
    return insurance.price_per_day * rental_days


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value


def discount_applies(discount: Optional[DiscountCodeRecord], now: datetime) -> bool:
    """Active, inside its validity window and not yet exhausted."""
    if discount is None or not discount.is_active:
        return False
    now = _as_aware(now)
    if discount.valid_from is not None and now < _as_aware(discount.valid_from):
        return False
    if discount.valid_until is not None and now > _as_aware(discount.valid_until):
        return False
    if discount.max_uses is not None and discount.times_used >= discount.max_uses:
        return False
    return True


def discount_value(discount: DiscountCodeRecord, pre_discount_subtotal: Decimal) -> Decimal:
    if discount.discount_type == "percentage":
        return pre_discount_subtotal * discount.discount_value / HUNDRED
    return discount.discount_value


def deposit_for(total: Decimal, payment_method: Optional[PaymentMethodRecord]) -> Decimal:
    """Amount due up front: a percentage of the total, floored by the
    method's minimum, never more than the total."""
    if payment_method is None:
        return total
    deposit = total
    if payment_method.deposit_percentage:
        deposit = total * payment_method.deposit_percentage / HUNDRED
    minimum = payment_method.minimum_deposit_amount
    if minimum and deposit < minimum:
        deposit = minimum
    return min(deposit, total)


async def _maybe(lookup, organization_id: str, key: Optional[str]):
    if not key:
        return None
    return await lookup(organization_id, key)


async def build_booking_quote(
    store,
    organization_id: str,
    car: CarRecord,
    interval: RentalInterval,
    selected_extras: Sequence[SelectedExtra] = (),
    insurance_id: Optional[str] = None,
    discount_code: Optional[str] = None,
    payment_method_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BookingQuote:
    """Price one car for an interval with all optional add-ons.

    Raises:
        PricingUnavailable: If the car's pricing rules cannot be read
    """
    days = interval.rental_days
    extra_ids = [choice.extra_id for choice in selected_extras]

    base, fees, extras, insurance, discount, payment_method = await asyncio.gather(
        compute_price(store, car.id, car.category_id, interval.pickup_date, interval.dropoff_date),
        fetch_location_fees(store, interval.pickup_location_id, interval.dropoff_location_id),
        store.get_extras(organization_id, extra_ids),
        _maybe(store.get_insurance_type, organization_id, insurance_id),
        _maybe(store.get_discount_code, organization_id, discount_code),
        _maybe(store.get_payment_method, organization_id, payment_method_id),
    )
    if base is None:
        raise PricingUnavailable()

    extras_price = price_extras(extras, selected_extras, days)
    insurance_price = price_insurance(insurance, days)
    pre_discount = base.base_price + fees.total + extras_price + insurance_price

    discount_amount = ZERO
    applied_code = None
    if discount_applies(discount, now or datetime.now(pytz.utc)):
        discount_amount = discount_value(discount, pre_discount)
        applied_code = discount.code
    elif discount_code:
        logger.info(
            "Discount code not applicable",
            extra={"organization_id": organization_id, "code": discount_code},
        )

    subtotal = max(ZERO, pre_discount - discount_amount)
    vat = subtotal * settings.VAT_RATE
    total = subtotal + vat
    deposit = deposit_for(total, payment_method)

    return BookingQuote(
        base_price=base.base_price,
        price_per_day=base.price_per_day,
        rental_days=days,
        location_fees=fees.total,
        extras_price=extras_price,
        insurance_price=insurance_price,
        discount_amount=discount_amount,
        subtotal=subtotal,
        vat=vat,
        total=total,
        deposit_amount=deposit,
        amount_remaining=total - deposit,
        discount_code=applied_code,
    )
