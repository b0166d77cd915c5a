"""Location surcharges and VAT on top of an engine base price."""
import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from ..core.config import settings
from ..core.money import money
from ..records import LocationFees
from .pricing_engine import BasePrice


@dataclass(frozen=True)
class PriceQuote:
    base_price: Decimal
    price_per_day: Decimal
    rental_days: int
    location_fees: Decimal
    subtotal: Decimal
    vat: Decimal
    total: Decimal

    def to_search_dict(self) -> dict[str, Any]:
        return {
            "base_price": money(self.base_price),
            "price_per_day": money(self.price_per_day),
            "rental_days": self.rental_days,
            "location_fees": money(self.location_fees),
            "subtotal": money(self.subtotal),
            "vat": money(self.vat),
            "total_price": money(self.total),
        }


def build_quote(
    base: BasePrice,
    rental_days: int,
    fees: LocationFees,
    vat_rate: Optional[Decimal] = None,
) -> PriceQuote:
    rate = settings.VAT_RATE if vat_rate is None else vat_rate
    location_fees = fees.total
    subtotal = base.base_price + location_fees
    vat = subtotal * rate
    return PriceQuote(
        base_price=base.base_price,
        price_per_day=base.price_per_day,
        rental_days=rental_days,
        location_fees=location_fees,
        subtotal=subtotal,
        vat=vat,
        total=subtotal + vat,
    )


async def fetch_location_fees(
    store,
    pickup_location_id: Optional[str],
    dropoff_location_id: Optional[str],
) -> LocationFees:
    """Pickup and dropoff surcharges, looked up concurrently."""
    pickup_fee, dropoff_fee = await asyncio.gather(
        store.fetch_location_fee(pickup_location_id, "pickup"),
        store.fetch_location_fee(dropoff_location_id, "dropoff"),
    )
    return LocationFees(pickup_fee=pickup_fee, dropoff_fee=dropoff_fee)


async def compose_quote(
    store,
    base: BasePrice,
    rental_days: int,
    pickup_location_id: Optional[str],
    dropoff_location_id: Optional[str],
) -> PriceQuote:
    fees = await fetch_location_fees(store, pickup_location_id, dropoff_location_id)
    return build_quote(base, rental_days, fees)
