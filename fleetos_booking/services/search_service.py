"""Fleet search: availability, pricing and fees for every candidate car."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..core.config import settings
from ..records import CarRecord, RentalInterval
from .fee_composer import PriceQuote, compose_quote
from .pricing_engine import compute_price

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    car: CarRecord
    quote: PriceQuote

    def to_dict(self) -> dict[str, Any]:
        data = self.car.to_dict()
        data["pricing"] = self.quote.to_search_dict()
        data["availability"] = {"is_available": True, "blocked_dates": []}
        return data


async def _evaluate_car(store, car: CarRecord, interval: RentalInterval) -> Optional[SearchResult]:
    """One car through the pipeline; ``None`` means exclude it."""
    available = await store.is_car_available(car.id, interval.pickup_date, interval.dropoff_date)
    if not available:
        logger.debug("Car excluded: unavailable", extra={"car_id": car.id})
        return None

    base = await compute_price(store, car.id, car.category_id, interval.pickup_date, interval.dropoff_date)
    if base is None:
        logger.debug("Car excluded: no pricing", extra={"car_id": car.id})
        return None

    quote = await compose_quote(
        store,
        base,
        interval.rental_days,
        interval.pickup_location_id,
        interval.dropoff_location_id,
    )
    return SearchResult(car=car, quote=quote)


async def search_available_cars(
    store,
    organization_id: str,
    interval: RentalInterval,
    vehicle_type: Optional[str] = None,
    concurrency: Optional[int] = None,
) -> list[SearchResult]:
    """Priced, available cars of an organization, in fleet order.

    Fleet lookup failures propagate. Any error while evaluating a single car
    only removes that car from the results.
    """
    cars = await store.list_bookable_cars(organization_id)
    if vehicle_type:
        wanted = vehicle_type.lower()
        cars = [car for car in cars if car.vehicle_type == wanted]

    semaphore = asyncio.Semaphore(concurrency or settings.SEARCH_CONCURRENCY)

    async def guarded(car: CarRecord) -> Optional[SearchResult]:
        async with semaphore:
            try:
                return await _evaluate_car(store, car, interval)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning(
                    "Car excluded: evaluation failed",
                    extra={"car_id": car.id, "error": str(exc)},
                )
                return None

    # gather keeps input order regardless of completion order
    outcomes = await asyncio.gather(*(guarded(car) for car in cars))
    results = [outcome for outcome in outcomes if outcome is not None]

    logger.info(
        "Fleet search completed",
        extra={
            "organization_id": organization_id,
            "candidates": len(cars),
            "included": len(results),
            "rental_days": interval.rental_days,
        },
    )
    return results
