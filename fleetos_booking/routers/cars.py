"""Public car search, detail and quote endpoints for one organization."""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.errors import NotFoundError
from ..core.validators import validate_rental_interval
from ..models import QuoteRequest, SearchRequest
from ..records import RentalInterval, SelectedExtra
from ..services.booking_quote import build_booking_quote
from ..services.organization_service import get_active_organization, get_bookable_organization
from ..services.search_service import search_available_cars
from ..services.store import SqlBookingStore, get_store

router = APIRouter()
logger = logging.getLogger(__name__)


async def _get_car(store: SqlBookingStore, organization_id: str, car_id: str):
    car = await store.get_car(organization_id, car_id)
    if car is None:
        raise NotFoundError("Car not found")
    return car


@router.post("/cars/search")
async def search_cars(
    slug: str,
    request: SearchRequest,
    store: SqlBookingStore = Depends(get_store),
):
    """Available cars for the requested dates, each with a priced quote."""
    org = await get_bookable_organization(store, slug)
    pickup, dropoff, days = validate_rental_interval(request.pickup_date, request.dropoff_date)
    interval = RentalInterval(
        pickup_date=pickup,
        dropoff_date=dropoff,
        pickup_location_id=request.pickup_location_id,
        dropoff_location_id=request.dropoff_location_id,
    )

    vehicle_type = request.vehicle_type.value if request.vehicle_type else None
    results = await search_available_cars(store, org.id, interval, vehicle_type=vehicle_type)

    return {
        "cars": [result.to_dict() for result in results],
        "search_params": {
            "pickup_date": request.pickup_date,
            "pickup_time": request.pickup_time,
            "pickup_location_id": request.pickup_location_id,
            "dropoff_date": request.dropoff_date,
            "dropoff_time": request.dropoff_time,
            "dropoff_location_id": request.dropoff_location_id,
            "vehicle_type": vehicle_type,
            "rental_days": days,
        },
    }


@router.get("/cars/{car_id}")
async def get_car_details(
    slug: str,
    car_id: str,
    pickup_date: Optional[str] = Query(None),
    dropoff_date: Optional[str] = Query(None),
    pickup_location_id: Optional[str] = Query(None),
    dropoff_location_id: Optional[str] = Query(None),
    insurance_id: Optional[str] = Query(None),
    extra_id: list[str] = Query([]),
    store: SqlBookingStore = Depends(get_store),
):
    """Car details with extras, insurance options and a pricing breakdown."""
    pickup, dropoff, _ = validate_rental_interval(pickup_date, dropoff_date)
    org = await get_active_organization(store, slug)
    car = await _get_car(store, org.id, car_id)

    interval = RentalInterval(
        pickup_date=pickup,
        dropoff_date=dropoff,
        pickup_location_id=pickup_location_id,
        dropoff_location_id=dropoff_location_id,
    )
    quote, extras, insurance_types = await asyncio.gather(
        build_booking_quote(
            store,
            org.id,
            car,
            interval,
            selected_extras=[SelectedExtra(extra_id=e) for e in extra_id],
            insurance_id=insurance_id,
        ),
        store.list_extras(org.id),
        store.list_insurance_types(org.id),
    )

    return {
        "car": car.to_dict(detail=True),
        "extras": [extra.to_dict() for extra in extras],
        "insurance_types": [insurance.to_dict() for insurance in insurance_types],
        "pricing_breakdown": quote.to_breakdown_dict(),
    }


@router.post("/quote")
async def quote_booking(
    slug: str,
    request: QuoteRequest,
    store: SqlBookingStore = Depends(get_store),
):
    """Full price for one car with extras, insurance, discount and deposit."""
    org = await get_bookable_organization(store, slug)
    pickup, dropoff, _ = validate_rental_interval(request.pickup_date, request.dropoff_date)
    car = await _get_car(store, org.id, request.car_id)

    interval = RentalInterval(
        pickup_date=pickup,
        dropoff_date=dropoff,
        pickup_location_id=request.pickup_location_id,
        dropoff_location_id=request.dropoff_location_id,
    )
    quote = await build_booking_quote(
        store,
        org.id,
        car,
        interval,
        selected_extras=[extra.to_record() for extra in request.selected_extras],
        insurance_id=request.selected_insurance_id,
        discount_code=request.discount_code,
        payment_method_id=request.payment_method_id,
    )
    logger.info(
        "Quote computed",
        extra={"slug": slug, "car_id": car.id, "rental_days": quote.rental_days},
    )
    return {"quote": {"car_id": car.id, **quote.to_dict()}}
