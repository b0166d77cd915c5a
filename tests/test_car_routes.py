"""Tests for the search, car detail and quote endpoints."""
from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from fleetos_booking.core.errors import UpstreamError
from fleetos_booking.main import app
from fleetos_booking.records import DiscountCodeRecord
from fleetos_booking.services.store import get_store

SEARCH_URL = "/api/v1/organizations/{slug}/cars/search"


def future_dates(days, offset=30):
    pickup = date.today() + timedelta(days=offset)
    return pickup.isoformat(), (pickup + timedelta(days=days)).isoformat()


def search_body(days=3, **overrides):
    pickup, dropoff = future_dates(days)
    body = {
        "pickup_date": pickup,
        "pickup_time": "10:00",
        "pickup_location_id": "loc-port",
        "dropoff_date": dropoff,
        "dropoff_time": "10:00",
        "dropoff_location_id": "loc-airport",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_search_returns_priced_cars(test_client):
    response = await test_client.post(SEARCH_URL.format(slug="acme"), json=search_body())

    assert response.status_code == 200
    data = response.json()
    assert [car["id"] for car in data["cars"]] == ["car-1", "car-2", "car-3"]
    assert data["search_params"]["rental_days"] == 3
    assert data["search_params"]["pickup_time"] == "10:00"

    pricing = data["cars"][0]["pricing"]
    assert pricing == {
        "base_price": 120.0,
        "price_per_day": 40.0,
        "rental_days": 3,
        "location_fees": 35.0,
        "subtotal": 155.0,
        "vat": 37.2,
        "total_price": 192.2,
    }
    assert data["cars"][0]["availability"] == {"is_available": True, "blocked_dates": []}


@pytest.mark.asyncio
async def test_search_filters_by_vehicle_type(test_client):
    response = await test_client.post(
        SEARCH_URL.format(slug="acme"), json=search_body(vehicle_type="moto")
    )

    assert response.status_code == 200
    assert response.json()["cars"] == []


@pytest.mark.asyncio
async def test_search_excludes_blocked_car(test_client, fake_store):
    fake_store.blocked_cars.add("car-1")

    response = await test_client.post(SEARCH_URL.format(slug="acme"), json=search_body())

    assert [car["id"] for car in response.json()["cars"]] == ["car-2", "car-3"]


@pytest.mark.asyncio
async def test_search_missing_location_is_400(test_client):
    body = search_body()
    del body["pickup_location_id"]

    response = await test_client.post(SEARCH_URL.format(slug="acme"), json=body)

    assert response.status_code == 400
    assert "pickup_location_id" in response.json()["error"]


@pytest.mark.asyncio
async def test_search_dropoff_before_pickup_is_400(test_client):
    pickup, _ = future_dates(3)
    response = await test_client.post(
        SEARCH_URL.format(slug="acme"), json=search_body(dropoff_date=pickup)
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Dropoff date must be after pickup date"}


@pytest.mark.asyncio
async def test_search_past_pickup_is_400(test_client):
    pickup = (date.today() - timedelta(days=5)).isoformat()
    dropoff = (date.today() + timedelta(days=5)).isoformat()

    response = await test_client.post(
        SEARCH_URL.format(slug="acme"), json=search_body(pickup_date=pickup, dropoff_date=dropoff)
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_search_unknown_org_is_404(test_client):
    response = await test_client.post(SEARCH_URL.format(slug="nobody"), json=search_body())

    assert response.status_code == 404
    assert response.json() == {"error": "Organization not found or inactive"}


@pytest.mark.asyncio
async def test_search_lapsed_subscription_is_403(test_client):
    response = await test_client.post(SEARCH_URL.format(slug="lapsed"), json=search_body())

    assert response.status_code == 403
    assert response.json() == {"error": "Organization subscription is not active"}


@pytest.mark.asyncio
async def test_search_fleet_failure_is_500(test_client, fake_store):
    fake_store.fleet_error = UpstreamError("Data store failed during list_bookable_cars")

    response = await test_client.post(SEARCH_URL.format(slug="acme"), json=search_body())

    assert response.status_code == 500
    assert response.json() == {"error": "Data store failed during list_bookable_cars"}


@pytest.mark.asyncio
async def test_car_detail_with_breakdown(test_client):
    pickup, dropoff = future_dates(3)

    response = await test_client.get(
        "/api/v1/organizations/acme/cars/car-3",
        params={
            "pickup_date": pickup,
            "dropoff_date": dropoff,
            "insurance_id": "ins-full",
            "extra_id": ["ex-gps", "ex-seat"],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["car"]["id"] == "car-3"
    assert data["car"]["min_age_requirement"] == 23
    assert [extra["id"] for extra in data["extras"]] == ["ex-gps", "ex-seat"]
    assert [ins["id"] for ins in data["insurance_types"]] == ["ins-full"]
    assert data["pricing_breakdown"] == {
        "base_price": 120.0,
        "rental_days": 3,
        "daily_rate": 40.0,
        "location_fees": 0.0,
        "extras_price": 27.0,
        "insurance_price": 30.0,
        "subtotal": 177.0,
        "vat": 42.48,
        "total": 219.48,
    }


@pytest.mark.asyncio
async def test_car_detail_requires_dates(test_client):
    response = await test_client.get("/api/v1/organizations/acme/cars/car-1")

    assert response.status_code == 400
    assert response.json() == {"error": "pickup_date is required"}


@pytest.mark.asyncio
async def test_car_detail_unknown_car_is_404(test_client):
    pickup, dropoff = future_dates(3)

    response = await test_client.get(
        "/api/v1/organizations/acme/cars/car-other",
        params={"pickup_date": pickup, "dropoff_date": dropoff},
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Car not found"}


@pytest.mark.asyncio
async def test_car_detail_only_needs_active_org(test_client):
    pickup, dropoff = future_dates(3)

    response = await test_client.get(
        "/api/v1/organizations/lapsed/cars/car-other",
        params={"pickup_date": pickup, "dropoff_date": dropoff},
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_car_detail_pricing_outage_is_503(test_client, fake_store):
    fake_store.pricing_error_cars.add("car-1")
    pickup, dropoff = future_dates(3)

    response = await test_client.get(
        "/api/v1/organizations/acme/cars/car-1",
        params={"pickup_date": pickup, "dropoff_date": dropoff},
    )

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_quote_with_refused_pricing_connection_is_503(test_client, fake_store):
    async def refused(car_id, category_id, start_date, end_date):
        raise ConnectionRefusedError("db down")

    fake_store.fetch_pricing_rules = refused
    pickup, dropoff = future_dates(3)

    response = await test_client.post(
        "/api/v1/organizations/acme/quote",
        json={"car_id": "car-1", "pickup_date": pickup, "dropoff_date": dropoff},
    )

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_quote_with_everything(test_client, fake_store):
    fake_store.discount_codes[("org-1", "SPRING")] = DiscountCodeRecord(
        id="dc-1", code="SPRING", discount_type="fixed", discount_value=Decimal("20")
    )
    pickup, dropoff = future_dates(3)

    response = await test_client.post(
        "/api/v1/organizations/acme/quote",
        json={
            "car_id": "car-1",
            "pickup_date": pickup,
            "dropoff_date": dropoff,
            "pickup_location_id": "loc-port",
            "dropoff_location_id": "loc-office",
            "selected_extras": [{"extra_id": "ex-gps", "quantity": 1}],
            "selected_insurance_id": "ins-full",
            "discount_code": " spring ",
            "payment_method_id": "pm-card",
        },
    )

    assert response.status_code == 200
    quote = response.json()["quote"]
    # 120 base + 15 pickup + 15 gps + 30 insurance - 20 discount
    assert quote["subtotal"] == 160.0
    assert quote["discount_code"] == "SPRING"
    assert quote["discount_amount"] == 20.0
    assert quote["total"] == 198.4
    assert quote["deposit_amount"] == 59.52
    assert quote["amount_remaining"] == 138.88
    assert quote["currency"] == "EUR"


@pytest.mark.asyncio
async def test_quote_rejects_zero_quantity(test_client):
    pickup, dropoff = future_dates(3)

    response = await test_client.post(
        "/api/v1/organizations/acme/quote",
        json={
            "car_id": "car-1",
            "pickup_date": pickup,
            "dropoff_date": dropoff,
            "selected_extras": [{"extra_id": "ex-gps", "quantity": 0}],
        },
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_quote_lapsed_subscription_is_403(test_client):
    pickup, dropoff = future_dates(3)

    response = await test_client.post(
        "/api/v1/organizations/lapsed/quote",
        json={"car_id": "car-other", "pickup_date": pickup, "dropoff_date": dropoff},
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unexpected_error_is_generic_500(fake_store):
    async def broken(slug):
        raise RuntimeError("boom")

    fake_store.get_organization = broken
    app.dependency_overrides[get_store] = lambda: fake_store
    try:
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.post(SEARCH_URL.format(slug="acme"), json=search_body())
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
