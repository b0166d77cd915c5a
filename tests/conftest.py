"""Pytest fixtures: an in-memory store and an HTTP client wired to it."""
from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fleetos_booking.core.errors import UpstreamError
from fleetos_booking.main import app
from fleetos_booking.records import (
    CarRecord,
    CategoryRecord,
    ExtraRecord,
    InsuranceRecord,
    LocationRecord,
    OrganizationAccess,
    OrganizationRecord,
    PaymentMethodRecord,
    PhotoRecord,
    PricingRule,
)
from fleetos_booking.services.store import get_store


class FakeStore:
    """Same surface as ``SqlBookingStore``, backed by plain collections."""

    def __init__(self):
        self.organizations: dict[str, OrganizationRecord] = {}
        self.access: dict[str, OrganizationAccess] = {}
        self.cars: list[CarRecord] = []
        self.rules: list[PricingRule] = []
        self.blocked_cars: set[str] = set()
        self.availability_errors: set[str] = set()
        self.pricing_error_cars: set[str] = set()
        self.locations: list[LocationRecord] = []
        self.extras: list[ExtraRecord] = []
        self.insurance_types: list[InsuranceRecord] = []
        self.payment_methods: list[PaymentMethodRecord] = []
        self.discount_codes: dict[tuple[str, str], object] = {}
        self.fleet_error: Exception | None = None
        self.availability_calls: list[str] = []

    async def get_organization(self, slug):
        return self.organizations.get(slug)

    async def validate_organization_access(self, slug):
        return self.access.get(slug)

    async def list_bookable_cars(self, organization_id):
        if self.fleet_error is not None:
            raise self.fleet_error
        return [car for car in self.cars if car.organization_id == organization_id]

    async def get_car(self, organization_id, car_id):
        for car in self.cars:
            if car.id == car_id and car.organization_id == organization_id:
                return car
        return None

    async def fetch_pricing_rules(self, car_id, category_id, start_date, end_date):
        if car_id in self.pricing_error_cars:
            raise UpstreamError("Data store timed out during fetch_pricing_rules")
        matching = [
            rule for rule in self.rules
            if ((car_id and rule.car_id == car_id) or (category_id and rule.category_id == category_id))
            and rule.start_date <= end_date
            and rule.end_date >= start_date
        ]
        return sorted(matching, key=lambda rule: -rule.priority)

    async def is_car_available(self, car_id, start_date, end_date):
        self.availability_calls.append(car_id)
        if car_id in self.availability_errors:
            raise UpstreamError("Data store failed during is_car_available")
        return car_id not in self.blocked_cars

    async def fetch_location_fee(self, location_id, kind):
        for location in self.locations:
            if location.id == location_id:
                return location.extra_pickup_fee if kind == "pickup" else location.extra_delivery_fee
        return Decimal("0")

    async def list_locations(self, organization_id):
        return sorted(self.locations, key=lambda location: location.display_order)

    async def list_extras(self, organization_id):
        return [extra for extra in self.extras if extra.organization_id == organization_id]

    async def get_extras(self, organization_id, extra_ids):
        return {
            extra.id: extra
            for extra in self.extras
            if extra.id in extra_ids and extra.organization_id == organization_id
        }

    async def list_insurance_types(self, organization_id):
        return [i for i in self.insurance_types if i.organization_id == organization_id]

    async def get_insurance_type(self, organization_id, insurance_id):
        for insurance in self.insurance_types:
            if insurance.id == insurance_id and insurance.organization_id == organization_id:
                return insurance
        return None

    async def list_payment_methods(self, organization_id):
        return [
            method for method in self.payment_methods
            if method.organization_id == organization_id and method.provider != "cash"
        ]

    async def get_payment_method(self, organization_id, payment_method_id):
        for method in self.payment_methods:
            if method.id == payment_method_id and method.organization_id == organization_id:
                return method
        return None

    async def get_discount_code(self, organization_id, code):
        return self.discount_codes.get((organization_id, code.upper()))


ECONOMY = CategoryRecord(id="cat-economy", name="Economy", vehicle_type="car", seats=5, transmission="manual")
QUAD = CategoryRecord(id="cat-quad", name="Quad", vehicle_type="atv", seats=2)


@pytest.fixture
def fake_store() -> FakeStore:
    """A tenant with three cars, one category-wide rate and three locations."""
    store = FakeStore()
    store.organizations["acme"] = OrganizationRecord(id="org-1", slug="acme", subscription_status="trial")
    store.organizations["lapsed"] = OrganizationRecord(id="org-2", slug="lapsed", subscription_status="past_due")
    store.access["acme"] = OrganizationAccess(
        is_valid=True, organization_id="org-1", subscription_status="trial", is_active=True
    )
    store.cars = [
        CarRecord(
            id="car-1", organization_id="org-1", make="Fiat", model="Panda", year=2022,
            category_id=ECONOMY.id, category=ECONOMY,
            photos=(PhotoRecord(id="ph-1", photo_url="https://cdn.example/panda.jpg"),),
        ),
        CarRecord(
            id="car-2", organization_id="org-1", make="CFMoto", model="CForce 450",
            category_id=QUAD.id, category=QUAD,
        ),
        CarRecord(
            id="car-3", organization_id="org-1", make="Toyota", model="Yaris", year=2023,
            category_id=ECONOMY.id, category=ECONOMY, min_age_requirement=23,
        ),
        CarRecord(id="car-other", organization_id="org-2", make="Seat", model="Ibiza"),
    ]
    today = date.today()
    store.rules = [
        PricingRule(
            id="rule-economy", category_id=ECONOMY.id,
            start_date=today - timedelta(days=365), end_date=today + timedelta(days=365),
            price_per_day=Decimal("40"), weekly_discount_percent=Decimal("10"),
        ),
    ]
    store.locations = [
        LocationRecord(id="loc-port", name="Port", extra_pickup_fee=Decimal("15"), display_order=2),
        LocationRecord(id="loc-office", name="Office", display_order=1),
        LocationRecord(id="loc-airport", name="Airport", extra_delivery_fee=Decimal("20"), display_order=3),
    ]
    store.extras = [
        ExtraRecord(id="ex-gps", organization_id="org-1", name="GPS", price_per_day=Decimal("5")),
        ExtraRecord(
            id="ex-seat", organization_id="org-1", name="Child seat",
            price_per_day=Decimal("12"), is_one_time_fee=True,
        ),
        ExtraRecord(id="ex-foreign", organization_id="org-2", name="Roof box", price_per_day=Decimal("9")),
    ]
    store.insurance_types = [
        InsuranceRecord(
            id="ins-full", organization_id="org-1", name="Full cover",
            price_per_day=Decimal("10"), deductible=Decimal("0"),
        ),
    ]
    store.payment_methods = [
        PaymentMethodRecord(
            id="pm-card", organization_id="org-1", name="Card", provider="stripe",
            deposit_percentage=Decimal("30"), minimum_deposit_amount=Decimal("50"),
        ),
        PaymentMethodRecord(id="pm-cash", organization_id="org-1", name="Cash", provider="cash"),
    ]
    return store


@pytest_asyncio.fixture
async def test_client(fake_store: FakeStore) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the store dependency overridden."""
    app.dependency_overrides[get_store] = lambda: fake_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
