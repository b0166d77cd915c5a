"""Typed, immutable records produced at the data-store boundary.

Services and routers only ever see these; the store module converts ORM rows
and RPC results into them and fails loudly on unexpected shapes.
"""
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from .core.money import money


@dataclass(frozen=True)
class OrganizationRecord:
    id: str
    slug: str
    subscription_status: str
    is_active: bool = True


@dataclass(frozen=True)
class OrganizationAccess:
    is_valid: bool
    organization_id: Optional[str]
    subscription_status: Optional[str]
    is_active: bool
    error_message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "organization_id": self.organization_id,
            "subscription_status": self.subscription_status,
            "is_active": self.is_active,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class CategoryRecord:
    id: str
    name: str
    name_el: Optional[str] = None
    description: Optional[str] = None
    description_el: Optional[str] = None
    vehicle_type: str = "car"
    seats: Optional[int] = None
    doors: Optional[int] = None
    transmission: Optional[str] = None
    luggage_capacity: Optional[int] = None
    icon_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "name_el": self.name_el,
            "description": self.description,
            "description_el": self.description_el,
            "vehicle_type": self.vehicle_type,
            "seats": self.seats,
            "doors": self.doors,
            "transmission": self.transmission,
            "luggage_capacity": self.luggage_capacity,
            "icon_name": self.icon_name,
        }


@dataclass(frozen=True)
class PhotoRecord:
    id: str
    photo_url: str
    display_order: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "photo_url": self.photo_url, "display_order": self.display_order}


@dataclass(frozen=True)
class CarRecord:
    id: str
    organization_id: str
    make: str
    model: str
    category_id: Optional[str] = None
    year: Optional[int] = None
    license_plate: Optional[str] = None
    color: Optional[str] = None
    main_photo_url: Optional[str] = None
    min_age_requirement: Optional[int] = None
    min_license_years: Optional[int] = None
    category: Optional[CategoryRecord] = None
    photos: tuple[PhotoRecord, ...] = ()

    @property
    def vehicle_type(self) -> Optional[str]:
        return self.category.vehicle_type if self.category else None

    def to_dict(self, *, detail: bool = False) -> dict[str, Any]:
        data = {
            "id": self.id,
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "license_plate": self.license_plate,
            "color": self.color,
            "category": self.category.to_dict() if self.category else None,
            "main_photo_url": self.main_photo_url,
            "photos": [p.to_dict() for p in self.photos],
        }
        if detail:
            data["min_age_requirement"] = self.min_age_requirement
            data["min_license_years"] = self.min_license_years
        return data


@dataclass(frozen=True)
class PricingRule:
    """A priced, inclusive date interval for a car or a car category."""

    id: str
    start_date: date
    end_date: date
    price_per_day: Decimal
    priority: int = 0
    car_id: Optional[str] = None
    category_id: Optional[str] = None
    weekly_discount_percent: Optional[Decimal] = None
    monthly_discount_percent: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if self.start_date > self.end_date:
            raise ValueError(f"Pricing rule {self.id} ends before it starts")
        if self.car_id is None and self.category_id is None:
            raise ValueError(f"Pricing rule {self.id} targets neither a car nor a category")

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class LocationRecord:
    id: str
    name: str
    name_el: Optional[str] = None
    address: Optional[str] = None
    extra_pickup_fee: Decimal = Decimal("0")
    extra_delivery_fee: Decimal = Decimal("0")
    display_order: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "name_el": self.name_el,
            "address": self.address,
            "extra_pickup_fee": money(self.extra_pickup_fee),
            "extra_delivery_fee": money(self.extra_delivery_fee),
            "display_order": self.display_order,
        }


@dataclass(frozen=True)
class ExtraRecord:
    id: str
    name: str
    price_per_day: Decimal
    is_one_time_fee: bool = False
    organization_id: Optional[str] = None
    name_el: Optional[str] = None
    description_el: Optional[str] = None
    icon_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "name_el": self.name_el,
            "description_el": self.description_el,
            "price_per_day": money(self.price_per_day),
            "is_one_time_fee": self.is_one_time_fee,
            "icon_name": self.icon_name,
        }


@dataclass(frozen=True)
class InsuranceRecord:
    id: str
    name: str
    price_per_day: Decimal
    organization_id: Optional[str] = None
    name_el: Optional[str] = None
    description_el: Optional[str] = None
    deductible: Decimal = Decimal("0")
    badge_text: Optional[str] = None
    is_default: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "name_el": self.name_el,
            "description_el": self.description_el,
            "deductible": money(self.deductible),
            "price_per_day": money(self.price_per_day),
            "badge_text": self.badge_text,
            "is_default": self.is_default,
        }


@dataclass(frozen=True)
class PaymentMethodRecord:
    id: str
    name: str
    provider: str
    organization_id: Optional[str] = None
    name_el: Optional[str] = None
    description: Optional[str] = None
    description_el: Optional[str] = None
    logo_url: Optional[str] = None
    display_order: int = 0
    deposit_percentage: Optional[Decimal] = None
    minimum_deposit_amount: Optional[Decimal] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "name_el": self.name_el,
            "description": self.description,
            "description_el": self.description_el,
            "provider": self.provider,
            "is_active": True,
            "display_order": self.display_order,
            "logo_url": self.logo_url,
        }


@dataclass(frozen=True)
class DiscountCodeRecord:
    id: str
    code: str
    discount_type: str
    discount_value: Decimal
    times_used: int = 0
    max_uses: Optional[int] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool = True


@dataclass(frozen=True)
class SelectedExtra:
    extra_id: str
    quantity: int = 1


@dataclass(frozen=True)
class LocationFees:
    pickup_fee: Decimal = Decimal("0")
    dropoff_fee: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.pickup_fee + self.dropoff_fee


@dataclass(frozen=True)
class RentalInterval:
    pickup_date: date
    dropoff_date: date
    pickup_location_id: Optional[str] = None
    dropoff_location_id: Optional[str] = None

    @property
    def rental_days(self) -> int:
        return (self.dropoff_date - self.pickup_date).days
