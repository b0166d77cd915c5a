"""Pydantic models for request validation."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .records import SelectedExtra


class VehicleType(str, Enum):
    """Vehicle types a car category can be tagged with."""

    CAR = "car"
    ATV = "atv"
    MOTO = "moto"


class SearchRequest(BaseModel):  # pylint: disable=too-few-public-methods
    """Request model for searching the bookable fleet.

    Dates stay strings here; the rental-interval validator parses them so a
    bad date gives the same 400 message on every endpoint.
    """

    pickup_date: str = Field(..., min_length=1, description="Pickup date in YYYY-MM-DD format")
    pickup_time: Optional[str] = Field(default=None, description="Pickup time, echoed back")
    pickup_location_id: str = Field(..., min_length=1, description="Pickup location id")
    dropoff_date: str = Field(..., min_length=1, description="Dropoff date in YYYY-MM-DD format")
    dropoff_time: Optional[str] = Field(default=None, description="Dropoff time, echoed back")
    dropoff_location_id: str = Field(..., min_length=1, description="Dropoff location id")
    vehicle_type: Optional[VehicleType] = Field(default=None, description="Restrict to one vehicle type")

    @field_validator("vehicle_type", mode="before")
    @classmethod
    def normalize_vehicle_type(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v


class SelectedExtraIn(BaseModel):  # pylint: disable=too-few-public-methods
    extra_id: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)

    def to_record(self) -> SelectedExtra:
        return SelectedExtra(extra_id=self.extra_id, quantity=self.quantity)


class QuoteRequest(BaseModel):  # pylint: disable=too-few-public-methods
    """Request model for a full booking quote on one car."""

    car_id: str = Field(..., min_length=1, description="Car to quote")
    pickup_date: str = Field(..., min_length=1, description="Pickup date in YYYY-MM-DD format")
    dropoff_date: str = Field(..., min_length=1, description="Dropoff date in YYYY-MM-DD format")
    pickup_location_id: Optional[str] = None
    dropoff_location_id: Optional[str] = None
    selected_extras: list[SelectedExtraIn] = Field(default_factory=list)
    selected_insurance_id: Optional[str] = None
    discount_code: Optional[str] = Field(default=None, max_length=64)
    payment_method_id: Optional[str] = None

    @field_validator("discount_code")
    @classmethod
    def normalize_discount_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        return v or None
