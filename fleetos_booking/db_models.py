# pylint: disable=not-callable
"""ORM models for the tables the booking API reads.

The dashboard owns writes to all of these; this service only queries them.
Rows never leave the store module as ORM objects, see ``records.py``.
"""
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .core.database import Base


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String, primary_key=True, index=True)
    slug = Column(String, unique=True, index=True, nullable=False)
    company_name = Column(String, nullable=False)
    subscription_status = Column(String, default="trial")  # trial | active | past_due | cancelled
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CarCategory(Base):
    __tablename__ = "car_categories"

    id = Column(String, primary_key=True, index=True)
    organization_id = Column(String, ForeignKey("organizations.id"), index=True)
    name = Column(String, nullable=False)
    name_el = Column(String)
    description = Column(Text)
    description_el = Column(Text)
    vehicle_type = Column(String, default="car")  # car | atv | moto
    seats = Column(Integer)
    doors = Column(Integer)
    transmission = Column(String)  # manual | automatic | both
    luggage_capacity = Column(Integer)
    icon_name = Column(String)
    is_active = Column(Boolean, default=True)
    display_order = Column(Integer, default=0)


class CarPhoto(Base):
    __tablename__ = "car_photos"

    id = Column(String, primary_key=True, index=True)
    car_id = Column(String, ForeignKey("booking_cars.id"), index=True)
    photo_url = Column(String, nullable=False)
    display_order = Column(Integer, default=0)


class BookingCar(Base):
    __tablename__ = "booking_cars"

    id = Column(String, primary_key=True, index=True)
    organization_id = Column(String, ForeignKey("organizations.id"), index=True)
    category_id = Column(String, ForeignKey("car_categories.id"), index=True, nullable=True)
    make = Column(String, nullable=False)
    model = Column(String, nullable=False)
    year = Column(Integer)
    license_plate = Column(String)
    color = Column(String)
    main_photo_url = Column(String)
    is_featured = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    is_available_for_booking = Column(Boolean, default=True)
    min_age_requirement = Column(Integer, default=21)
    min_license_years = Column(Integer, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # async sessions cannot lazy-load; queries must selectinload these
    category = relationship(CarCategory, lazy="raise")
    photos = relationship(CarPhoto, order_by=CarPhoto.display_order, lazy="raise")


class CarPricing(Base):
    __tablename__ = "car_pricing"

    id = Column(String, primary_key=True, index=True)
    car_id = Column(String, ForeignKey("booking_cars.id"), index=True, nullable=True)
    category_id = Column(String, ForeignKey("car_categories.id"), index=True, nullable=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    price_per_day = Column(Numeric(10, 2), nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    weekly_discount_percent = Column(Numeric(5, 2), nullable=True)
    monthly_discount_percent = Column(Numeric(5, 2), nullable=True)


class CarAvailability(Base):
    __tablename__ = "car_availability"

    id = Column(Integer, primary_key=True, index=True)
    car_id = Column(String, ForeignKey("booking_cars.id"), index=True)
    blocked_from = Column(Date, nullable=False)
    blocked_until = Column(Date, nullable=False)
    reason = Column(String, default="booked")  # booked | maintenance | manual
    booking_id = Column(String, nullable=True)


class Location(Base):
    __tablename__ = "locations"

    id = Column(String, primary_key=True, index=True)
    organization_id = Column(String, ForeignKey("organizations.id"), index=True)
    name = Column(String, nullable=False)
    name_el = Column(String)
    address = Column(String)
    extra_pickup_fee = Column(Numeric(10, 2), default=0)
    extra_delivery_fee = Column(Numeric(10, 2), default=0)
    is_active = Column(Boolean, default=True)
    display_order = Column(Integer, default=0)


class ExtraOption(Base):
    __tablename__ = "extra_options"

    id = Column(String, primary_key=True, index=True)
    organization_id = Column(String, ForeignKey("organizations.id"), index=True)
    name = Column(String, nullable=False)
    name_el = Column(String)
    description_el = Column(Text)
    price_per_day = Column(Numeric(10, 2), nullable=False)
    is_one_time_fee = Column(Boolean, default=False)
    icon_name = Column(String)
    is_active = Column(Boolean, default=True)
    display_order = Column(Integer, default=0)


class InsuranceType(Base):
    __tablename__ = "insurance_types"

    id = Column(String, primary_key=True, index=True)
    organization_id = Column(String, ForeignKey("organizations.id"), index=True)
    name = Column(String, nullable=False)
    name_el = Column(String)
    description_el = Column(Text)
    deductible = Column(Numeric(10, 2), default=0)
    price_per_day = Column(Numeric(10, 2), nullable=False)
    badge_text = Column(String)
    is_default = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    display_order = Column(Integer, default=0)


class PaymentMethod(Base):
    __tablename__ = "payment_methods"

    id = Column(String, primary_key=True, index=True)
    organization_id = Column(String, ForeignKey("organizations.id"), index=True)
    name = Column(String, nullable=False)
    name_el = Column(String)
    description = Column(Text)
    description_el = Column(Text)
    provider = Column(String, nullable=False)  # stripe | viva_wallet | cash
    logo_url = Column(String)
    deposit_percentage = Column(Numeric(5, 2), nullable=True)
    minimum_deposit_amount = Column(Numeric(10, 2), nullable=True)
    is_active = Column(Boolean, default=True)
    display_order = Column(Integer, default=0)


class DiscountCode(Base):
    __tablename__ = "discount_codes"

    id = Column(String, primary_key=True, index=True)
    organization_id = Column(String, ForeignKey("organizations.id"), index=True)
    code = Column(String, nullable=False, index=True)  # stored upper-case
    discount_type = Column(String, default="percentage")  # percentage | fixed
    discount_value = Column(Numeric(10, 2), nullable=False)
    valid_from = Column(DateTime(timezone=True), nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    times_used = Column(Integer, default=0)
    max_uses = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True)
