"""Data-store boundary: every query and RPC the booking API issues.

A ``SqlBookingStore`` is built per request from the session factory and
handed to the services explicitly. Each call opens its own session so that
concurrent per-car tasks in a search never share one, and each call is bounded
by ``STORE_CALL_TIMEOUT_SECONDS``.
"""
import asyncio
import logging
from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import or_, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from ..core.config import settings
from ..core.database import get_session_factory
from ..core.errors import UpstreamError
from ..core.money import to_decimal
from ..db_models import (
    BookingCar,
    CarPricing,
    DiscountCode,
    ExtraOption,
    InsuranceType,
    Location,
    Organization,
    PaymentMethod,
)
from ..records import (
    CarRecord,
    CategoryRecord,
    DiscountCodeRecord,
    ExtraRecord,
    InsuranceRecord,
    LocationRecord,
    OrganizationAccess,
    OrganizationRecord,
    PaymentMethodRecord,
    PhotoRecord,
    PricingRule,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOCATION_FEE_COLUMNS = {
    "pickup": Location.extra_pickup_fee,
    "dropoff": Location.extra_delivery_fee,
}


def normalize_single(value: Any, what: str) -> Any:
    """Collapse a relation that may arrive as an object or a one-element list.

    ``None`` and empty sequences mean "absent". Anything with more than one
    element is an upstream contract violation.
    """
    if value is None:
        return None
    if isinstance(value, (str, bytes)) or isinstance(value, Mapping):
        return value
    if isinstance(value, Sequence):
        if len(value) == 0:
            return None
        if len(value) == 1:
            return value[0]
        raise UpstreamError(f"Expected a single {what}, got {len(value)}")
    return value


def _category_record(row: Any) -> Optional[CategoryRecord]:
    row = normalize_single(row, "car category")
    if row is None:
        return None
    return CategoryRecord(
        id=row.id,
        name=row.name,
        name_el=row.name_el,
        description=row.description,
        description_el=row.description_el,
        vehicle_type=(row.vehicle_type or "car").lower(),
        seats=row.seats,
        doors=row.doors,
        transmission=row.transmission,
        luggage_capacity=row.luggage_capacity,
        icon_name=row.icon_name,
    )


def _car_record(row: BookingCar) -> CarRecord:
    return CarRecord(
        id=row.id,
        organization_id=row.organization_id,
        category_id=row.category_id,
        make=row.make,
        model=row.model,
        year=row.year,
        license_plate=row.license_plate,
        color=row.color,
        main_photo_url=row.main_photo_url,
        min_age_requirement=row.min_age_requirement,
        min_license_years=row.min_license_years,
        category=_category_record(row.category),
        photos=tuple(
            PhotoRecord(id=p.id, photo_url=p.photo_url, display_order=p.display_order or 0)
            for p in (row.photos or [])
        ),
    )


def _pricing_rule(row: CarPricing) -> PricingRule:
    try:
        return PricingRule(
            id=str(row.id),
            car_id=row.car_id,
            category_id=row.category_id,
            start_date=row.start_date,
            end_date=row.end_date,
            price_per_day=to_decimal(row.price_per_day),
            priority=int(row.priority or 0),
            weekly_discount_percent=(
                to_decimal(row.weekly_discount_percent) if row.weekly_discount_percent is not None else None
            ),
            monthly_discount_percent=(
                to_decimal(row.monthly_discount_percent) if row.monthly_discount_percent is not None else None
            ),
        )
    except ValueError as exc:
        raise UpstreamError(f"Malformed pricing rule: {exc}")


def _extra_record(row: ExtraOption) -> ExtraRecord:
    return ExtraRecord(
        id=row.id,
        organization_id=row.organization_id,
        name=row.name,
        name_el=row.name_el,
        description_el=row.description_el,
        price_per_day=to_decimal(row.price_per_day),
        is_one_time_fee=bool(row.is_one_time_fee),
        icon_name=row.icon_name,
    )


def _insurance_record(row: InsuranceType) -> InsuranceRecord:
    return InsuranceRecord(
        id=row.id,
        organization_id=row.organization_id,
        name=row.name,
        name_el=row.name_el,
        description_el=row.description_el,
        deductible=to_decimal(row.deductible),
        price_per_day=to_decimal(row.price_per_day),
        badge_text=row.badge_text,
        is_default=bool(row.is_default),
    )


def _payment_method_record(row: PaymentMethod) -> PaymentMethodRecord:
    return PaymentMethodRecord(
        id=row.id,
        organization_id=row.organization_id,
        name=row.name,
        name_el=row.name_el,
        description=row.description,
        description_el=row.description_el,
        provider=row.provider,
        logo_url=row.logo_url,
        display_order=row.display_order or 0,
        deposit_percentage=(
            to_decimal(row.deposit_percentage) if row.deposit_percentage is not None else None
        ),
        minimum_deposit_amount=(
            to_decimal(row.minimum_deposit_amount) if row.minimum_deposit_amount is not None else None
        ),
    )


class SqlBookingStore:
    """Query/RPC client over the tenant tables, one session per call."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout_seconds: float,
    ) -> None:
        self._session_factory = session_factory
        self._timeout_seconds = timeout_seconds

    async def _run(self, operation: str, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        try:
            async with self._session_factory() as session:
                return await asyncio.wait_for(fn(session), timeout=self._timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                "Store call timed out",
                extra={"operation": operation, "timeout_seconds": self._timeout_seconds},
            )
            raise UpstreamError(f"Data store timed out during {operation}")
        except (SQLAlchemyError, OSError) as exc:
            # OSError covers refused or dropped connections the driver raises unwrapped
            logger.error("Store call failed", extra={"operation": operation, "error": str(exc)})
            raise UpstreamError(f"Data store failed during {operation}")

    # --- organizations ---

    async def get_organization(self, slug: str) -> Optional[OrganizationRecord]:
        async def query(session: AsyncSession) -> Optional[OrganizationRecord]:
            stmt = select(Organization).where(Organization.slug == slug, Organization.is_active.is_(True))
            result = await session.execute(stmt)
            org = result.scalar_one_or_none()
            if org is None:
                return None
            return OrganizationRecord(
                id=org.id,
                slug=org.slug,
                subscription_status=(org.subscription_status or "").lower(),
                is_active=bool(org.is_active),
            )

        return await self._run("get_organization", query)

    async def validate_organization_access(self, slug: str) -> Optional[OrganizationAccess]:
        async def query(session: AsyncSession) -> Optional[OrganizationAccess]:
            result = await session.execute(
                text("SELECT * FROM validate_organization_access(:p_slug)"),
                {"p_slug": slug},
            )
            row = normalize_single(result.mappings().all(), "organization access row")
            if row is None:
                return None
            return OrganizationAccess(
                is_valid=bool(row["is_valid"]),
                organization_id=row.get("organization_id"),
                subscription_status=row.get("subscription_status"),
                is_active=bool(row.get("is_active")),
                error_message=row.get("error_message"),
            )

        return await self._run("validate_organization_access", query)

    # --- fleet ---

    async def list_bookable_cars(self, organization_id: str) -> list[CarRecord]:
        async def query(session: AsyncSession) -> list[CarRecord]:
            stmt = (
                select(BookingCar)
                .options(selectinload(BookingCar.category), selectinload(BookingCar.photos))
                .where(
                    BookingCar.organization_id == organization_id,
                    BookingCar.is_available_for_booking.is_(True),
                    BookingCar.is_active.is_(True),
                )
                .order_by(BookingCar.make, BookingCar.model, BookingCar.id)
            )
            result = await session.execute(stmt)
            return [_car_record(row) for row in result.scalars().all()]

        return await self._run("list_bookable_cars", query)

    async def get_car(self, organization_id: str, car_id: str) -> Optional[CarRecord]:
        async def query(session: AsyncSession) -> Optional[CarRecord]:
            stmt = (
                select(BookingCar)
                .options(selectinload(BookingCar.category), selectinload(BookingCar.photos))
                .where(
                    BookingCar.id == car_id,
                    BookingCar.organization_id == organization_id,
                    BookingCar.is_active.is_(True),
                )
            )
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            return _car_record(row) if row is not None else None

        return await self._run("get_car", query)

    # --- pricing & availability ---

    async def fetch_pricing_rules(
        self,
        car_id: Optional[str],
        category_id: Optional[str],
        start_date: date,
        end_date: date,
    ) -> list[PricingRule]:
        """Rules for the car OR its category that overlap the interval, priority desc."""
        targets = []
        if car_id:
            targets.append(CarPricing.car_id == car_id)
        if category_id:
            targets.append(CarPricing.category_id == category_id)
        if not targets:
            return []

        async def query(session: AsyncSession) -> list[PricingRule]:
            stmt = (
                select(CarPricing)
                .where(
                    or_(*targets),
                    CarPricing.start_date <= end_date,
                    CarPricing.end_date >= start_date,
                )
                .order_by(CarPricing.priority.desc(), CarPricing.id)
            )
            result = await session.execute(stmt)
            return [_pricing_rule(row) for row in result.scalars().all()]

        return await self._run("fetch_pricing_rules", query)

    async def is_car_available(self, car_id: str, start_date: date, end_date: date) -> bool:
        async def query(session: AsyncSession) -> bool:
            result = await session.execute(
                text("SELECT is_car_available(:p_car_id, :p_start_date, :p_end_date)"),
                {"p_car_id": car_id, "p_start_date": start_date, "p_end_date": end_date},
            )
            return bool(result.scalar())

        return await self._run("is_car_available", query)

    async def fetch_location_fee(self, location_id: Optional[str], kind: str) -> Decimal:
        """Pickup or dropoff surcharge for a location; 0 when it does not exist."""
        column = LOCATION_FEE_COLUMNS.get(kind)
        if column is None:
            raise ValueError(f"Unknown location fee kind: {kind!r}")
        if not location_id:
            return Decimal("0")

        async def query(session: AsyncSession) -> Decimal:
            result = await session.execute(select(column).where(Location.id == location_id))
            return to_decimal(result.scalar_one_or_none())

        return await self._run("fetch_location_fee", query)

    # --- catalogue ---

    async def list_locations(self, organization_id: str) -> list[LocationRecord]:
        async def query(session: AsyncSession) -> list[LocationRecord]:
            stmt = (
                select(Location)
                .where(Location.organization_id == organization_id, Location.is_active.is_(True))
                .order_by(Location.display_order, Location.id)
            )
            result = await session.execute(stmt)
            return [
                LocationRecord(
                    id=row.id,
                    name=row.name,
                    name_el=row.name_el,
                    address=row.address,
                    extra_pickup_fee=to_decimal(row.extra_pickup_fee),
                    extra_delivery_fee=to_decimal(row.extra_delivery_fee),
                    display_order=row.display_order or 0,
                )
                for row in result.scalars().all()
            ]

        return await self._run("list_locations", query)

    async def list_extras(self, organization_id: str) -> list[ExtraRecord]:
        async def query(session: AsyncSession) -> list[ExtraRecord]:
            stmt = (
                select(ExtraOption)
                .where(ExtraOption.organization_id == organization_id, ExtraOption.is_active.is_(True))
                .order_by(ExtraOption.display_order, ExtraOption.id)
            )
            result = await session.execute(stmt)
            return [_extra_record(row) for row in result.scalars().all()]

        return await self._run("list_extras", query)

    async def get_extras(self, organization_id: str, extra_ids: Sequence[str]) -> dict[str, ExtraRecord]:
        if not extra_ids:
            return {}

        async def query(session: AsyncSession) -> dict[str, ExtraRecord]:
            stmt = select(ExtraOption).where(
                ExtraOption.id.in_(list(extra_ids)),
                ExtraOption.organization_id == organization_id,
            )
            result = await session.execute(stmt)
            return {row.id: _extra_record(row) for row in result.scalars().all()}

        return await self._run("get_extras", query)

    async def list_insurance_types(self, organization_id: str) -> list[InsuranceRecord]:
        async def query(session: AsyncSession) -> list[InsuranceRecord]:
            stmt = (
                select(InsuranceType)
                .where(InsuranceType.organization_id == organization_id, InsuranceType.is_active.is_(True))
                .order_by(InsuranceType.display_order, InsuranceType.id)
            )
            result = await session.execute(stmt)
            return [_insurance_record(row) for row in result.scalars().all()]

        return await self._run("list_insurance_types", query)

    async def get_insurance_type(self, organization_id: str, insurance_id: str) -> Optional[InsuranceRecord]:
        async def query(session: AsyncSession) -> Optional[InsuranceRecord]:
            stmt = select(InsuranceType).where(
                InsuranceType.id == insurance_id,
                InsuranceType.organization_id == organization_id,
            )
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            return _insurance_record(row) if row is not None else None

        return await self._run("get_insurance_type", query)

    async def list_payment_methods(self, organization_id: str) -> list[PaymentMethodRecord]:
        """Active online payment methods; cash / pay-on-arrival is excluded."""

        async def query(session: AsyncSession) -> list[PaymentMethodRecord]:
            stmt = (
                select(PaymentMethod)
                .where(
                    PaymentMethod.organization_id == organization_id,
                    PaymentMethod.is_active.is_(True),
                    PaymentMethod.provider != "cash",
                )
                .order_by(PaymentMethod.display_order, PaymentMethod.id)
            )
            result = await session.execute(stmt)
            return [_payment_method_record(row) for row in result.scalars().all()]

        return await self._run("list_payment_methods", query)

    async def get_payment_method(self, organization_id: str, payment_method_id: str) -> Optional[PaymentMethodRecord]:
        async def query(session: AsyncSession) -> Optional[PaymentMethodRecord]:
            stmt = select(PaymentMethod).where(
                PaymentMethod.id == payment_method_id,
                PaymentMethod.organization_id == organization_id,
            )
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            return _payment_method_record(row) if row is not None else None

        return await self._run("get_payment_method", query)

    async def get_discount_code(self, organization_id: str, code: str) -> Optional[DiscountCodeRecord]:
        async def query(session: AsyncSession) -> Optional[DiscountCodeRecord]:
            stmt = select(DiscountCode).where(
                DiscountCode.code == code.strip().upper(),
                DiscountCode.organization_id == organization_id,
                DiscountCode.is_active.is_(True),
            )
            result = await session.execute(stmt)
            row = normalize_single(result.scalars().all(), "discount code")
            if row is None:
                return None
            return DiscountCodeRecord(
                id=row.id,
                code=row.code,
                discount_type=(row.discount_type or "percentage").lower(),
                discount_value=to_decimal(row.discount_value),
                times_used=row.times_used or 0,
                max_uses=row.max_uses,
                valid_from=row.valid_from,
                valid_until=row.valid_until,
                is_active=bool(row.is_active),
            )

        return await self._run("get_discount_code", query)


def get_store() -> SqlBookingStore:
    """FastAPI dependency: a store bound to the shared session factory."""
    return SqlBookingStore(get_session_factory(), settings.STORE_CALL_TIMEOUT_SECONDS)
