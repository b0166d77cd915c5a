"""booking baseline: tenant tables and availability functions

Revision ID: 0001_booking_baseline
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = '0001_booking_baseline'
down_revision = None
branch_labels = None
depends_on = None


IS_CAR_AVAILABLE_SQL = """
CREATE OR REPLACE FUNCTION is_car_available(p_car_id text, p_start_date date, p_end_date date)
RETURNS boolean
LANGUAGE sql STABLE AS $$
    SELECT NOT EXISTS (
        SELECT 1 FROM car_availability
        WHERE car_id = p_car_id
          AND blocked_from < p_end_date
          AND blocked_until >= p_start_date
    );
$$;
"""

VALIDATE_ORGANIZATION_ACCESS_SQL = """
CREATE OR REPLACE FUNCTION validate_organization_access(p_slug text)
RETURNS TABLE (
    is_valid boolean,
    organization_id text,
    subscription_status text,
    is_active boolean,
    error_message text
)
LANGUAGE sql STABLE AS $$
    SELECT
        (o.is_active AND o.subscription_status IN ('active', 'trial')) AS is_valid,
        o.id AS organization_id,
        o.subscription_status,
        o.is_active,
        CASE
            WHEN NOT o.is_active THEN 'Organization is inactive'
            WHEN o.subscription_status NOT IN ('active', 'trial') THEN 'Organization subscription is not active'
            ELSE NULL
        END AS error_message
    FROM organizations o
    WHERE o.slug = p_slug;
$$;
"""


def _id_column() -> sa.Column:
    return sa.Column("id", sa.String(), primary_key=True, nullable=False)


def _org_column() -> sa.Column:
    return sa.Column("organization_id", sa.String(), sa.ForeignKey("organizations.id"), nullable=True)


def upgrade() -> None:
    bind = op.get_bind()
    existing = set(inspect(bind).get_table_names())

    if "organizations" not in existing:
        op.create_table(
            "organizations",
            _id_column(),
            sa.Column("slug", sa.String(), nullable=False, unique=True),
            sa.Column("company_name", sa.String(), nullable=False),
            sa.Column("subscription_status", sa.String(), nullable=True, server_default=sa.text("'trial'")),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
        )

    if "car_categories" not in existing:
        op.create_table(
            "car_categories",
            _id_column(),
            _org_column(),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("name_el", sa.String(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("description_el", sa.Text(), nullable=True),
            sa.Column("vehicle_type", sa.String(), nullable=True, server_default=sa.text("'car'")),
            sa.Column("seats", sa.Integer(), nullable=True),
            sa.Column("doors", sa.Integer(), nullable=True),
            sa.Column("transmission", sa.String(), nullable=True),
            sa.Column("luggage_capacity", sa.Integer(), nullable=True),
            sa.Column("icon_name", sa.String(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("display_order", sa.Integer(), nullable=True, server_default=sa.text("0")),
        )

    if "booking_cars" not in existing:
        op.create_table(
            "booking_cars",
            _id_column(),
            _org_column(),
            sa.Column("category_id", sa.String(), sa.ForeignKey("car_categories.id"), nullable=True),
            sa.Column("make", sa.String(), nullable=False),
            sa.Column("model", sa.String(), nullable=False),
            sa.Column("year", sa.Integer(), nullable=True),
            sa.Column("license_plate", sa.String(), nullable=True),
            sa.Column("color", sa.String(), nullable=True),
            sa.Column("main_photo_url", sa.String(), nullable=True),
            sa.Column("is_featured", sa.Boolean(), nullable=True, server_default=sa.false()),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("is_available_for_booking", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("min_age_requirement", sa.Integer(), nullable=True, server_default=sa.text("21")),
            sa.Column("min_license_years", sa.Integer(), nullable=True, server_default=sa.text("1")),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
        )
        op.create_index("ix_booking_cars_organization_id", "booking_cars", ["organization_id"])

    if "car_photos" not in existing:
        op.create_table(
            "car_photos",
            _id_column(),
            sa.Column("car_id", sa.String(), sa.ForeignKey("booking_cars.id", ondelete="CASCADE"), nullable=True),
            sa.Column("photo_url", sa.String(), nullable=False),
            sa.Column("display_order", sa.Integer(), nullable=True, server_default=sa.text("0")),
        )

    if "car_pricing" not in existing:
        op.create_table(
            "car_pricing",
            _id_column(),
            sa.Column("car_id", sa.String(), sa.ForeignKey("booking_cars.id", ondelete="CASCADE"), nullable=True),
            sa.Column("category_id", sa.String(), sa.ForeignKey("car_categories.id"), nullable=True),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=False),
            sa.Column("price_per_day", sa.Numeric(10, 2), nullable=False),
            sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column("weekly_discount_percent", sa.Numeric(5, 2), nullable=True),
            sa.Column("monthly_discount_percent", sa.Numeric(5, 2), nullable=True),
            sa.CheckConstraint("start_date <= end_date", name="ck_car_pricing_date_order"),
            sa.CheckConstraint("car_id IS NOT NULL OR category_id IS NOT NULL", name="ck_car_pricing_target"),
        )
        op.create_index("ix_car_pricing_dates", "car_pricing", ["start_date", "end_date"])

    if "car_availability" not in existing:
        op.create_table(
            "car_availability",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("car_id", sa.String(), sa.ForeignKey("booking_cars.id", ondelete="CASCADE"), nullable=True),
            sa.Column("blocked_from", sa.Date(), nullable=False),
            sa.Column("blocked_until", sa.Date(), nullable=False),
            sa.Column("reason", sa.String(), nullable=True, server_default=sa.text("'booked'")),
            sa.Column("booking_id", sa.String(), nullable=True),
        )
        op.create_index("ix_car_availability_car_id", "car_availability", ["car_id"])

    if "locations" not in existing:
        op.create_table(
            "locations",
            _id_column(),
            _org_column(),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("name_el", sa.String(), nullable=True),
            sa.Column("address", sa.String(), nullable=True),
            sa.Column("extra_pickup_fee", sa.Numeric(10, 2), nullable=True, server_default=sa.text("0")),
            sa.Column("extra_delivery_fee", sa.Numeric(10, 2), nullable=True, server_default=sa.text("0")),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("display_order", sa.Integer(), nullable=True, server_default=sa.text("0")),
        )

    if "extra_options" not in existing:
        op.create_table(
            "extra_options",
            _id_column(),
            _org_column(),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("name_el", sa.String(), nullable=True),
            sa.Column("description_el", sa.Text(), nullable=True),
            sa.Column("price_per_day", sa.Numeric(10, 2), nullable=False),
            sa.Column("is_one_time_fee", sa.Boolean(), nullable=True, server_default=sa.false()),
            sa.Column("icon_name", sa.String(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("display_order", sa.Integer(), nullable=True, server_default=sa.text("0")),
        )

    if "insurance_types" not in existing:
        op.create_table(
            "insurance_types",
            _id_column(),
            _org_column(),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("name_el", sa.String(), nullable=True),
            sa.Column("description_el", sa.Text(), nullable=True),
            sa.Column("deductible", sa.Numeric(10, 2), nullable=True, server_default=sa.text("0")),
            sa.Column("price_per_day", sa.Numeric(10, 2), nullable=False),
            sa.Column("badge_text", sa.String(), nullable=True),
            sa.Column("is_default", sa.Boolean(), nullable=True, server_default=sa.false()),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("display_order", sa.Integer(), nullable=True, server_default=sa.text("0")),
        )

    if "payment_methods" not in existing:
        op.create_table(
            "payment_methods",
            _id_column(),
            _org_column(),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("name_el", sa.String(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("description_el", sa.Text(), nullable=True),
            sa.Column("provider", sa.String(), nullable=False),
            sa.Column("logo_url", sa.String(), nullable=True),
            sa.Column("deposit_percentage", sa.Numeric(5, 2), nullable=True),
            sa.Column("minimum_deposit_amount", sa.Numeric(10, 2), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("display_order", sa.Integer(), nullable=True, server_default=sa.text("0")),
        )

    if "discount_codes" not in existing:
        op.create_table(
            "discount_codes",
            _id_column(),
            _org_column(),
            sa.Column("code", sa.String(), nullable=False),
            sa.Column("discount_type", sa.String(), nullable=True, server_default=sa.text("'percentage'")),
            sa.Column("discount_value", sa.Numeric(10, 2), nullable=False),
            sa.Column("valid_from", sa.DateTime(timezone=True), nullable=True),
            sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
            sa.Column("times_used", sa.Integer(), nullable=True, server_default=sa.text("0")),
            sa.Column("max_uses", sa.Integer(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
        )
        op.create_index("ix_discount_codes_code", "discount_codes", ["code"])

    op.execute(IS_CAR_AVAILABLE_SQL)
    op.execute(VALIDATE_ORGANIZATION_ACCESS_SQL)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS validate_organization_access(text)")
    op.execute("DROP FUNCTION IF EXISTS is_car_available(text, date, date)")

    existing = set(inspect(op.get_bind()).get_table_names())
    for table in (
        "discount_codes",
        "payment_methods",
        "insurance_types",
        "extra_options",
        "locations",
        "car_availability",
        "car_pricing",
        "car_photos",
        "booking_cars",
        "car_categories",
        "organizations",
    ):
        if table in existing:
            op.drop_table(table)
