"""Baseline migration - tenants, catalog, staff, calendar and bookings

Revision ID: 0001_scheduling_baseline
Revises:
Create Date: 2026-10-19

On PostgreSQL this also installs btree_gist and an exclusion constraint
that keeps live bookings of one staff member from overlapping.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_scheduling_baseline"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _tenant_fk() -> sa.Column:
    return sa.Column(
        "tenant_id",
        sa.Uuid(),
        sa.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    """Create scheduling tables."""
    is_postgres = op.get_bind().dialect.name == "postgresql"

    # ==========================================================================
    # Tenants and catalog
    # ==========================================================================
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("subdomain", sa.String(63), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_customers_tenant", "customers", ["tenant_id"])

    op.create_table(
        "services",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("location_type", sa.String(20), nullable=False, server_default="on_premise"),
        sa.Column("daily_quota_per_staff", sa.Integer()),
        sa.Column("home_visit_buffer_minutes", sa.Integer()),
        sa.Column("requires_staff_assignment", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("duration_minutes > 0", name="ck_service_duration_positive"),
        sa.CheckConstraint(
            "daily_quota_per_staff IS NULL OR daily_quota_per_staff >= 0",
            name="ck_service_quota_non_negative",
        ),
    )
    op.create_index("idx_services_tenant", "services", ["tenant_id", "is_active"])

    # ==========================================================================
    # Staff
    # ==========================================================================
    op.create_table(
        "staff",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_staff_tenant", "staff", ["tenant_id", "is_active"])

    op.create_table(
        "staff_schedule_entries",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("staff_id", sa.Uuid(), sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("break_start", sa.Time()),
        sa.Column("break_end", sa.Time()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("staff_id", "day_of_week", name="uq_staff_schedule_day"),
        sa.CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_schedule_day_of_week"),
    )

    op.create_table(
        "staff_leave",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("staff_id", sa.Uuid(), sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date_start", sa.Date(), nullable=False),
        sa.Column("date_end", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("date_start <= date_end", name="ck_staff_leave_range"),
    )
    op.create_index("idx_staff_leave_range", "staff_leave", ["staff_id", "date_start", "date_end"])

    op.create_table(
        "staff_capabilities",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("staff_id", sa.Uuid(), sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_id", sa.Uuid(), sa.ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
        sa.Column("can_perform", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("staff_id", "service_id", name="uq_staff_capability"),
    )
    op.create_index("idx_staff_capabilities_service", "staff_capabilities", ["service_id", "can_perform"])

    # ==========================================================================
    # Calendar
    # ==========================================================================
    op.create_table(
        "business_hours",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "tenant_id",
            sa.Uuid(),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("schedule", JSON_TYPE, nullable=False),
        sa.Column("timezone", sa.String(50), nullable=False, server_default="Asia/Jakarta"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "blocked_dates",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(255)),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recurring_pattern", sa.String(20)),
        sa.Column("recurring_until", sa.Date()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_blocked_dates_tenant", "blocked_dates", ["tenant_id", "date"])

    # ==========================================================================
    # Bookings
    # ==========================================================================
    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("service_id", sa.Uuid(), sa.ForeignKey("services.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("assigned_staff_id", sa.Uuid(), sa.ForeignKey("staff.id", ondelete="SET NULL")),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("scheduled_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("buffer_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("is_home_visit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("home_visit_address", sa.Text()),
        sa.Column("latitude", sa.Float()),
        sa.Column("longitude", sa.Float()),
        sa.Column("notes", sa.Text()),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("cancellation_reason", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("scheduled_end > scheduled_at", name="ck_booking_interval"),
    )
    op.create_index(
        "idx_bookings_staff_time", "bookings", ["assigned_staff_id", "scheduled_at", "scheduled_end"]
    )
    op.create_index("idx_bookings_tenant_status", "bookings", ["tenant_id", "status"])
    op.create_index("idx_bookings_tenant_time", "bookings", ["tenant_id", "scheduled_at"])

    op.create_table(
        "booking_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("booking_id", sa.Uuid(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_type", sa.String(30), nullable=False),
        sa.Column("from_status", sa.String(20)),
        sa.Column("to_status", sa.String(20)),
        sa.Column("staff_id", sa.Uuid()),
        sa.Column("details", JSON_TYPE, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_booking_events_booking", "booking_events", ["booking_id", "created_at"])

    op.create_table(
        "staff_day_ledger",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("staff_id", sa.Uuid(), sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ledger_date", sa.Date(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("staff_id", "ledger_date", name="uq_staff_day_ledger"),
    )

    if is_postgres:
        # Database-level backstop: live bookings of one staff member never overlap
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute('''
            ALTER TABLE bookings
            ADD CONSTRAINT ex_bookings_staff_no_overlap
            EXCLUDE USING gist (
                assigned_staff_id WITH =,
                tstzrange(scheduled_at, scheduled_end, '[)') WITH &&
            )
            WHERE (assigned_staff_id IS NOT NULL AND status IN ('pending', 'confirmed'))
        ''')


def downgrade() -> None:
    """Drop scheduling tables."""
    for table in (
        "staff_day_ledger",
        "booking_events",
        "bookings",
        "blocked_dates",
        "business_hours",
        "staff_capabilities",
        "staff_leave",
        "staff_schedule_entries",
        "staff",
        "services",
        "customers",
        "tenants",
    ):
        op.drop_table(table)
