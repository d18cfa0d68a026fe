"""Initial schema: billing statements, meter readings and the tables they read.

Revision ID: 001_initial_billing_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial_billing_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    ]


def upgrade() -> None:
    # Create properties table
    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("assoc_dues", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"),
        sa.Column("water_billing_type", sa.String(length=20), nullable=False, server_default="submetered"),
        sa.Column(
            "electricity_billing_type", sa.String(length=20), nullable=False, server_default="submetered"
        ),
        sa.Column("billing_due_day", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("late_fee_type", sa.String(length=20), nullable=True),
        sa.Column("late_fee_amount", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("grace_period_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("advance_payment_months", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    # Create units table
    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("unit_name", sa.String(length=100), nullable=False),
        sa.Column("rent_amount", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_units_property_id", "property_id"),
    )

    # Create lease_agreements table
    op.create_table(
        "lease_agreements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("rent_amount", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column(
            "advance_payment_amount", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"
        ),
        sa.Column("is_advance_payment_paid", sa.Boolean(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_lease_agreements_unit_id", "unit_id"),
        sa.Index("ix_lease_agreements_tenant_id", "tenant_id"),
        sa.Index("ix_lease_agreements_status", "status"),
    )

    # Create post_dated_checks table
    op.create_table(
        "post_dated_checks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("lease_id", sa.Integer(), nullable=False),
        sa.Column("check_number", sa.String(length=50), nullable=True),
        sa.Column("amount", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["lease_id"], ["lease_agreements.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("idx_pdc_lease_due", "lease_id", "due_date"),
    )

    # Create utility_rates table
    op.create_table(
        "utility_rates",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("utility_type", sa.String(length=20), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("consumption", sa.Numeric(precision=12, scale=3), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("idx_rate_property_utility_period", "property_id", "utility_type", "period_start"),
    )

    # Create billing_statements table
    op.create_table(
        "billing_statements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("billing_id", sa.String(length=32), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("lease_id", sa.Integer(), nullable=False),
        sa.Column("billing_period", sa.Date(), nullable=False),
        sa.Column("billing_month", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("rent_amount", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"),
        sa.Column(
            "rent_credit_amount", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"
        ),
        sa.Column("assoc_dues_amount", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"),
        sa.Column(
            "total_water_amount", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"
        ),
        sa.Column(
            "total_electricity_amount", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"
        ),
        sa.Column("total_amount_due", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="unpaid"),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.ForeignKeyConstraint(["lease_id"], ["lease_agreements.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("billing_id"),
        sa.UniqueConstraint("unit_id", "billing_month", name="uq_billing_unit_month"),
        sa.Index("ix_billing_statements_unit_id", "unit_id"),
        sa.Index("ix_billing_statements_lease_id", "lease_id"),
        sa.Index("ix_billing_statements_status", "status"),
        sa.Index("idx_billing_lease_status", "lease_id", "status"),
    )

    # Create billing_charges table
    op.create_table(
        "billing_charges",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("statement_id", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=False, server_default="additional"),
        sa.Column("charge_type", sa.String(length=100), nullable=False),
        sa.Column("amount", sa.Numeric(precision=10, scale=2), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["statement_id"], ["billing_statements.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_billing_charges_statement_id", "statement_id"),
    )

    # Create meter_readings table
    op.create_table(
        "meter_readings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("utility_type", sa.String(length=20), nullable=False),
        sa.Column("reading_date", sa.Date(), nullable=False),
        sa.Column("period_month", sa.Date(), nullable=False),
        sa.Column("previous_reading", sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column("current_reading", sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column("consumption", sa.Numeric(precision=12, scale=3), nullable=False, server_default="0"),
        sa.Column("rate_per_unit", sa.Numeric(precision=12, scale=4), nullable=True),
        sa.Column("cost", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "unit_id", "utility_type", "period_month", name="uq_meter_unit_utility_month"
        ),
    )

    # Create audit_logs table
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("meter_readings")
    op.drop_table("billing_charges")
    op.drop_table("billing_statements")
    op.drop_table("utility_rates")
    op.drop_table("post_dated_checks")
    op.drop_table("lease_agreements")
    op.drop_table("units")
    op.drop_table("properties")
