"""Read side of billing: current statement view and overdue listing."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leasebill.models.billing import BillingCharge, BillingStatement, BillingStatus, ChargeCategory
from leasebill.models.meter_reading import MeterReading
from leasebill.models.property import Property, Unit
from leasebill.models.utility_rate import UtilityType
from leasebill.services.billing_status import classify_status, compute_late_fee
from leasebill.services.charges import Additional, Charge, Discount
from leasebill.services.dates import due_date_for, month_start
from leasebill.services.statement_breakdown import StatementBreakdown, compute_breakdown, money

logger = logging.getLogger(__name__)

# Source name of the rent credit persisted on a statement
CREDIT_APPLIED = "applied_credit"


class ReadingView(NamedTuple):
    utility_type: str
    reading_date: date
    previous_reading: Decimal
    current_reading: Decimal
    consumption: Decimal
    rate_per_unit: Decimal | None
    cost: Decimal


class ChargeView(NamedTuple):
    category: str
    charge_type: str
    amount: Decimal


class StatementView(NamedTuple):
    """Statement of a month as shown to landlord and tenant."""

    billing_id: str
    unit_id: int
    lease_id: int
    billing_period: date
    billing_month: date
    due_date: date
    status: BillingStatus
    """Classified status (overdue derived from due date and grace period)"""
    days_overdue: int
    paid_at: datetime | None
    total_amount_due: Decimal
    breakdown: StatementBreakdown
    readings: list[ReadingView]
    charges: list[ChargeView]


class OverdueBill(NamedTuple):
    billing_id: str
    unit_id: int
    billing_period: date
    due_date: date
    total_amount_due: Decimal
    days_overdue: int
    grace_period_days: int
    late_fee: Decimal
    amount_with_late_fee: Decimal


def _to_charge(row: BillingCharge) -> Charge:
    if row.category == ChargeCategory.DISCOUNT:
        return Discount(charge_type=row.charge_type, amount=Decimal(row.amount))
    return Additional(charge_type=row.charge_type, amount=Decimal(row.amount))


def _reading_view(reading: MeterReading) -> ReadingView:
    return ReadingView(
        utility_type=reading.utility_type,
        reading_date=reading.reading_date,
        previous_reading=reading.previous_reading,
        current_reading=reading.current_reading,
        consumption=reading.consumption,
        rate_per_unit=reading.rate_per_unit,
        cost=money(reading.cost),
    )


def _breakdown_of(statement: BillingStatement) -> StatementBreakdown:
    """Rebuild the breakdown from the components stored on a statement."""
    return compute_breakdown(
        rent=statement.rent_amount,
        water_cost=statement.total_water_amount,
        electricity_cost=statement.total_electricity_amount,
        assoc_dues=statement.assoc_dues_amount,
        charges=[_to_charge(row) for row in statement.charges],
        credits=[(CREDIT_APPLIED, statement.rent_credit_amount)],
    )


class StatementQueryService:
    """Async queries over billing statements.

    Used by the landlord and tenant billing endpoints.
    """

    def __init__(self, session: AsyncSession):
        """Initialize with async database session."""
        self.session = session

    async def get_current_statement(self, unit_id: int, today: date | None = None) -> StatementView | None:
        """Get the unit's statement for the month of today.

        Args:
            unit_id: Unit ID
            today: Reference date (default: date.today())

        Returns:
            StatementView with readings, charges and breakdown, or None if the
            month has not been billed yet
        """
        today = today or date.today()
        billing_month = month_start(today)

        result = await self.session.execute(
            select(BillingStatement)
            .options(
                selectinload(BillingStatement.charges),
                selectinload(BillingStatement.unit).selectinload(Unit.property),
            )
            .where(
                BillingStatement.unit_id == unit_id,
                BillingStatement.billing_month == billing_month,
            )
        )
        statement = result.scalar_one_or_none()
        if statement is None:
            logger.debug("No statement for unit %d in %s", unit_id, billing_month)
            return None

        readings_result = await self.session.execute(
            select(MeterReading)
            .where(
                MeterReading.unit_id == unit_id,
                MeterReading.period_month == billing_month,
            )
            .order_by(MeterReading.utility_type.asc())
        )
        readings = [_reading_view(reading) for reading in readings_result.scalars().all()]

        classification = classify_status(
            statement.status,
            statement.due_date,
            today,
            statement.unit.property.grace_period_days,
        )
        breakdown = _breakdown_of(statement)
        if breakdown.total != money(statement.total_amount_due):
            logger.debug(
                "Statement %s stored total %s, components sum to %s",
                statement.billing_id,
                money(statement.total_amount_due),
                breakdown.total,
            )

        return StatementView(
            billing_id=statement.billing_id,
            unit_id=statement.unit_id,
            lease_id=statement.lease_id,
            billing_period=statement.billing_period,
            billing_month=statement.billing_month,
            due_date=statement.due_date,
            status=classification.status,
            days_overdue=classification.days_overdue,
            paid_at=statement.paid_at,
            total_amount_due=money(statement.total_amount_due),
            breakdown=breakdown,
            readings=readings,
            charges=[
                ChargeView(row.category, row.charge_type, money(row.amount)) for row in statement.charges
            ],
        )

    async def latest_readings(self, unit_id: int, today: date | None = None) -> list[ReadingView]:
        """Most recent reading per utility up to the month of today.

        Prefills the billing form of a month without a statement: the current
        reading of the latest period becomes the next previous reading.
        """
        billing_month = month_start(today or date.today())

        readings: list[ReadingView] = []
        for utility_type in UtilityType:
            result = await self.session.execute(
                select(MeterReading)
                .where(
                    MeterReading.unit_id == unit_id,
                    MeterReading.utility_type == utility_type.value,
                    MeterReading.period_month <= billing_month,
                )
                .order_by(MeterReading.period_month.desc())
                .limit(1)
            )
            reading = result.scalar_one_or_none()
            if reading is not None:
                readings.append(_reading_view(reading))
        return readings

    async def suggested_due_date(self, unit_id: int, today: date | None = None) -> date | None:
        """Due date of the current month from the property's billing due day.

        Returns:
            Suggested due date or None if the unit does not exist
        """
        today = today or date.today()
        result = await self.session.execute(
            select(Property.billing_due_day).join(Unit, Unit.property_id == Property.id).where(Unit.id == unit_id)
        )
        due_day = result.scalar_one_or_none()
        if due_day is None:
            return None
        return due_date_for(today, due_day)

    async def list_overdue(self, lease_id: int, today: date | None = None) -> list[OverdueBill]:
        """List a lease's overdue statements with their late fees.

        A statement is overdue when unpaid and its due date plus the property's
        grace period lies before today.

        Args:
            lease_id: Lease agreement ID
            today: Reference date (default: date.today())

        Returns:
            Overdue bills, oldest due date first
        """
        today = today or date.today()

        result = await self.session.execute(
            select(BillingStatement)
            .options(selectinload(BillingStatement.unit).selectinload(Unit.property))
            .where(
                BillingStatement.lease_id == lease_id,
                BillingStatement.status != BillingStatus.PAID.value,
                BillingStatement.due_date < today,
            )
            .order_by(BillingStatement.due_date.asc())
        )

        overdue: list[OverdueBill] = []
        for statement in result.scalars().all():
            property_obj = statement.unit.property
            classification = classify_status(
                statement.status,
                statement.due_date,
                today,
                property_obj.grace_period_days,
            )
            if classification.status != BillingStatus.OVERDUE:
                continue

            total = money(statement.total_amount_due)
            late_fee = compute_late_fee(
                total,
                property_obj.late_fee_type,
                property_obj.late_fee_amount,
                classification.days_overdue,
            )
            overdue.append(
                OverdueBill(
                    billing_id=statement.billing_id,
                    unit_id=statement.unit_id,
                    billing_period=statement.billing_period,
                    due_date=statement.due_date,
                    total_amount_due=total,
                    days_overdue=classification.days_overdue,
                    grace_period_days=classification.grace_period_days,
                    late_fee=late_fee,
                    amount_with_late_fee=total + late_fee,
                )
            )

        logger.debug("Lease %d has %d overdue statements", lease_id, len(overdue))
        return overdue


__all__ = [
    "ChargeView",
    "OverdueBill",
    "ReadingView",
    "StatementQueryService",
    "StatementView",
]
