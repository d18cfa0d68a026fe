"""Meter reading model - per unit, per utility, per billing month."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from leasebill.models import Base, BaseModel


class MeterReading(Base, BaseModel):
    """Meter reading for one utility of one unit in one billing month.

    Attributes:
        unit_id: Unit the meter belongs to
        utility_type: "water" or "electricity"
        reading_date: Date the meter was read
        period_month: First day of the billing month (upsert key)
        previous_reading: Reading carried from the previous period
        current_reading: Reading taken this period
        consumption: max(current - previous, 0)
        rate_per_unit: Rate applied (None when no rate was configured)
        cost: consumption * rate_per_unit
    """

    __tablename__ = "meter_readings"

    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False)
    utility_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reading_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_month: Mapped[date] = mapped_column(Date, nullable=False)
    previous_reading: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=3), nullable=False
    )
    current_reading: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=3), nullable=False
    )
    consumption: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=3), nullable=False, default=Decimal("0")
    )
    rate_per_unit: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=12, scale=4), nullable=True
    )
    cost: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        UniqueConstraint(
            "unit_id", "utility_type", "period_month", name="uq_meter_unit_utility_month"
        ),
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<MeterReading(id={self.id}, unit_id={self.unit_id}, "
            f"utility={self.utility_type}, consumption={self.consumption})>"
        )


__all__ = ["MeterReading"]
