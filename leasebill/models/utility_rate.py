"""Utility rate model - the concessionaire bill a per-unit rate is derived from."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from leasebill.models import Base, BaseModel


class UtilityType(str, Enum):
    """Metered utilities. Water and electricity are never mixed."""

    WATER = "water"
    ELECTRICITY = "electricity"


class UtilityRate(Base, BaseModel):
    """Property-level utility bill for one period.

    Read-only to billing: the price per unit of consumption is the provider's
    total divided by the consumption it billed for the period.
    """

    __tablename__ = "utility_rates"

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id"),
        nullable=False,
    )
    utility_type: Mapped[str] = mapped_column(String(20), nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Amount billed by the provider for the period",
    )
    consumption: Mapped[Decimal] = mapped_column(
        Numeric(12, 3),
        nullable=False,
        comment="Consumption billed by the provider (m³ or kWh)",
    )

    __table_args__ = (
        Index("idx_rate_property_utility_period", "property_id", "utility_type", "period_start"),
    )

    @property
    def rate_per_unit(self) -> Decimal:
        """Price per unit of consumption (zero when no consumption was billed)."""
        if not self.consumption:
            return Decimal("0")
        return Decimal(self.total_amount) / Decimal(self.consumption)

    def __repr__(self) -> str:
        return (
            f"<UtilityRate(id={self.id}, property_id={self.property_id}, "
            f"utility_type={self.utility_type}, period_start={self.period_start})>"
        )


__all__ = ["UtilityRate", "UtilityType"]
