"""Property and Unit ORM models carrying the configuration billing reads."""

from decimal import Decimal
from enum import Enum

from sqlalchemy import ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leasebill.models import Base, BaseModel


class BillingType(str, Enum):
    """How a utility is billed to the units of a property."""

    SUBMETERED = "submetered"
    """Consumption measured per unit via a dedicated meter"""

    FLAT = "flat"
    """Flat or shared rate, no per-unit readings"""


class LateFeeType(str, Enum):
    """How the late fee of an overdue statement is computed."""

    FIXED = "fixed"
    PERCENTAGE = "percentage"


class Property(Base, BaseModel):
    """Model representing a rental property and its billing configuration.

    Only the fields read by the billing core are modelled here: association dues,
    utility billing modes, due-day/grace/late-fee settings and the number of
    months covered by an advance payment.
    """

    __tablename__ = "properties"

    name: Mapped[str] = mapped_column(String(150), nullable=False)

    assoc_dues: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Monthly association dues added to every statement",
    )

    water_billing_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BillingType.SUBMETERED.value,
    )
    electricity_billing_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BillingType.SUBMETERED.value,
    )

    billing_due_day: Mapped[int] = mapped_column(
        nullable=False,
        default=30,
        comment="Day of month statements fall due when no due date is supplied",
    )

    # Late fee configuration (applied lazily when listing overdue statements)
    late_fee_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    late_fee_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    grace_period_days: Mapped[int] = mapped_column(nullable=False, default=0)

    advance_payment_months: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
        comment="Number of lease months settled by the advance payment",
    )

    units: Mapped[list["Unit"]] = relationship(
        "Unit",
        back_populates="property",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, name={self.name})>"


class Unit(Base, BaseModel):
    """Rentable unit of a property."""

    __tablename__ = "units"

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )
    unit_name: Mapped[str] = mapped_column(String(100), nullable=False)
    rent_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Listed rent, used when the lease carries no rent of its own",
    )

    property: Mapped["Property"] = relationship("Property", back_populates="units")

    def __repr__(self) -> str:
        return f"<Unit(id={self.id}, property_id={self.property_id}, unit_name={self.unit_name})>"


__all__ = ["BillingType", "LateFeeType", "Property", "Unit"]
