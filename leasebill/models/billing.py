"""Billing statement and charge ORM models."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leasebill.models import Base, BaseModel


class BillingStatus(str, Enum):
    """Payment status of a billing statement.

    Only UNPAID and PAID are stored by billing itself; OVERDUE is derived when
    statements are read (due date plus grace period before today).
    """

    UNPAID = "unpaid"
    PAID = "paid"
    OVERDUE = "overdue"


class ChargeCategory(str, Enum):
    """Category of an extra statement line."""

    ADDITIONAL = "additional"
    DISCOUNT = "discount"


class BillingStatement(Base, BaseModel):
    """
    Monthly billing statement of a unit.

    One row per unit per calendar month (billing_month holds the first day of that
    month and carries the uniqueness constraint). Re-saving within the same month
    updates the row in place; the charge list is owned and replaced wholesale.
    """

    __tablename__ = "billing_statements"

    billing_id: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        unique=True,
        comment="Opaque public statement identifier",
    )

    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id"),
        nullable=False,
        index=True,
    )
    lease_id: Mapped[int] = mapped_column(
        ForeignKey("lease_agreements.id"),
        nullable=False,
        index=True,
    )

    billing_period: Mapped[date] = mapped_column(Date, nullable=False)
    billing_month: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="First day of the billing period's month",
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Components
    rent_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    rent_credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Cleared PDC and advance payment applied against rent",
    )
    assoc_dues_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    total_water_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    total_electricity_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    total_amount_due: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BillingStatus.UNPAID.value,
        index=True,
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    charges: Mapped[list["BillingCharge"]] = relationship(
        "BillingCharge",
        back_populates="statement",
        cascade="all, delete-orphan",
        order_by="BillingCharge.id",
    )

    unit: Mapped["Unit"] = relationship("Unit")  # noqa: F821
    lease: Mapped["LeaseAgreement"] = relationship("LeaseAgreement")  # noqa: F821

    __table_args__ = (
        UniqueConstraint("unit_id", "billing_month", name="uq_billing_unit_month"),
        Index("idx_billing_lease_status", "lease_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<BillingStatement(billing_id={self.billing_id}, unit_id={self.unit_id}, "
            f"billing_month={self.billing_month}, total_amount_due={self.total_amount_due}, "
            f"status={self.status})>"
        )


class BillingCharge(Base, BaseModel):
    """Additional charge or discount line of a statement."""

    __tablename__ = "billing_charges"

    statement_id: Mapped[int] = mapped_column(
        ForeignKey("billing_statements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ChargeCategory.ADDITIONAL.value,
    )
    charge_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Free-text label (e.g., 'late fee', 'parking')",
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    statement: Mapped["BillingStatement"] = relationship(
        "BillingStatement",
        back_populates="charges",
    )

    def __repr__(self) -> str:
        return (
            f"<BillingCharge(id={self.id}, statement_id={self.statement_id}, "
            f"category={self.category}, charge_type={self.charge_type}, amount={self.amount})>"
        )


__all__ = ["BillingCharge", "BillingStatement", "BillingStatus", "ChargeCategory"]
