"""Lease agreement and post-dated check ORM models."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leasebill.models import Base, BaseModel


class LeaseStatus(str, Enum):
    """Lifecycle status of a lease agreement."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    TERMINATED = "terminated"


# Leases a unit can be billed against
BILLABLE_LEASE_STATUSES = (LeaseStatus.ACTIVE.value, LeaseStatus.COMPLETED.value)


class PdcStatus(str, Enum):
    """Status of a post-dated check."""

    PENDING = "pending"
    PROCESSING = "processing"
    CLEARED = "cleared"
    BOUNCED = "bounced"


class LeaseAgreement(Base, BaseModel):
    """Tenancy agreement linking a tenant to a unit for a date range."""

    __tablename__ = "lease_agreements"

    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id"),
        nullable=False,
        index=True,
    )
    tenant_id: Mapped[int | None] = mapped_column(nullable=True, index=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=LeaseStatus.PENDING.value,
        index=True,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    rent_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        comment="Agreed rent; falls back to the unit's listed rent when empty",
    )

    # Advance payment (settles rent for the first months of the lease)
    advance_payment_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Advance paid per covered month",
    )
    is_advance_payment_paid: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    unit: Mapped["Unit"] = relationship("Unit")  # noqa: F821

    post_dated_checks: Mapped[list["PostDatedCheck"]] = relationship(
        "PostDatedCheck",
        back_populates="lease",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<LeaseAgreement(id={self.id}, unit_id={self.unit_id}, status={self.status})>"


class PostDatedCheck(Base, BaseModel):
    """Cheque issued in advance by the tenant for a given due date."""

    __tablename__ = "post_dated_checks"

    lease_id: Mapped[int] = mapped_column(
        ForeignKey("lease_agreements.id"),
        nullable=False,
    )
    check_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PdcStatus.PENDING.value,
    )

    lease: Mapped["LeaseAgreement"] = relationship(
        "LeaseAgreement",
        back_populates="post_dated_checks",
    )

    __table_args__ = (Index("idx_pdc_lease_due", "lease_id", "due_date"),)

    def __repr__(self) -> str:
        return (
            f"<PostDatedCheck(id={self.id}, lease_id={self.lease_id}, "
            f"amount={self.amount}, status={self.status})>"
        )


__all__ = [
    "BILLABLE_LEASE_STATUSES",
    "LeaseAgreement",
    "LeaseStatus",
    "PdcStatus",
    "PostDatedCheck",
]
