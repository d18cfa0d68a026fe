"""Lease lookups used by billing: billable lease, rent and rent credits."""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from leasebill.models.lease import (
    BILLABLE_LEASE_STATUSES,
    LeaseAgreement,
    LeaseStatus,
    PdcStatus,
    PostDatedCheck,
)
from leasebill.models.property import Property, Unit
from leasebill.services.dates import month_end, month_start, months_between
from leasebill.services.statement_breakdown import CREDIT_ADVANCE, CREDIT_PDC

logger = logging.getLogger(__name__)


class LeaseService:
    """Service for lease lookups needed to bill a unit.

    Read-only; runs inside the caller's transaction.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    def resolve_billable_lease(self, unit_id: int) -> LeaseAgreement | None:
        """Get the lease a unit is billed against.

        Active leases win over completed ones; among equals the most recent
        start date wins.

        Args:
            unit_id: Unit to bill

        Returns:
            LeaseAgreement or None when the unit has no active/completed lease
        """
        stmt = (
            select(LeaseAgreement)
            .where(
                LeaseAgreement.unit_id == unit_id,
                LeaseAgreement.status.in_(BILLABLE_LEASE_STATUSES),
            )
            .order_by(LeaseAgreement.start_date.desc())
        )
        leases = self.db.execute(stmt).scalars().all()
        if not leases:
            return None

        for lease in leases:
            if lease.status == LeaseStatus.ACTIVE:
                return lease
        return leases[0]

    def get_unit_lease(self, unit_id: int, lease_id: int) -> LeaseAgreement | None:
        """Get a lease by ID, only if it belongs to the unit."""
        stmt = select(LeaseAgreement).where(
            LeaseAgreement.id == lease_id,
            LeaseAgreement.unit_id == unit_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    @staticmethod
    def effective_rent(lease: LeaseAgreement, unit: Unit) -> Decimal:
        """Lease rent, falling back to the unit's listed rent when unset or zero."""
        if lease.rent_amount and lease.rent_amount > 0:
            return Decimal(lease.rent_amount)
        return Decimal(unit.rent_amount or 0)

    def cleared_pdc_amount(self, lease_id: int, billing_month: date) -> Decimal:
        """Sum of cleared post-dated checks due within the billing month."""
        stmt = select(func.sum(PostDatedCheck.amount)).where(
            and_(
                PostDatedCheck.lease_id == lease_id,
                PostDatedCheck.status == PdcStatus.CLEARED.value,
                PostDatedCheck.due_date >= month_start(billing_month),
                PostDatedCheck.due_date <= month_end(billing_month),
            )
        )
        result = self.db.execute(stmt).scalar()
        return Decimal(result or 0)

    @staticmethod
    def advance_payment_credit(
        lease: LeaseAgreement,
        property_obj: Property,
        billing_month: date,
    ) -> Decimal:
        """Advance payment settling rent for this month, if any.

        A paid advance covers `advance_payment_months` months starting with the
        lease's first month, at `advance_payment_amount` per month.
        """
        if not lease.is_advance_payment_paid or not property_obj.advance_payment_months:
            return Decimal("0")

        offset = months_between(month_start(lease.start_date), month_start(billing_month))
        if 0 <= offset < property_obj.advance_payment_months:
            return Decimal(lease.advance_payment_amount or 0)
        return Decimal("0")

    def rent_credits(
        self,
        lease: LeaseAgreement,
        property_obj: Property,
        billing_month: date,
    ) -> list[tuple[str, Decimal]]:
        """Credits available against rent, in settlement order.

        Cleared post-dated checks settle first, then the advance payment.
        """
        credits = [
            (CREDIT_PDC, self.cleared_pdc_amount(lease.id, billing_month)),
            (CREDIT_ADVANCE, self.advance_payment_credit(lease, property_obj, billing_month)),
        ]
        logger.debug("Rent credits for lease %d in %s: %s", lease.id, billing_month, credits)
        return credits


__all__ = ["LeaseService"]
