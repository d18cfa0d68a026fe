"""Read-time status classification and late fees.

Overdue is never stored by billing: an unpaid statement becomes overdue when its
due date plus the property's grace period lies in the past.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import NamedTuple

from leasebill.models.billing import BillingStatus
from leasebill.models.property import LateFeeType
from leasebill.services.statement_breakdown import ZERO, money

logger = logging.getLogger(__name__)


class StatusClassification(NamedTuple):
    status: BillingStatus
    days_overdue: int
    """Days past due beyond the grace period (0 unless overdue)"""
    grace_period_days: int


def classify_status(
    stored_status: str,
    due_date: date,
    today: date,
    grace_period_days: int = 0,
) -> StatusClassification:
    """Classify a statement as paid, unpaid or overdue for display.

    Args:
        stored_status: Status persisted on the statement
        due_date: Statement due date
        today: Reference date
        grace_period_days: Days after the due date before the bill counts as overdue

    Returns:
        StatusClassification(status, days_overdue, grace_period_days)
    """
    grace = max(grace_period_days or 0, 0)

    if stored_status == BillingStatus.PAID:
        return StatusClassification(BillingStatus.PAID, 0, grace)

    days_overdue = (today - due_date).days - grace
    if days_overdue > 0:
        return StatusClassification(BillingStatus.OVERDUE, days_overdue, grace)

    return StatusClassification(BillingStatus.UNPAID, 0, grace)


def compute_late_fee(
    total_amount_due: Decimal,
    late_fee_type: str | None,
    late_fee_amount: Decimal | None,
    days_overdue: int,
) -> Decimal:
    """Late fee of an overdue statement, charged once.

    "fixed" charges late_fee_amount as is; "percentage" charges that percentage
    of the amount due. Nothing is charged within the grace period or when the
    property has no late fee configured.
    """
    if days_overdue <= 0 or not late_fee_type or not late_fee_amount:
        return money(ZERO)

    if late_fee_type == LateFeeType.FIXED:
        return money(late_fee_amount)

    if late_fee_type == LateFeeType.PERCENTAGE:
        return money(Decimal(total_amount_due) * Decimal(late_fee_amount) / Decimal(100))

    logger.warning("Unknown late fee type %r, no late fee charged", late_fee_type)
    return money(ZERO)


__all__ = ["StatusClassification", "classify_status", "compute_late_fee"]
