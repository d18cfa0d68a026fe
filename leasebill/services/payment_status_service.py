"""Payment status transitions of billing statements.

Payments are recorded elsewhere; this service only moves the statement they
settle between unpaid and paid.
"""

import logging
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import select
from sqlalchemy.orm import Session

from leasebill.models.billing import BillingStatement, BillingStatus
from leasebill.services.audit_service import AuditService
from leasebill.services.errors import StatementNotFoundError

logger = logging.getLogger(__name__)


class PaymentStatus(str, Enum):
    """Status reported for a payment against a statement."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class PaymentStatusService:
    """Applies payment outcomes to billing statements."""

    def __init__(self, db: Session):
        """Initialize payment status service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def get_statement(self, billing_id: str) -> BillingStatement | None:
        """Get statement by its public billing id."""
        return self.db.execute(
            select(BillingStatement).where(BillingStatement.billing_id == billing_id)
        ).scalar_one_or_none()

    def apply_payment_status(
        self,
        billing_id: str,
        payment_status: str,
        actor_id: int | None = None,
    ) -> BillingStatement:
        """Update a statement after its payment changed status.

        confirmed marks the statement paid and stamps paid_at; cancelled reopens
        it as unpaid and clears paid_at. Any other status leaves it as is.

        Args:
            billing_id: Public billing id of the statement
            payment_status: Payment status (see PaymentStatus)
            actor_id: User who reported the change (optional)

        Returns:
            The (possibly updated) statement

        Raises:
            StatementNotFoundError: No statement with this billing id
        """
        statement = self.get_statement(billing_id)
        if statement is None:
            raise StatementNotFoundError(f"Billing {billing_id} not found")

        previous = statement.status
        if payment_status == PaymentStatus.CONFIRMED:
            statement.status = BillingStatus.PAID.value
            statement.paid_at = datetime.now(timezone.utc)
        elif payment_status == PaymentStatus.CANCELLED:
            statement.status = BillingStatus.UNPAID.value
            statement.paid_at = None
        else:
            logger.info(
                "Payment status %r for billing %s does not change the statement",
                payment_status,
                billing_id,
            )
            return statement

        AuditService.log_statement(
            self.db,
            statement,
            statement.status,
            actor_id,
            status={"old": previous, "new": statement.status},
            payment_status=payment_status,
        )
        self.db.commit()
        self.db.refresh(statement)

        logger.info("Billing %s: %s -> %s (payment %s)", billing_id, previous, statement.status, payment_status)
        return statement


__all__ = ["PaymentStatus", "PaymentStatusService"]
