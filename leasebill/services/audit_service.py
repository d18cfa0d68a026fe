"""Audit trail for billing statement changes."""

from typing import Any

from sqlalchemy.orm import Session

from leasebill.models.audit_log import AuditLog
from leasebill.models.billing import BillingStatement

STATEMENT_ENTITY = "billing_statement"


class AuditService:
    """Writes audit rows.

    Rows are only added to the session: they are committed or rolled back
    together with the change they describe.
    """

    @staticmethod
    def log(
        db: Session,
        entity_type: str,
        entity_id: int,
        action: str,
        actor_id: int | None = None,
        changes: dict[str, Any] | None = None,
    ) -> AuditLog:
        audit = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            changes=changes,
        )
        db.add(audit)
        return audit

    @classmethod
    def log_statement(
        cls,
        db: Session,
        statement: BillingStatement,
        action: str,
        actor_id: int | None = None,
        **changes: Any,
    ) -> AuditLog:
        """Audit a change to a billing statement.

        Args:
            db: Session the change is made in
            statement: Flushed statement (id assigned)
            action: "create", "update", "paid", "unpaid"
            actor_id: Landlord or admin behind the change; None for system updates
            **changes: JSON-serializable fields describing the change

        Returns:
            The pending AuditLog row
        """
        snapshot = {
            "billing_id": statement.billing_id,
            "billing_month": statement.billing_month.isoformat(),
            **changes,
        }
        return cls.log(db, STATEMENT_ENTITY, statement.id, action, actor_id, snapshot)


__all__ = ["AuditService", "STATEMENT_ENTITY"]
