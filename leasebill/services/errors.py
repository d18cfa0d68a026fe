"""Billing error taxonomy.

Each error carries a machine-readable code and the HTTP status the API layer
responds with.
"""

from fastapi import status


class BillingError(Exception):
    """Base billing error."""

    def __init__(self, message: str, code: str, http_status: int = status.HTTP_400_BAD_REQUEST):
        """Initialize error."""
        self.message = message
        self.code = code
        self.http_status = http_status
        super().__init__(message)


class ValidationError(BillingError):
    """Required field missing or malformed input."""

    def __init__(self, message: str = "Missing required fields"):
        super().__init__(message, "validation_error", status.HTTP_400_BAD_REQUEST)


class NoActiveLeaseError(BillingError):
    """Unit has no active or completed lease and cannot be billed."""

    def __init__(self, message: str = "No active or completed lease found for this unit."):
        super().__init__(message, "no_active_lease", status.HTTP_404_NOT_FOUND)


class StatementNotFoundError(BillingError):
    """No billing statement with the given identifier."""

    def __init__(self, message: str = "Billing not found"):
        super().__init__(message, "billing_not_found", status.HTTP_404_NOT_FOUND)


class PersistenceError(BillingError):
    """Database failure; the transaction was rolled back."""

    def __init__(self, message: str = "Failed to save billing record."):
        super().__init__(message, "persistence_error", status.HTTP_500_INTERNAL_SERVER_ERROR)


class DuplicateIdentifierError(BillingError):
    """Generated billing id is already taken. Resolved by regeneration, never surfaced."""

    def __init__(self, billing_id: str):
        self.billing_id = billing_id
        super().__init__(
            f"Billing id {billing_id} already exists",
            "duplicate_identifier",
            status.HTTP_409_CONFLICT,
        )


__all__ = [
    "BillingError",
    "DuplicateIdentifierError",
    "NoActiveLeaseError",
    "PersistenceError",
    "StatementNotFoundError",
    "ValidationError",
]
