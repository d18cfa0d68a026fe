"""API error handling and response helpers."""

from typing import Any, Dict

from fastapi import HTTPException, status

from leasebill.services.errors import BillingError


class UnitNotFoundError(BillingError):
    """Unit does not exist."""

    def __init__(self, message: str = "Unit not found"):
        super().__init__(message, "unit_not_found", status.HTTP_404_NOT_FOUND)


def error_response(error: BillingError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }


def raise_app_error(error: BillingError) -> None:
    """Raise an HTTPException from a BillingError."""
    raise HTTPException(
        status_code=error.http_status,
        detail=error_response(error),
    )


def raise_server_error(cause: Exception) -> None:
    """Raise the generic 500 response for an unexpected failure."""
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=error_response(
            BillingError("Server error", "server_error", status.HTTP_500_INTERNAL_SERVER_ERROR)
        ),
    ) from cause
