"""Billing API endpoints.

Landlord routes save a unit's monthly statement and show the current one;
tenant routes list overdue statements; the payment route moves statements
between unpaid and paid.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from leasebill.api.errors import UnitNotFoundError, raise_app_error, raise_server_error
from leasebill.api.schemas import (
    CurrentStatementResponse,
    FlatBillingPayload,
    OverdueBillResponse,
    OverdueBillsResponse,
    PaymentStatusPayload,
    PaymentStatusResponse,
    ReadingResponse,
    SaveBillingResponse,
    StatementResponse,
    SubmeteredBillingPayload,
)
from leasebill.services import get_async_session, get_db
from leasebill.services.billing_service import OUTCOME_CREATED, BillingService, SaveResult
from leasebill.services.config import BillingConfig, load_config
from leasebill.services.errors import BillingError, ValidationError
from leasebill.services.payment_status_service import PaymentStatusService
from leasebill.services.statement_query_service import StatementQueryService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["billing"])


def get_billing_config() -> BillingConfig:
    """Billing configuration dependency."""
    return load_config()


def _save_response(result: SaveResult, response: Response) -> SaveBillingResponse:
    response.status_code = (
        status.HTTP_201_CREATED if result.outcome == OUTCOME_CREATED else status.HTTP_200_OK
    )
    return SaveBillingResponse.from_result(result)


@router.post(
    "/api/landlord/billing/submetered",
    response_model=SaveBillingResponse,
    status_code=status.HTTP_201_CREATED,
)
@router.put(
    "/api/landlord/billing/submetered",
    response_model=SaveBillingResponse,
    status_code=status.HTTP_201_CREATED,
)
def save_submetered_billing(
    payload: SubmeteredBillingPayload,
    response: Response,
    db: Session = Depends(get_db),  # noqa: B008
    config: BillingConfig = Depends(get_billing_config),  # noqa: B008
) -> SaveBillingResponse:
    """Create or update the month's statement of a submetered unit.

    Returns 201 when the statement was created, 200 when an existing one was
    updated.
    """
    try:
        result = BillingService(db, config=config).save_or_update_billing(payload.to_request())
        return _save_response(result, response)

    except BillingError as e:
        logger.warning("Submetered billing for unit %s rejected: %s", payload.unit_id, e.message)
        raise_app_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error saving submetered billing for unit %s", payload.unit_id)
        raise_server_error(e)


@router.post(
    "/api/landlord/billing/non-submetered",
    response_model=SaveBillingResponse,
    status_code=status.HTTP_201_CREATED,
)
def save_flat_billing(
    payload: FlatBillingPayload,
    response: Response,
    db: Session = Depends(get_db),  # noqa: B008
    config: BillingConfig = Depends(get_billing_config),  # noqa: B008
) -> SaveBillingResponse:
    """Create or update the month's statement of a unit without meters."""
    try:
        result = BillingService(db, config=config).save_flat_billing(payload.to_request())
        return _save_response(result, response)

    except BillingError as e:
        logger.warning("Flat billing for unit %s rejected: %s", payload.unit_id, e.message)
        raise_app_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error saving flat billing for unit %s", payload.unit_id)
        raise_server_error(e)


@router.get(
    "/api/landlord/billing/units/{unit_id}/current",
    response_model=CurrentStatementResponse,
)
async def get_current_billing(
    unit_id: int,
    as_of: date | None = Query(None, description="Reference date (default: today)"),  # noqa: B008
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
) -> CurrentStatementResponse:
    """Current month's statement of a unit, with the suggested due date.

    Without a statement for the month, the latest meter readings are returned
    to prefill the billing form.
    """
    try:
        service = StatementQueryService(session)
        suggested_due_date = await service.suggested_due_date(unit_id, as_of)
        if suggested_due_date is None:
            raise_app_error(UnitNotFoundError(f"Unit {unit_id} not found"))

        view = await service.get_current_statement(unit_id, as_of)
        if view is not None:
            return CurrentStatementResponse(
                unit_id=unit_id,
                billing=StatementResponse.from_view(view),
                suggested_due_date=suggested_due_date,
            )

        latest = await service.latest_readings(unit_id, as_of)
        return CurrentStatementResponse(
            unit_id=unit_id,
            suggested_due_date=suggested_due_date,
            latest_readings=[ReadingResponse(**reading._asdict()) for reading in latest],
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error loading current billing for unit %d", unit_id)
        raise_server_error(e)


@router.get("/api/tenant/billing/overdue", response_model=OverdueBillsResponse)
async def list_overdue_billing(
    lease_id: int,
    as_of: date | None = Query(None, description="Reference date (default: today)"),  # noqa: B008
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
) -> OverdueBillsResponse:
    """Overdue statements of a lease, with days overdue and late fees."""
    try:
        bills = await StatementQueryService(session).list_overdue(lease_id, as_of)
        return OverdueBillsResponse(
            lease_id=lease_id,
            bills=[OverdueBillResponse.from_bill(bill) for bill in bills],
        )

    except Exception as e:
        logger.exception("Error listing overdue billing for lease %d", lease_id)
        raise_server_error(e)


@router.post("/api/billing/payment-status", response_model=PaymentStatusResponse)
def update_payment_status(
    payload: PaymentStatusPayload,
    db: Session = Depends(get_db),  # noqa: B008
) -> PaymentStatusResponse:
    """Apply a payment's status to the statement it pays."""
    try:
        if not payload.billing_id or not payload.payment_status:
            raise ValidationError("Missing required fields (billing_id, payment_status)")

        statement = PaymentStatusService(db).apply_payment_status(
            payload.billing_id,
            payload.payment_status.strip().lower(),
            actor_id=payload.actor_id,
        )
        return PaymentStatusResponse.model_validate(statement)

    except BillingError as e:
        logger.warning("Payment status for billing %s rejected: %s", payload.billing_id, e.message)
        raise_app_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error applying payment status to billing %s", payload.billing_id)
        raise_server_error(e)
