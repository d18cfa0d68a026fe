"""Pydantic schemas for the billing API.

Request payloads accept both snake_case and camelCase keys; empty strings
count as absent. Required fields are enforced by the billing services so that
a missing field yields the same validation error on every route.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from leasebill.services.billing_service import FlatBillingRequest, SaveResult, SubmeteredBillingRequest
from leasebill.services.statement_breakdown import StatementBreakdown
from leasebill.services.statement_query_service import OverdueBill, StatementView


def _aliases(snake: str, camel: str) -> AliasChoices:
    return AliasChoices(snake, camel)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SubmeteredBillingPayload(_Payload):
    """Payload for POST|PUT /api/landlord/billing/submetered."""

    unit_id: int | None = Field(None, validation_alias=_aliases("unit_id", "unitId"))
    reading_date: date | None = Field(None, validation_alias=_aliases("reading_date", "readingDate"))
    due_date: date | None = Field(None, validation_alias=_aliases("due_date", "dueDate"))
    water_prev_reading: Decimal | None = Field(
        None, validation_alias=_aliases("water_prev_reading", "waterPrevReading")
    )
    water_current_reading: Decimal | None = Field(
        None, validation_alias=_aliases("water_current_reading", "waterCurrentReading")
    )
    electricity_prev_reading: Decimal | None = Field(
        None, validation_alias=_aliases("electricity_prev_reading", "electricityPrevReading")
    )
    electricity_current_reading: Decimal | None = Field(
        None, validation_alias=_aliases("electricity_current_reading", "electricityCurrentReading")
    )
    total_water_amount: Decimal | None = Field(
        None, validation_alias=_aliases("total_water_amount", "totalWaterAmount")
    )
    total_electricity_amount: Decimal | None = Field(
        None, validation_alias=_aliases("total_electricity_amount", "totalElectricityAmount")
    )
    total_amount_due: Decimal | None = Field(
        None, validation_alias=_aliases("total_amount_due", "totalAmountDue")
    )
    additional_charges: list[Any] | None = Field(
        None,
        validation_alias=_aliases("additional_charges", "additionalCharges"),
        description="Rows of {category, type, amount}; malformed rows are skipped",
    )
    actor_id: int | None = Field(None, validation_alias=_aliases("actor_id", "actorId"))

    def to_request(self) -> SubmeteredBillingRequest:
        return SubmeteredBillingRequest(
            unit_id=self.unit_id,
            reading_date=self.reading_date,
            due_date=self.due_date,
            water_prev_reading=self.water_prev_reading,
            water_current_reading=self.water_current_reading,
            electricity_prev_reading=self.electricity_prev_reading,
            electricity_current_reading=self.electricity_current_reading,
            total_water_amount=self.total_water_amount,
            total_electricity_amount=self.total_electricity_amount,
            total_amount_due=self.total_amount_due,
            additional_charges=self.additional_charges or [],
            actor_id=self.actor_id,
        )


class FlatBillingPayload(_Payload):
    """Payload for POST /api/landlord/billing/non-submetered."""

    unit_id: int | None = Field(None, validation_alias=_aliases("unit_id", "unitId"))
    lease_id: int | None = Field(
        None,
        validation_alias=AliasChoices("lease_id", "leaseId", "agreement_id", "agreementId"),
    )
    total: Decimal | None = None
    additional_charges: list[Any] | None = Field(
        None, validation_alias=_aliases("additional_charges", "additionalCharges")
    )
    discounts: list[Any] | None = None
    billing_period: date | None = Field(
        None, validation_alias=_aliases("billing_period", "billingPeriod")
    )
    due_date: date | None = Field(None, validation_alias=_aliases("due_date", "dueDate"))
    actor_id: int | None = Field(None, validation_alias=_aliases("actor_id", "actorId"))

    def to_request(self) -> FlatBillingRequest:
        return FlatBillingRequest(
            unit_id=self.unit_id,
            lease_id=self.lease_id,
            total=self.total,
            additional_charges=self.additional_charges or [],
            discounts=self.discounts or [],
            billing_period=self.billing_period,
            due_date=self.due_date,
            actor_id=self.actor_id,
        )


class PaymentStatusPayload(_Payload):
    """Payload for POST /api/billing/payment-status."""

    billing_id: str | None = Field(None, validation_alias=_aliases("billing_id", "billingId"))
    payment_status: str | None = Field(
        None,
        validation_alias=AliasChoices("payment_status", "paymentStatus", "status"),
    )
    actor_id: int | None = Field(None, validation_alias=_aliases("actor_id", "actorId"))


# Response schemas


class UsageResponse(BaseModel):
    usage: Decimal
    cost: Decimal


class SaveBillingResponse(BaseModel):
    """Response for a billing save."""

    billing_id: str
    status: str  # "created" or "updated"
    billing_status: str
    total_amount_due: Decimal
    derived_total: Decimal
    skipped_charges: int = 0
    readings: dict[str, UsageResponse] = Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: SaveResult) -> "SaveBillingResponse":
        return cls(
            billing_id=result.billing_id,
            status=result.outcome,
            billing_status=result.status,
            total_amount_due=result.total_due,
            derived_total=result.derived_total,
            skipped_charges=result.skipped_charges,
            readings={
                utility: UsageResponse(usage=usage_cost.usage, cost=usage_cost.cost)
                for utility, usage_cost in result.readings.items()
            },
        )


class RentCreditResponse(BaseModel):
    source: str
    amount: Decimal


class BreakdownResponse(BaseModel):
    base_rent: Decimal
    rent_credits: list[RentCreditResponse]
    rent_due: Decimal
    assoc_dues: Decimal
    water_cost: Decimal
    electricity_cost: Decimal
    additional_total: Decimal
    discount_total: Decimal
    total: Decimal

    @classmethod
    def from_breakdown(cls, breakdown: StatementBreakdown) -> "BreakdownResponse":
        data = breakdown._asdict()
        data["rent_credits"] = [credit._asdict() for credit in breakdown.rent_credits]
        return cls(**data)


class ReadingResponse(BaseModel):
    utility_type: str
    reading_date: date
    previous_reading: Decimal
    current_reading: Decimal
    consumption: Decimal
    rate_per_unit: Decimal | None = None
    cost: Decimal


class ChargeResponse(BaseModel):
    category: str
    charge_type: str
    amount: Decimal


class StatementResponse(BaseModel):
    """A month's billing statement."""

    billing_id: str
    unit_id: int
    lease_id: int
    billing_period: date
    due_date: date
    status: str
    days_overdue: int = 0
    paid_at: datetime | None = None
    total_amount_due: Decimal
    breakdown: BreakdownResponse
    readings: list[ReadingResponse]
    charges: list[ChargeResponse]

    @classmethod
    def from_view(cls, view: StatementView) -> "StatementResponse":
        return cls(
            billing_id=view.billing_id,
            unit_id=view.unit_id,
            lease_id=view.lease_id,
            billing_period=view.billing_period,
            due_date=view.due_date,
            status=view.status.value,
            days_overdue=view.days_overdue,
            paid_at=view.paid_at,
            total_amount_due=view.total_amount_due,
            breakdown=BreakdownResponse.from_breakdown(view.breakdown),
            readings=[ReadingResponse(**reading._asdict()) for reading in view.readings],
            charges=[ChargeResponse(**charge._asdict()) for charge in view.charges],
        )


class CurrentStatementResponse(BaseModel):
    """Response for GET /api/landlord/billing/units/{unit_id}/current."""

    unit_id: int
    billing: StatementResponse | None = None
    suggested_due_date: date | None = None
    latest_readings: list[ReadingResponse] = Field(
        default_factory=list,
        description="Latest reading per utility, filled when the month has no statement yet",
    )


class OverdueBillResponse(BaseModel):
    billing_id: str
    unit_id: int
    billing_period: date
    due_date: date
    total_amount_due: Decimal
    days_overdue: int
    grace_period_days: int
    late_fee: Decimal
    amount_with_late_fee: Decimal

    @classmethod
    def from_bill(cls, bill: OverdueBill) -> "OverdueBillResponse":
        return cls(**bill._asdict())


class OverdueBillsResponse(BaseModel):
    """Response for GET /api/tenant/billing/overdue."""

    lease_id: int
    bills: list[OverdueBillResponse]


class PaymentStatusResponse(BaseModel):
    billing_id: str
    status: str
    paid_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
