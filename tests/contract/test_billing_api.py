"""Contract tests for the billing API endpoints."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from leasebill.api.app import app
from leasebill.api.billing import get_billing_config
from leasebill.models import (
    BillingCharge,
    BillingStatement,
    BillingType,
    LeaseAgreement,
    LeaseStatus,
    Property,
    Unit,
    UtilityRate,
    UtilityType,
)
from leasebill.services import async_url, get_async_session, get_db
from leasebill.services.config import BillingConfig


@pytest.fixture
def seeded(file_session_factory):
    """Billing fixtures on two properties.

    Cedar Court: leased unit A1 (rent 10,000, water at 20 per m³) and vacant A2.
    Birch Lofts: leased unit L1, utilities billed flat.
    """
    session = file_session_factory()
    property_obj = Property(name="Cedar Court", billing_due_day=15, grace_period_days=0)
    unit = Unit(property=property_obj, unit_name="A1", rent_amount=Decimal("10000"))
    vacant = Unit(property=property_obj, unit_name="A2", rent_amount=Decimal("9000"))
    lease = LeaseAgreement(unit=unit, status=LeaseStatus.ACTIVE.value, start_date=date(2024, 3, 1))
    flat_property = Property(
        name="Birch Lofts",
        water_billing_type=BillingType.FLAT.value,
        electricity_billing_type=BillingType.FLAT.value,
    )
    flat_unit = Unit(property=flat_property, unit_name="L1", rent_amount=Decimal("10000"))
    flat_lease = LeaseAgreement(unit=flat_unit, status=LeaseStatus.ACTIVE.value, start_date=date(2024, 3, 1))
    session.add_all([property_obj, unit, vacant, lease, flat_property, flat_unit, flat_lease])
    session.flush()
    session.add(
        UtilityRate(
            property_id=property_obj.id,
            utility_type=UtilityType.WATER.value,
            period_start=date(2025, 1, 1),
            period_end=date(2025, 1, 31),
            total_amount=Decimal("1000"),
            consumption=Decimal("50"),
        )
    )
    session.commit()
    data = SimpleNamespace(
        unit_id=unit.id,
        vacant_unit_id=vacant.id,
        lease_id=lease.id,
        flat_unit_id=flat_unit.id,
        flat_lease_id=flat_lease.id,
    )
    session.close()
    return data


@pytest.fixture
def client(db_url, file_session_factory, seeded):
    """Test client with database dependencies bound to the test database."""
    async_engine = create_async_engine(
        async_url(db_url),
        poolclass=NullPool,
    )
    TestAsyncSession = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    def override_get_db():
        db = file_session_factory()
        try:
            yield db
        finally:
            db.close()

    async def override_get_async_session():
        async with TestAsyncSession() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_billing_config] = BillingConfig

    yield TestClient(app)

    app.dependency_overrides.clear()


def _submetered_body(unit_id, **overrides):
    body = {
        "unitId": unit_id,
        "readingDate": "2025-01-20",
        "dueDate": "2025-01-30",
        "waterPrevReading": 5,
        "waterCurrentReading": 15,
        "electricityPrevReading": "",
        "electricityCurrentReading": "",
        "totalWaterAmount": 200,
        "totalAmountDue": 10200,
        "additionalCharges": [],
    }
    body.update(overrides)
    return body


def _error_code(response) -> str:
    return response.json()["detail"]["error"]["code"]


class TestSubmeteredBillingEndpoint:
    """POST|PUT /api/landlord/billing/submetered."""

    def test_create_then_update(self, client, seeded):
        created = client.post("/api/landlord/billing/submetered", json=_submetered_body(seeded.unit_id))

        assert created.status_code == 201
        body = created.json()
        assert body["status"] == "created"
        assert body["billing_status"] == "unpaid"
        assert body["billing_id"].startswith("UPKYPBILL")
        assert Decimal(body["total_amount_due"]) == Decimal("10200")
        assert Decimal(body["readings"]["water"]["usage"]) == Decimal("10")
        assert Decimal(body["readings"]["water"]["cost"]) == Decimal("200")
        assert "electricity" not in body["readings"]

        updated = client.put(
            "/api/landlord/billing/submetered",
            json=_submetered_body(seeded.unit_id, waterCurrentReading=25, totalAmountDue=10400),
        )

        assert updated.status_code == 200
        assert updated.json()["status"] == "updated"
        assert updated.json()["billing_id"] == body["billing_id"]

    def test_snake_case_keys(self, client, seeded):
        response = client.post(
            "/api/landlord/billing/submetered",
            json={
                "unit_id": seeded.unit_id,
                "reading_date": "2025-01-20",
                "due_date": "2025-01-30",
                "total_amount_due": "10000",
            },
        )

        assert response.status_code == 201
        assert response.json()["readings"] == {}

    def test_malformed_charge_is_skipped(self, client, seeded, file_session_factory):
        response = client.post(
            "/api/landlord/billing/submetered",
            json=_submetered_body(
                seeded.unit_id,
                additionalCharges=[
                    {"type": "", "amount": "abc"},
                    {"category": "additional", "type": "late fee", "amount": 50},
                ],
                totalAmountDue=10250,
            ),
        )

        assert response.status_code == 201
        assert response.json()["skipped_charges"] == 1
        with file_session_factory() as session:
            assert session.scalar(select(func.count()).select_from(BillingCharge)) == 1

    def test_oversized_total_is_rejected(self, client, seeded, file_session_factory):
        response = client.post(
            "/api/landlord/billing/submetered",
            json=_submetered_body(seeded.unit_id, totalAmountDue="1e30"),
        )

        assert response.status_code == 400
        assert _error_code(response) == "validation_error"
        with file_session_factory() as session:
            assert session.scalar(select(func.count()).select_from(BillingStatement)) == 0

    def test_oversized_charge_is_skipped(self, client, seeded):
        response = client.post(
            "/api/landlord/billing/submetered",
            json=_submetered_body(seeded.unit_id, additionalCharges=[{"type": "typo", "amount": "1e30"}]),
        )

        assert response.status_code == 201
        assert response.json()["skipped_charges"] == 1

    def test_missing_unit_id(self, client):
        response = client.post(
            "/api/landlord/billing/submetered",
            json=_submetered_body(None),
        )

        assert response.status_code == 400
        assert _error_code(response) == "validation_error"

    def test_non_numeric_total(self, client, seeded):
        response = client.post(
            "/api/landlord/billing/submetered",
            json=_submetered_body(seeded.unit_id, totalAmountDue="abc"),
        )

        assert response.status_code == 400
        assert _error_code(response) == "validation_error"
        message = response.json()["detail"]["error"]["message"]
        assert "totalAmountDue" in message or "total_amount_due" in message

    def test_unit_without_lease(self, client, seeded, file_session_factory):
        response = client.post(
            "/api/landlord/billing/submetered",
            json=_submetered_body(seeded.vacant_unit_id),
        )

        assert response.status_code == 404
        assert _error_code(response) == "no_active_lease"
        assert response.json()["detail"]["error"]["message"] == (
            "No active or completed lease found for this unit."
        )
        with file_session_factory() as session:
            assert session.scalar(select(func.count()).select_from(BillingStatement)) == 0

    def test_unexpected_error_is_500(self, client, seeded, monkeypatch):
        def explode(self, request):
            raise RuntimeError("boom")

        monkeypatch.setattr(
            "leasebill.api.billing.BillingService.save_or_update_billing", explode
        )

        response = client.post("/api/landlord/billing/submetered", json=_submetered_body(seeded.unit_id))

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == {"code": "server_error", "message": "Server error"}


class TestNonSubmeteredBillingEndpoint:
    """POST /api/landlord/billing/non-submetered."""

    def test_create(self, client, seeded):
        response = client.post(
            "/api/landlord/billing/non-submetered",
            json={
                "unit_id": seeded.flat_unit_id,
                "agreement_id": seeded.flat_lease_id,
                "total": 10300,
                "billingPeriod": "2025-01-05",
                "additional_charges": [{"type": "parking", "amount": 500}],
                "discounts": [{"type": "loyalty", "amount": 200}],
            },
        )

        assert response.status_code == 201
        assert response.json()["status"] == "created"
        assert Decimal(response.json()["derived_total"]) == Decimal("10300")

    def test_submetered_property_is_rejected(self, client, seeded):
        response = client.post(
            "/api/landlord/billing/non-submetered",
            json={"unit_id": seeded.unit_id, "agreement_id": seeded.lease_id, "total": 10000},
        )

        assert response.status_code == 400
        assert _error_code(response) == "validation_error"

    def test_missing_total(self, client, seeded):
        response = client.post(
            "/api/landlord/billing/non-submetered",
            json={"unit_id": seeded.flat_unit_id, "agreement_id": seeded.flat_lease_id},
        )

        assert response.status_code == 400
        assert _error_code(response) == "validation_error"


class TestCurrentBillingEndpoint:
    """GET /api/landlord/billing/units/{unit_id}/current."""

    def test_current_statement(self, client, seeded):
        saved = client.post(
            "/api/landlord/billing/submetered",
            json=_submetered_body(
                seeded.unit_id,
                additionalCharges=[{"type": "late fee", "amount": 50}],
                totalAmountDue=10250,
            ),
        ).json()

        response = client.get(
            f"/api/landlord/billing/units/{seeded.unit_id}/current",
            params={"as_of": "2025-01-22"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["suggested_due_date"] == "2025-01-15"
        assert body["billing"]["billing_id"] == saved["billing_id"]
        assert body["billing"]["status"] == "unpaid"
        assert Decimal(body["billing"]["breakdown"]["total"]) == Decimal("10250")
        assert body["billing"]["charges"][0]["charge_type"] == "late fee"
        assert body["billing"]["readings"][0]["utility_type"] == "water"

    def test_unbilled_unit(self, client, seeded):
        response = client.get(
            f"/api/landlord/billing/units/{seeded.vacant_unit_id}/current",
            params={"as_of": "2025-02-03"},
        )

        assert response.status_code == 200
        assert response.json()["billing"] is None
        assert response.json()["suggested_due_date"] == "2025-02-15"
        assert response.json()["latest_readings"] == []

    def test_unbilled_month_prefills_latest_readings(self, client, seeded):
        client.post("/api/landlord/billing/submetered", json=_submetered_body(seeded.unit_id))

        response = client.get(
            f"/api/landlord/billing/units/{seeded.unit_id}/current",
            params={"as_of": "2025-02-03"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["billing"] is None
        assert [reading["utility_type"] for reading in body["latest_readings"]] == ["water"]
        assert Decimal(body["latest_readings"][0]["current_reading"]) == Decimal("15")

    def test_unknown_unit(self, client):
        response = client.get("/api/landlord/billing/units/9999/current")

        assert response.status_code == 404
        assert _error_code(response) == "unit_not_found"


class TestOverdueAndPaymentEndpoints:
    """Tenant overdue listing and payment status updates."""

    def test_overdue_until_paid(self, client, seeded):
        billing_id = client.post(
            "/api/landlord/billing/submetered", json=_submetered_body(seeded.unit_id)
        ).json()["billing_id"]

        overdue = client.get(
            "/api/tenant/billing/overdue",
            params={"lease_id": seeded.lease_id, "as_of": "2025-02-04"},
        )

        assert overdue.status_code == 200
        bills = overdue.json()["bills"]
        assert [bill["billing_id"] for bill in bills] == [billing_id]
        assert bills[0]["days_overdue"] == 5
        assert Decimal(bills[0]["late_fee"]) == Decimal("0")

        paid = client.post(
            "/api/billing/payment-status",
            json={"billingId": billing_id, "paymentStatus": "confirmed"},
        )

        assert paid.status_code == 200
        assert paid.json()["status"] == "paid"
        assert paid.json()["paid_at"] is not None

        overdue = client.get(
            "/api/tenant/billing/overdue",
            params={"lease_id": seeded.lease_id, "as_of": "2025-02-04"},
        )
        assert overdue.json()["bills"] == []

    def test_payment_status_unknown_billing(self, client):
        response = client.post(
            "/api/billing/payment-status",
            json={"billing_id": "UPKYPBILLNOPE00", "payment_status": "confirmed"},
        )

        assert response.status_code == 404
        assert _error_code(response) == "billing_not_found"

    def test_payment_status_missing_fields(self, client):
        response = client.post("/api/billing/payment-status", json={"billing_id": "UPKYPBILLX"})

        assert response.status_code == 400
        assert _error_code(response) == "validation_error"


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
