"""Integration tests for billing units without meters."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from leasebill.models import (
    BillingCharge,
    BillingStatement,
    BillingType,
    LeaseAgreement,
    LeaseStatus,
    MeterReading,
)
from leasebill.services.billing_service import (
    OUTCOME_CREATED,
    OUTCOME_UPDATED,
    BillingService,
    FlatBillingRequest,
)
from leasebill.services.dates import month_end
from leasebill.services.errors import NoActiveLeaseError, ValidationError


@pytest.fixture
def flat_rental(db_session, rental):
    """The shared rental, on a property billing both utilities flat."""
    rental.property.water_billing_type = BillingType.FLAT.value
    rental.property.electricity_billing_type = BillingType.FLAT.value
    db_session.commit()
    return rental


@pytest.fixture
def service(db_session, billing_config):
    return BillingService(db_session, config=billing_config)


def _flat_request(rental, **overrides) -> FlatBillingRequest:
    values = {
        "unit_id": rental.unit.id,
        "lease_id": rental.lease.id,
        "total": Decimal("10300"),
        "billing_period": date(2025, 3, 3),
        "additional_charges": [{"type": "parking", "amount": 500}],
        "discounts": [{"type": "loyalty", "amount": 200}],
    }
    values.update(overrides)
    return FlatBillingRequest(**values)


class TestSaveFlatBilling:
    """Flat (non-submetered) statement saves."""

    def test_creates_statement_with_merged_charges(self, db_session, service, flat_rental):
        result = service.save_flat_billing(_flat_request(flat_rental))

        assert result.outcome == OUTCOME_CREATED
        assert result.derived_total == Decimal("10300.00")
        assert result.readings == {}

        statement = db_session.execute(select(BillingStatement)).scalar_one()
        assert statement.billing_period == date(2025, 3, 3)
        assert statement.billing_month == date(2025, 3, 1)
        assert statement.due_date == date(2025, 3, 31)
        assert statement.total_amount_due == Decimal("10300.00")

        charges = db_session.execute(select(BillingCharge).order_by(BillingCharge.id)).scalars().all()
        assert [(c.category, c.charge_type) for c in charges] == [
            ("additional", "parking"),
            ("discount", "loyalty"),
        ]
        assert db_session.scalar(select(func.count()).select_from(MeterReading)) == 0

    def test_defaults_to_current_month(self, db_session, service, flat_rental):
        service.save_flat_billing(_flat_request(flat_rental, billing_period=None))

        statement = db_session.execute(select(BillingStatement)).scalar_one()
        assert statement.billing_period == date.today()
        assert statement.due_date == month_end(date.today())

    def test_explicit_due_date(self, db_session, service, flat_rental):
        service.save_flat_billing(_flat_request(flat_rental, due_date=date(2025, 3, 15)))

        assert db_session.execute(select(BillingStatement)).scalar_one().due_date == date(2025, 3, 15)

    def test_resave_updates_and_replaces_charges(self, db_session, service, flat_rental):
        first = service.save_flat_billing(_flat_request(flat_rental))
        second = service.save_flat_billing(
            _flat_request(flat_rental, total=Decimal("10000"), additional_charges=[], discounts=[])
        )

        assert second.outcome == OUTCOME_UPDATED
        assert second.billing_id == first.billing_id
        assert db_session.scalar(select(func.count()).select_from(BillingCharge)) == 0
        assert db_session.execute(select(BillingStatement)).scalar_one().total_amount_due == Decimal("10000.00")

    def test_lease_must_belong_to_unit(self, db_session, service, flat_rental):
        foreign_lease = LeaseAgreement(
            unit_id=flat_rental.unit.id + 100,
            status=LeaseStatus.ACTIVE.value,
            start_date=date(2024, 1, 1),
        )
        db_session.add(foreign_lease)
        db_session.commit()

        with pytest.raises(NoActiveLeaseError):
            service.save_flat_billing(_flat_request(flat_rental, lease_id=foreign_lease.id))

        assert db_session.scalar(select(func.count()).select_from(BillingStatement)) == 0

    @pytest.mark.parametrize("missing", ["unit_id", "lease_id", "total"])
    def test_required_fields(self, service, flat_rental, missing):
        with pytest.raises(ValidationError, match="Missing required fields"):
            service.save_flat_billing(_flat_request(flat_rental, **{missing: None}))

    def test_oversized_total_is_rejected(self, db_session, service, flat_rental):
        with pytest.raises(ValidationError, match="total must be a number"):
            service.save_flat_billing(_flat_request(flat_rental, total=Decimal("1e30")))

        assert db_session.scalar(select(func.count()).select_from(BillingStatement)) == 0

    def test_submetered_property_is_rejected(self, db_session, service, rental):
        rental.property.electricity_billing_type = BillingType.FLAT.value
        db_session.commit()

        with pytest.raises(ValidationError, match="submeters water"):
            service.save_flat_billing(_flat_request(rental))

        assert db_session.scalar(select(func.count()).select_from(BillingStatement)) == 0
