"""Pytest configuration and shared fixtures for billing tests."""

import os

# Set test database URL BEFORE any imports from leasebill
# This ensures the module-level engines never touch a real database
os.environ["DATABASE_URL"] = "sqlite:///./test_leasebill.db"

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from leasebill.models import (  # noqa: E402
    Base,
    LeaseAgreement,
    LeaseStatus,
    Property,
    Unit,
    UtilityRate,
    UtilityType,
)
from leasebill.services import async_url  # noqa: E402
from leasebill.services.config import BillingConfig  # noqa: E402


@pytest.fixture
def db_session():
    """Create test database session."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def billing_config():
    """Default billing configuration."""
    return BillingConfig()


@pytest.fixture
def rental(db_session):
    """Property with one unit under an active lease at 10,000 rent."""
    property_obj = Property(name="Maple Residences", billing_due_day=15, grace_period_days=3)
    unit = Unit(property=property_obj, unit_name="101", rent_amount=Decimal("10000"))
    lease = LeaseAgreement(
        unit=unit,
        tenant_id=7,
        status=LeaseStatus.ACTIVE.value,
        start_date=date(2024, 1, 1),
        rent_amount=Decimal("10000"),
    )
    db_session.add_all([property_obj, unit, lease])
    db_session.commit()
    return SimpleNamespace(property=property_obj, unit=unit, lease=lease)


@pytest.fixture
def add_rate(db_session):
    """Factory adding a concessionaire bill (utility rate) to a property."""

    def _add_rate(
        property_id: int,
        utility_type: UtilityType,
        total_amount: str,
        consumption: str,
        period_start: date = date(2025, 1, 1),
        period_end: date = date(2025, 1, 31),
    ) -> UtilityRate:
        rate = UtilityRate(
            property_id=property_id,
            utility_type=utility_type.value,
            period_start=period_start,
            period_end=period_end,
            total_amount=Decimal(total_amount),
            consumption=Decimal(consumption),
        )
        db_session.add(rate)
        db_session.commit()
        return rate

    return _add_rate


@pytest.fixture
def db_url(tmp_path):
    """File database shared by sync and async engines within one test."""
    return f"sqlite:///{tmp_path / 'billing.db'}"


@pytest.fixture
def file_session_factory(db_url):
    """Sync session factory on the file database (schema created)."""
    engine = create_engine(db_url, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture
async def async_session_factory(db_url, file_session_factory):
    """Async session factory on the same file database."""
    engine = create_async_engine(
        async_url(db_url),
        poolclass=NullPool,
    )
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()
