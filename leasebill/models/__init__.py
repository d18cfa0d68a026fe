"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from leasebill.models.audit_log import AuditLog  # noqa: E402
from leasebill.models.billing import (  # noqa: E402
    BillingCharge,
    BillingStatement,
    BillingStatus,
    ChargeCategory,
)
from leasebill.models.lease import (  # noqa: E402
    LeaseAgreement,
    LeaseStatus,
    PdcStatus,
    PostDatedCheck,
)
from leasebill.models.meter_reading import MeterReading  # noqa: E402
from leasebill.models.property import BillingType, LateFeeType, Property, Unit  # noqa: E402
from leasebill.models.utility_rate import UtilityRate, UtilityType  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "AuditLog",
    "BillingCharge",
    "BillingStatement",
    "BillingStatus",
    "BillingType",
    "ChargeCategory",
    "LateFeeType",
    "LeaseAgreement",
    "LeaseStatus",
    "MeterReading",
    "PdcStatus",
    "PostDatedCheck",
    "Property",
    "Unit",
    "UtilityRate",
    "UtilityType",
]
