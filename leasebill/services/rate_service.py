"""Utility rate lookup for submetered billing."""

from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from leasebill.models.utility_rate import UtilityRate, UtilityType


def latest_rate_stmt(property_id: int, utility_type: UtilityType, on_date: date):
    """Select the newest rate of a property/utility whose period covers on_date."""
    return (
        select(UtilityRate)
        .where(
            UtilityRate.property_id == property_id,
            UtilityRate.utility_type == utility_type.value,
            UtilityRate.period_start <= on_date,
            UtilityRate.period_end >= on_date,
        )
        .order_by(UtilityRate.period_end.desc(), UtilityRate.id.desc())
        .limit(1)
    )


class RateService:
    """Sync rate lookups, used inside the billing transaction."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def get_rate(self, property_id: int, utility_type: UtilityType, on_date: date) -> Decimal | None:
        """Price per unit of consumption for a utility, or None if no rate is configured.

        Args:
            property_id: Property whose concessionaire bill defines the rate
            utility_type: Water or electricity
            on_date: Reading date of the billing period

        Returns:
            Rate per m³/kWh or None
        """
        rate = self.db.execute(latest_rate_stmt(property_id, utility_type, on_date)).scalar_one_or_none()
        if rate is None:
            return None
        return rate.rate_per_unit


__all__ = ["RateService", "latest_rate_stmt"]
