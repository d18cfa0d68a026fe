"""Meter-usage cost calculation for submetered utilities."""

from decimal import Decimal
from typing import NamedTuple

ZERO = Decimal("0")


class UsageCost(NamedTuple):
    """Consumption and its cost for one utility."""

    usage: Decimal
    cost: Decimal


def compute_usage_cost(
    previous_reading: Decimal,
    current_reading: Decimal,
    rate_per_unit: Decimal | None,
) -> UsageCost:
    """Calculate consumption and cost from two meter readings.

    Formula: usage = max(current - previous, 0); cost = usage × rate

    A meter that reads lower than before (replacement, rollover, typo) yields zero
    usage rather than an error. Without a configured rate the cost is zero but the
    usage is still reported, so consumption can be shown before a rate exists.
    The result is exact; rounding to cents happens when a statement is persisted.

    Args:
        previous_reading: Reading carried from the previous period
        current_reading: Reading taken this period
        rate_per_unit: Price per unit of consumption (None if not configured)

    Returns:
        UsageCost(usage, cost)
    """
    usage = Decimal(current_reading) - Decimal(previous_reading)
    if usage < ZERO:
        usage = ZERO

    if not rate_per_unit:
        return UsageCost(usage=usage, cost=ZERO)

    return UsageCost(usage=usage, cost=usage * Decimal(rate_per_unit))


__all__ = ["UsageCost", "compute_usage_cost"]
