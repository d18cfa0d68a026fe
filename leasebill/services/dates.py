"""Calendar helpers for monthly billing periods."""

from calendar import monthrange
from datetime import date


def month_start(value: date) -> date:
    """First day of the month of value."""
    return value.replace(day=1)


def month_end(value: date) -> date:
    """Last day of the month of value."""
    return value.replace(day=monthrange(value.year, value.month)[1])


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start's month to end's month (negative if end is earlier)."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def due_date_for(billing_period: date, due_day: int) -> date:
    """Due date within the billing month; due days past month end clamp to the last day."""
    last_day = monthrange(billing_period.year, billing_period.month)[1]
    return billing_period.replace(day=min(max(due_day, 1), last_day))


__all__ = ["due_date_for", "month_end", "month_start", "months_between"]
